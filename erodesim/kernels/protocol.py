"""
Pipeline protocol definitions for swappable erosion backends.

Protocols define the interface both backends implement, so the controller
can drive either one without knowing how it executes:

- begin(): Initialize moisture and working buffers for a run
- step(): Execute one erosion step
- finish(): Leave height and water consistent on the host, report fluxes
- close(): Release run resources; safe after finish() or a failed step

Result dataclasses capture what left the domain through the fixed frame.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Protocol, runtime_checkable


class ErosionBackend(Enum):
    """Available erosion backends."""

    CPU = auto()  # NumPy sweeps on a thread pool, runs in the background
    GPU = auto()  # Taichi compute kernels, runs on the calling thread


@dataclass(frozen=True)
class RunFluxes:
    """Material pushed into the fixed boundary frame during a run.

    Attributes:
        boundary_water: Water that flowed off the simulated area
        boundary_sediment: Sediment carried off the simulated area
    """

    boundary_water: float = 0.0
    boundary_sediment: float = 0.0


@runtime_checkable
class ErosionPipeline(Protocol):
    """Protocol for erosion backends.

    Each step applies, in order: rain injection, the hydraulic pass, the
    thermal pass, then evaporation and out -> in buffer rotation.
    """

    def begin(self, params: Any) -> None:
        """Prepare a run.

        Seeds interior water with rain scaled by elevation, clears sediment
        and primes the "out" buffers.

        Args:
            params: ErosionParams
        """
        ...

    def step(self, step: int, params: Any) -> None:
        """Execute one erosion step.

        Args:
            step: Zero-based index of this step within the run
            params: ErosionParams, read as each stage needs them
        """
        ...

    def finish(self) -> RunFluxes:
        """End a run, completed or cancelled.

        Returns:
            RunFluxes accumulated since begin()
        """
        ...

    def close(self) -> None:
        """Release per-run resources (worker threads, for example).

        Called whenever a run ends, including after a failed step. Idempotent.
        """
        ...
