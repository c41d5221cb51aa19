"""Conservation checks for erosion runs.

Material is terrain height plus suspended sediment. Within a step, erosion
and deposition only move material between the two, and transport only moves
it between cells, so the interior total changes by what crosses into the
fixed frame. Drying cells settle the sediment they held at the start of the
step, which makes long runs conserve material only approximately.
"""

from dataclasses import dataclass

import numpy as np

from erodesim.core.geometry import HYDRAULIC_MARGIN
from erodesim.kernels.protocol import RunFluxes


@dataclass
class MaterialBudget:
    """Tracks boundary outflow for material conservation checks."""

    initial_material: float = 0.0  # height + sediment over the interior at start
    cumulative_boundary_water: float = 0.0  # water that left through the frame
    cumulative_boundary_sediment: float = 0.0  # sediment that left through the frame
    runs: int = 0

    def record(self, fluxes: RunFluxes) -> None:
        """Accumulate the boundary fluxes of one run."""
        self.cumulative_boundary_water += fluxes.boundary_water
        self.cumulative_boundary_sediment += fluxes.boundary_sediment
        self.runs += 1

    def expected_material(self) -> float:
        """Compute expected interior material based on fluxes."""
        return self.initial_material - self.cumulative_boundary_sediment

    def check(self, actual: float, rtol: float = 1e-5, atol: float = 1e-8) -> float:
        """Check material conservation and return relative error.

        Args:
            actual: Current interior material (height + sediment)
            rtol: Relative tolerance
            atol: Absolute tolerance

        Returns:
            Relative error

        Raises:
            AssertionError: If the balance is violated beyond tolerance
        """
        expected = self.expected_material()
        error = abs(actual - expected)
        tol = atol + rtol * abs(expected)

        if error > tol:
            raise AssertionError(
                f"Material conservation violated!\n"
                f"  Expected: {expected:.6e}\n"
                f"  Actual:   {actual:.6e}\n"
                f"  Error:    {error:.6e} (tolerance: {tol:.6e})\n"
                f"  Outflow:  {self.cumulative_boundary_sediment:.6e}"
            )

        return error / max(abs(expected), 1e-10)


def material_total(
    height: np.ndarray,
    sediment: np.ndarray | None = None,
    margin: int = HYDRAULIC_MARGIN,
) -> float:
    """Sum height (plus sediment) over cells inside a `margin`-wide frame.

    Sums in float64 regardless of the input dtype.
    """
    width = height.shape[0]
    interior = (slice(margin, width - margin), slice(margin, width - margin))
    total = np.sum(height[interior], dtype=np.float64)
    if sediment is not None:
        total += np.sum(sediment[interior], dtype=np.float64)
    return float(total)


def check_conservation(
    initial: float,
    final: float,
    fluxes: dict[str, float] | None = None,
    rtol: float = 1e-5,
    atol: float = 1e-10,
) -> None:
    """Check conservation: final == initial - sum(fluxes).

    Args:
        initial: Initial total
        final: Final total
        fluxes: Dict of flux name -> value (positive = loss)
        rtol: Relative tolerance
        atol: Absolute tolerance

    Raises:
        AssertionError: If conservation violated
    """
    fluxes = fluxes or {}
    expected = initial - sum(fluxes.values())
    diff = abs(final - expected)
    tol = atol + rtol * abs(expected)

    if diff > tol:
        flux_str = ", ".join(f"{k}={v:.6e}" for k, v in fluxes.items())
        raise AssertionError(
            f"Material not conserved!\n"
            f"  Initial: {initial:.10e}\n"
            f"  Final:   {final:.10e}\n"
            f"  Expected: {expected:.10e}\n"
            f"  Fluxes: {flux_str}\n"
            f"  Difference: {diff:.10e} (tolerance: {tol:.10e})"
        )
