"""
Erosion pipelines and a registry for selecting between backends.

Usage:
    from erodesim.kernels import ErosionBackend, get_registry

    pipeline = get_registry().get(ErosionBackend.CPU, storage)
    pipeline.begin(params)
    for step in range(params.n_steps):
        pipeline.step(step, params)
    fluxes = pipeline.finish()

Submodules:
- cpu: NumPy sweeps on a thread pool (reference backend)
- gpu: Taichi compute kernels
- protocol: Pipeline interface and result types
"""

from typing import Type

from erodesim.fields.storage import GridStorage
from erodesim.kernels.cpu import CpuErosionPipeline
from erodesim.kernels.gpu import GpuErosionPipeline
from erodesim.kernels.protocol import ErosionBackend, ErosionPipeline, RunFluxes


class PipelineRegistry:
    """Registry mapping each ErosionBackend to a pipeline implementation.

    The controller asks the registry for a pipeline instead of branching on
    the backend itself, so alternative implementations can be swapped in
    (for equivalence testing, say) without touching orchestration code.

    Example:
        registry = PipelineRegistry()
        registry.register(ErosionBackend.CPU, MyCpuPipeline)
        pipeline = registry.get(ErosionBackend.CPU, storage)
    """

    def __init__(self):
        """Initialize registry with the built-in pipelines."""
        self._pipelines: dict[ErosionBackend, Type[ErosionPipeline]] = {
            ErosionBackend.CPU: CpuErosionPipeline,
            ErosionBackend.GPU: GpuErosionPipeline,
        }

    def get(self, backend: ErosionBackend, storage: GridStorage) -> ErosionPipeline:
        """Get a pipeline instance bound to `storage`.

        Args:
            backend: Backend to run on
            storage: Allocated grid storage

        Returns:
            Pipeline implementing the ErosionPipeline protocol

        Raises:
            KeyError: If backend not registered
        """
        if backend not in self._pipelines:
            raise KeyError(
                f"No pipeline registered for backend {backend}. "
                f"Available: {list(self._pipelines.keys())}"
            )
        return self._pipelines[backend](storage)

    def register(self, backend: ErosionBackend, cls: Type[ErosionPipeline]) -> None:
        """Register (or replace) the pipeline class for a backend."""
        self._pipelines[backend] = cls

    def available_backends(self) -> list[ErosionBackend]:
        """Backends with a registered pipeline."""
        return list(self._pipelines.keys())


# Global default registry
_default_registry: PipelineRegistry | None = None


def get_registry() -> PipelineRegistry:
    """Get the default global pipeline registry."""
    global _default_registry
    if _default_registry is None:
        _default_registry = PipelineRegistry()
    return _default_registry


__all__ = [
    "CpuErosionPipeline",
    "ErosionBackend",
    "ErosionPipeline",
    "GpuErosionPipeline",
    "PipelineRegistry",
    "RunFluxes",
    "get_registry",
]
