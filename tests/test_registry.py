"""Tests for the pipeline registry and protocol compliance."""

import pytest

from erodesim.fields.storage import GridStorage
from erodesim.initialization import cone_grid
from erodesim.kernels import (
    CpuErosionPipeline,
    ErosionBackend,
    ErosionPipeline,
    GpuErosionPipeline,
    PipelineRegistry,
    RunFluxes,
    get_registry,
)


@pytest.fixture
def storage():
    storage = GridStorage(cone_grid(16), use_gpu=True)
    yield storage
    storage.release()


class TestPipelineRegistry:
    """Tests for PipelineRegistry."""

    def test_default_backends(self):
        registry = PipelineRegistry()
        assert set(registry.available_backends()) == {ErosionBackend.CPU, ErosionBackend.GPU}

    def test_get_returns_bound_instances(self, storage):
        registry = PipelineRegistry()
        cpu = registry.get(ErosionBackend.CPU, storage)
        gpu = registry.get(ErosionBackend.GPU, storage)
        assert isinstance(cpu, CpuErosionPipeline)
        assert isinstance(gpu, GpuErosionPipeline)
        assert cpu.storage is storage and gpu.storage is storage

    def test_instances_satisfy_protocol(self, storage):
        registry = PipelineRegistry()
        for backend in registry.available_backends():
            assert isinstance(registry.get(backend, storage), ErosionPipeline)

    def test_register_replaces(self, storage):
        class Custom(CpuErosionPipeline):
            pass

        registry = PipelineRegistry()
        registry.register(ErosionBackend.CPU, Custom)
        assert isinstance(registry.get(ErosionBackend.CPU, storage), Custom)

    def test_missing_backend(self, storage):
        registry = PipelineRegistry()
        registry._pipelines.clear()
        with pytest.raises(KeyError, match="No pipeline registered"):
            registry.get(ErosionBackend.GPU, storage)

    def test_global_registry_is_shared(self):
        assert get_registry() is get_registry()


class TestRunFluxes:
    """Tests for the RunFluxes result type."""

    def test_defaults(self):
        fluxes = RunFluxes()
        assert fluxes.boundary_water == 0.0
        assert fluxes.boundary_sediment == 0.0

    def test_frozen(self):
        with pytest.raises(AttributeError):
            RunFluxes().boundary_water = 1.0
