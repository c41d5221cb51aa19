"""Tests for the GPU erosion pipeline (run on Taichi's CPU arch in tests).

Tests cover:
- The centre-spike scenario on device fields
- Deferred rotation and copy-back of height and water only
- Boundary invariance and conservation on device fields
- Parity with the CPU pipeline on aggregate statistics
"""

import numpy as np
import pytest

from erodesim.core.geometry import NEIGHBOR_OFFSETS, frame_mask
from erodesim.diagnostics import material_total
from erodesim.errors import BackendUnavailableError
from erodesim.fields.storage import GridStorage
from erodesim.initialization import cone_grid, noise_grid
from erodesim.kernels.cpu import CpuErosionPipeline
from erodesim.kernels.gpu import GpuErosionPipeline
from erodesim.params import ErosionParams
from erodesim.scoring import roughness_score


def run_pipeline(pipeline_cls, source, params):
    """Run params.n_steps steps; return (storage, fluxes)."""
    storage = GridStorage(source, use_gpu=pipeline_cls is GpuErosionPipeline)
    pipeline = pipeline_cls(storage)
    pipeline.begin(params)
    for step in range(params.n_steps):
        pipeline.step(step, params)
    return storage, pipeline.finish()


class TestGpuPipeline:
    """Single-backend behaviour."""

    def test_requires_device_buffers(self, spike):
        storage = GridStorage(spike, use_gpu=False)
        with pytest.raises(BackendUnavailableError):
            GpuErosionPipeline(storage)

    def test_spike_scenario(self, spike, hydraulic_params):
        storage, _ = run_pipeline(GpuErosionPipeline, spike, hydraulic_params)
        height = spike.height
        sediment = storage.device.sediment.to_numpy()

        assert height[3, 3] == pytest.approx(19.0, abs=1e-5)
        received = [sediment[3 + di, 3 + dj] for di, dj in NEIGHBOR_OFFSETS]
        assert received == pytest.approx([0.125] * 8, abs=1e-6)
        assert sum(received) == pytest.approx(20.0 - height[3, 3], abs=1e-5)

    def test_raised_spike_scenario(self, raised_spike, hydraulic_params):
        storage, _ = run_pipeline(GpuErosionPipeline, raised_spike, hydraulic_params)
        sediment = storage.device.sediment.to_numpy()

        assert raised_spike.height[3, 3] == pytest.approx(19.0, abs=1e-5)
        received = [sediment[3 + di, 3 + dj] for di, dj in NEIGHBOR_OFFSETS]
        assert received == pytest.approx([0.125] * 8, abs=1e-6)
        assert raised_spike.height[2, 3] == 10.0

    def test_copies_back_into_source_array(self, spike, hydraulic_params):
        array = spike.height
        storage, _ = run_pipeline(GpuErosionPipeline, spike, hydraulic_params)
        assert storage.host.height is array
        assert array.dtype == np.float64
        assert storage.host.water[3, 4] == pytest.approx(0.125, abs=1e-6)

    def test_sediment_stays_on_device(self, spike, hydraulic_params):
        storage, _ = run_pipeline(GpuErosionPipeline, spike, hydraulic_params)
        assert not storage.host.sediment.any()

    def test_finish_without_steps_is_noop(self, cone):
        before = cone.height.copy()
        storage = GridStorage(cone, use_gpu=True)
        pipeline = GpuErosionPipeline(storage)
        pipeline.begin(ErosionParams(k_e=0.5))
        fluxes = pipeline.finish()

        np.testing.assert_array_equal(cone.height, before)
        assert fluxes.boundary_water == 0.0
        assert fluxes.boundary_sediment == 0.0

    def test_single_step_conservation(self, assert_material_conserved):
        source = cone_grid(24)
        initial = material_total(source.height)
        params = ErosionParams(n_steps=1, thermal_enabled=False, rain=1.0, k_c=0.5, k_s=0.5)
        storage, fluxes = run_pipeline(GpuErosionPipeline, source, params)

        final = material_total(source.height, storage.device.sediment.to_numpy())
        assert fluxes.boundary_water > 0.0
        assert_material_conserved(
            initial, final, {"boundary_sediment": fluxes.boundary_sediment}, rtol=1e-5
        )

    def test_boundary_invariance(self):
        source = noise_grid(24, amplitude=5.0, seed=5)
        before = source.height.copy()
        params = ErosionParams(n_steps=20, rain_frequency=5, k_e=0.95)
        storage, _ = run_pipeline(GpuErosionPipeline, source, params)

        ring = frame_mask(24, 1)
        np.testing.assert_array_equal(source.height[ring], before[ring])
        assert not storage.device.water.to_numpy()[ring].any()

    def test_untouched_cells_keep_host_precision(self):
        """float64 values the device never changed survive the float32 round trip."""
        source = noise_grid(24, amplitude=5.0, seed=11)
        assert source.height.dtype == np.float64
        before = source.height.copy()
        params = ErosionParams(n_steps=3, rain_frequency=1)
        run_pipeline(GpuErosionPipeline, source, params)

        ring = frame_mask(24, 1)
        np.testing.assert_array_equal(source.height[ring], before[ring])
        assert not np.array_equal(source.height[~ring], before[~ring])

    def test_thermal_keeps_two_rings(self, rough_terrain, thermal_params):
        before = rough_terrain.height.copy()
        thermal_params.k_t = 0.0
        run_pipeline(GpuErosionPipeline, rough_terrain, thermal_params)

        rings = frame_mask(rough_terrain.width, 2)
        np.testing.assert_array_equal(rough_terrain.height[rings], before[rings])
        assert not np.allclose(rough_terrain.height, before)


class TestBackendParity:
    """CPU and GPU agree on aggregate statistics."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"thermal_enabled": False},
            {"hydraulic_enabled": False, "k_t": 0.05},
            {"rain_frequency": 4, "k_e": 0.97},
        ],
    )
    def test_heights_match(self, overrides):
        params = ErosionParams(n_steps=12, **overrides)
        cpu_source = noise_grid(32, amplitude=4.0, seed=21)
        gpu_source = noise_grid(32, amplitude=4.0, seed=21)

        run_pipeline(CpuErosionPipeline, cpu_source, params)
        run_pipeline(GpuErosionPipeline, gpu_source, params)

        np.testing.assert_allclose(gpu_source.height, cpu_source.height, rtol=1e-3, atol=1e-3)
        assert material_total(gpu_source.height) == pytest.approx(
            material_total(cpu_source.height), rel=1e-4
        )

    def test_scores_match(self):
        params = ErosionParams(n_steps=20, rain_frequency=5)
        cpu_source = noise_grid(32, amplitude=4.0, seed=2)
        gpu_source = noise_grid(32, amplitude=4.0, seed=2)

        run_pipeline(CpuErosionPipeline, cpu_source, params)
        run_pipeline(GpuErosionPipeline, gpu_source, params)

        assert roughness_score(gpu_source.height) == pytest.approx(
            roughness_score(cpu_source.height), rel=1e-3
        )
