"""Tests for material bookkeeping and synthetic terrain builders."""

import numpy as np
import pytest

from erodesim.diagnostics import MaterialBudget, check_conservation, material_total
from erodesim.initialization import (
    bowl_grid,
    cone_grid,
    flat_grid,
    from_dem,
    noise_grid,
    spike_grid,
    tilted_plane,
)
from erodesim.interfaces import HeightGridSource
from erodesim.kernels.protocol import RunFluxes


class TestMaterialTotal:
    """Tests for material_total."""

    def test_excludes_frame(self):
        height = np.ones((5, 5))
        height[0, 0] = 100.0
        assert material_total(height) == 9.0

    def test_includes_sediment(self):
        height = np.ones((5, 5))
        sediment = np.full((5, 5), 0.5)
        assert material_total(height, sediment) == pytest.approx(13.5)

    def test_float32_summed_in_float64(self):
        height = np.full((102, 102), 0.1, dtype=np.float32)
        assert material_total(height) == pytest.approx(1000.0, rel=1e-6)


class TestMaterialBudget:
    """Tests for MaterialBudget."""

    def test_record_accumulates(self):
        budget = MaterialBudget(initial_material=10.0)
        budget.record(RunFluxes(boundary_water=1.0, boundary_sediment=0.5))
        budget.record(RunFluxes(boundary_water=2.0, boundary_sediment=0.25))
        assert budget.runs == 2
        assert budget.cumulative_boundary_water == 3.0
        assert budget.expected_material() == pytest.approx(9.25)

    def test_check_passes(self):
        budget = MaterialBudget(initial_material=10.0, cumulative_boundary_sediment=1.0)
        assert budget.check(9.0) == 0.0

    def test_check_fails(self):
        budget = MaterialBudget(initial_material=10.0)
        with pytest.raises(AssertionError, match="Material conservation violated"):
            budget.check(10.5)


class TestCheckConservation:
    """Tests for check_conservation."""

    def test_balanced(self):
        check_conservation(10.0, 8.0, {"outflow": 2.0})

    def test_unbalanced(self):
        with pytest.raises(AssertionError, match="not conserved"):
            check_conservation(10.0, 9.0, {"outflow": 2.0})


class TestInitialization:
    """Tests for synthetic heightmaps."""

    @pytest.mark.parametrize(
        "source",
        [
            flat_grid(8),
            spike_grid(9),
            tilted_plane(8),
            cone_grid(8),
            bowl_grid(8),
            noise_grid(8),
        ],
    )
    def test_builders_satisfy_protocol(self, source):
        assert isinstance(source, HeightGridSource)
        assert source.height.shape == (source.width, source.width)
        assert source.max_height > 0

    def test_spike(self):
        source = spike_grid(7, peak=20.0)
        assert source.height[3, 3] == 20.0
        assert source.height.sum() == 20.0
        assert source.max_height == 20.0

    @pytest.mark.parametrize("direction", ["north", "south", "east", "west"])
    def test_tilted_plane_directions(self, direction):
        height = tilted_plane(6, slope=1.0, direction=direction, base=0.0).height
        assert height.min() == 0.0
        assert height.max() == 5.0

    def test_tilted_plane_bad_direction(self):
        with pytest.raises(ValueError, match="Unknown direction"):
            tilted_plane(6, direction="up")

    def test_cone_peaks_in_centre(self):
        height = cone_grid(33, peak=10.0, base=1.0).height
        assert height[16, 16] == pytest.approx(10.0)
        assert height[0, 0] == pytest.approx(1.0)

    def test_bowl_lowest_in_centre(self):
        height = bowl_grid(33).height
        assert height.argmin() == 16 * 33 + 16

    def test_noise_reproducible(self):
        np.testing.assert_array_equal(noise_grid(16, seed=1).height, noise_grid(16, seed=1).height)

    def test_from_dem_copies(self):
        dem = np.arange(16, dtype=np.float32).reshape(4, 4)
        source = from_dem(dem, max_height=20.0)
        source.height[0, 0] = -1.0
        assert dem[0, 0] == 0.0
        assert source.max_height == 20.0
        assert source.height.dtype == np.float32

    def test_from_dem_integer_becomes_float(self):
        source = from_dem(np.ones((4, 4), dtype=np.int16))
        assert np.issubdtype(source.height.dtype, np.floating)

    def test_from_dem_rejects_non_square(self):
        with pytest.raises(ValueError, match="square"):
            from_dem(np.zeros((3, 4)))
