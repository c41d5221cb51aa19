"""Pytest fixtures and test utilities for erodesim."""

import threading

import numpy as np
import pytest

from erodesim.config import init_taichi
from erodesim.diagnostics import check_conservation
from erodesim.initialization import cone_grid, flat_grid, noise_grid, spike_grid
from erodesim.params import ErosionParams


@pytest.fixture(scope="session", autouse=True)
def taichi_init():
    """Initialize Taichi once per test session with CPU backend."""
    init_taichi(backend="cpu", debug=True)
    yield


class RecordingMeshConsumer:
    """Mesh consumer that records every regenerate() call.

    Set `busy` to make needs_upload() report a pending upload.
    """

    def __init__(self):
        self.calls: list[bool] = []
        self.busy = False
        self._lock = threading.Lock()

    def needs_upload(self) -> bool:
        return self.busy

    def regenerate(self, include_water: bool) -> None:
        with self._lock:
            self.calls.append(include_water)


@pytest.fixture
def mesh_consumer():
    """Recording mesh consumer."""
    return RecordingMeshConsumer()


@pytest.fixture
def spike():
    """Width-7 grid with a height-20 spike in the centre."""
    return spike_grid(7, peak=20.0)


@pytest.fixture
def raised_spike():
    """Width-7 grid at height 10 with a height-20 centre; max_height 20."""
    return spike_grid(7, peak=20.0, base=10.0)


@pytest.fixture
def cone():
    """32x32 cone, peak 10."""
    return cone_grid(32)


@pytest.fixture
def rough_terrain():
    """32x32 smoothed noise."""
    return noise_grid(32, amplitude=4.0, seed=7)


@pytest.fixture
def flat():
    """16x16 flat grid."""
    return flat_grid(16)


@pytest.fixture
def hydraulic_params():
    """Hydraulic-only parameters with no evaporation and no rain events."""
    return ErosionParams(
        n_steps=1,
        hydraulic_enabled=True,
        thermal_enabled=False,
        k_c=1.0,
        k_d=0.0,
        k_s=1.0,
        k_e=1.0,
        rain=1.0,
        rain_frequency=0,
    )


@pytest.fixture
def thermal_params():
    """Thermal-only parameters."""
    return ErosionParams(
        n_steps=10,
        hydraulic_enabled=False,
        thermal_enabled=True,
        k_t=0.1,
        c_t=0.2,
    )


@pytest.fixture
def assert_material_conserved():
    """Assert material conservation within tolerance."""
    return check_conservation

