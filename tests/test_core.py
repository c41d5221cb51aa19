"""Tests for core modules: dtypes, Taichi helpers, config."""

import numpy as np
import pytest
import taichi as ti

from erodesim.config import get_backend, initialized_backend
from erodesim.core.dtypes import DTYPE, NP_DTYPE, numpy_dtype, taichi_dtype
from erodesim.core.geometry import NEIGHBOR_DI, NEIGHBOR_DJ, is_interior


class TestDtypes:
    """Tests for dtype mapping."""

    def test_dtype_is_f32(self):
        assert DTYPE == ti.f32
        assert NP_DTYPE == np.float32

    def test_round_trip(self):
        assert taichi_dtype(numpy_dtype(ti.f64)) == ti.f64
        assert taichi_dtype(np.float32) == ti.f32

    def test_unknown_dtype(self):
        with pytest.raises(ValueError):
            taichi_dtype(np.complex64)


class TestTaichiHelpers:
    """Tests for helpers used inside kernels."""

    def test_neighbor_vectors_shape(self):
        assert NEIGHBOR_DI.n == 8
        assert NEIGHBOR_DJ.n == 8

    @pytest.mark.parametrize(
        "i, j, margin, expected",
        [
            (5, 5, 1, 1),
            (1, 5, 1, 1),
            (1, 5, 2, 0),
            (8, 8, 1, 1),
            (9, 5, 1, 0),
            (5, 0, 1, 0),
        ],
    )
    def test_is_interior(self, i, j, margin, expected):
        @ti.kernel
        def check(i: ti.i32, j: ti.i32, margin: ti.i32) -> ti.i32:
            result = 0
            if is_interior(i, j, 10, margin):
                result = 1
            return result

        assert check(i, j, margin) == expected


class TestConfig:
    """Tests for backend selection."""

    def test_session_backend(self):
        assert initialized_backend() == "cpu"

    @pytest.mark.parametrize("name", ["cpu", "cuda", "vulkan", "metal"])
    def test_env_override(self, monkeypatch, name):
        monkeypatch.setenv("ERODESIM_BACKEND", name)
        assert get_backend() == name

    def test_env_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("ERODESIM_BACKEND", "CPU")
        assert get_backend() == "cpu"

    def test_invalid_env(self, monkeypatch):
        monkeypatch.setenv("ERODESIM_BACKEND", "tpu")
        with pytest.raises(ValueError, match="ERODESIM_BACKEND"):
            get_backend()
