"""
Taichi configuration and initialization.

Environment variables:
    ERODESIM_BACKEND: 'cuda', 'vulkan', 'metal', 'cpu', or 'auto' (default)
    ERODESIM_DEBUG: '1' to enable debug mode

The GPU erosion pipeline runs on whichever arch is picked here. Falls back to
CPU if no GPU is found, in which case the "GPU" pipeline still works, it is
just Taichi's own multithreaded CPU backend.
"""

import logging
import os
import subprocess
import sys

import taichi as ti

from erodesim.core.dtypes import DTYPE

logger = logging.getLogger(__name__)

_ARCHS = {"cuda": ti.cuda, "vulkan": ti.vulkan, "metal": ti.metal, "cpu": ti.cpu}

# Backend name once init_taichi has run in this process
_initialized_backend: str | None = None


def get_backend() -> str:
    """Determine Taichi backend: check env var, then auto-detect."""
    env = os.environ.get("ERODESIM_BACKEND", "auto").lower()

    if env in _ARCHS:
        return env
    if env != "auto":
        raise ValueError(f"Invalid ERODESIM_BACKEND: {env}")

    # Auto-detect CUDA
    try:
        result = subprocess.run(
            ["nvidia-smi", "-L"], capture_output=True, text=True, timeout=5
        )
        if result.returncode == 0 and "GPU" in result.stdout:
            return "cuda"
    except (FileNotFoundError, subprocess.TimeoutExpired):
        pass

    if sys.platform == "darwin":
        return "metal"

    return "cpu"


def init_taichi(
    backend: str | None = None,
    debug: bool | None = None,
    kernel_profiler: bool = False,
) -> str:
    """Initialize Taichi with specified or auto-detected backend."""
    global _initialized_backend

    if backend is None:
        backend = get_backend()
    if debug is None:
        debug = os.environ.get("ERODESIM_DEBUG", "0") == "1"

    arch = _ARCHS.get(backend)
    if arch is None:
        raise ValueError(f"Unknown backend: {backend}")

    ti.init(
        arch=arch,
        default_fp=DTYPE,
        debug=debug,
        offline_cache=True,
        random_seed=42,
        kernel_profiler=kernel_profiler,
    )
    _initialized_backend = backend
    logger.info("Taichi initialized (backend=%s, debug=%s)", backend, debug)
    return backend


def ensure_taichi() -> str:
    """Initialize Taichi with auto-detected settings unless already done."""
    if _initialized_backend is None:
        return init_taichi()
    return _initialized_backend


def initialized_backend() -> str | None:
    """Name of the backend Taichi was initialized with, or None."""
    return _initialized_backend
