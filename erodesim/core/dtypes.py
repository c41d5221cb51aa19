"""Type definitions for erodesim.

Device fields use single precision, which is what compute backends are
fastest at and is plenty for a visual heightmap. Host buffers keep whatever
floating dtype the heightmap source hands over.
"""

from typing import Any

import numpy as np
import taichi as ti

# Floating-point type for all device fields and kernel scalars
DTYPE = ti.f32

# Host-side counterpart of DTYPE
NP_DTYPE = np.float32

# Taichi -> NumPy dtype mapping for host allocations
NUMPY_DTYPES = {
    ti.f32: np.float32,
    ti.f64: np.float64,
    ti.i8: np.int8,
    ti.i16: np.int16,
    ti.i32: np.int32,
    ti.i64: np.int64,
}


def numpy_dtype(dtype) -> type:
    """Map a Taichi dtype to the NumPy dtype used for host buffers."""
    if dtype not in NUMPY_DTYPES:
        raise ValueError(f"No NumPy equivalent registered for {dtype}")
    return NUMPY_DTYPES[dtype]


def taichi_dtype(dtype) -> Any:
    """Map a NumPy dtype back to its Taichi equivalent."""
    dtype = np.dtype(dtype)
    for ti_type, np_type in NUMPY_DTYPES.items():
        if np.dtype(np_type) == dtype:
            return ti_type
    raise ValueError(f"No Taichi equivalent registered for {dtype}")
