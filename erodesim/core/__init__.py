"""Core infrastructure: types, geometry, and constants."""

from erodesim.core.dtypes import DTYPE, NP_DTYPE, numpy_dtype
from erodesim.core.geometry import (
    HYDRAULIC_MARGIN,
    NEIGHBOR_DI,
    NEIGHBOR_DJ,
    NEIGHBOR_OFFSETS,
    NUM_NEIGHBORS,
    SCORE_MARGIN,
    THERMAL_MARGIN,
    GridGeometry,
    frame_mask,
    is_interior,
)

__all__ = [
    "DTYPE",
    "NP_DTYPE",
    "numpy_dtype",
    "GridGeometry",
    "HYDRAULIC_MARGIN",
    "THERMAL_MARGIN",
    "SCORE_MARGIN",
    "NEIGHBOR_DI",
    "NEIGHBOR_DJ",
    "NEIGHBOR_OFFSETS",
    "NUM_NEIGHBORS",
    "frame_mask",
    "is_interior",
]
