"""Grid geometry and neighbor indexing for erodesim.

This module centralizes all spatial indexing logic:
- GridGeometry: Immutable dataclass holding the square grid width
- Neighbor vectors: 8-connectivity (Moore) offsets shared by both backends
- Helper functions: Boundary checks for host slicing and Taichi kernels

8-Connectivity Layout (clockwise from East):
    Index:  5  6  7
            4  X  0
            3  2  1

    Direction 0: East  (+j)
    Direction 1: SE    (+i, +j)
    Direction 2: South (+i)
    Direction 3: SW    (+i, -j)
    Direction 4: West  (-j)
    Direction 5: NW    (-i, -j)
    Direction 6: North (-i)
    Direction 7: NE    (-i, +j)

Margins: the simulation never writes the outermost ring (margin 1). Thermal
slumping also keeps the second ring fixed (margin 2), and the roughness score
only looks at cells inside a 2-cell border.
"""

from dataclasses import dataclass

import numpy as np
import taichi as ti

# Number of neighbors in 8-connectivity
NUM_NEIGHBORS: int = 8

# Fixed frame widths
HYDRAULIC_MARGIN: int = 1
THERMAL_MARGIN: int = 2
SCORE_MARGIN: int = 2

# Row offset (i): positive = South, negative = North
OFFSETS_DI: tuple[int, ...] = (0, 1, 1, 1, 0, -1, -1, -1)

# Column offset (j): positive = East, negative = West
OFFSETS_DJ: tuple[int, ...] = (1, 1, 0, -1, -1, -1, 0, 1)

NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = tuple(zip(OFFSETS_DI, OFFSETS_DJ))

# Same offsets for use inside Taichi kernels
NEIGHBOR_DI = ti.Vector(list(OFFSETS_DI))
NEIGHBOR_DJ = ti.Vector(list(OFFSETS_DJ))


@dataclass(frozen=True)
class GridGeometry:
    """Immutable square grid geometry.

    Attributes:
        width: Side length of the grid in cells

    The grid uses row-major indexing where:
        - i (row) increases southward (down)
        - j (column) increases eastward (right)
        - Origin (0,0) is at the northwest corner
    """

    width: int

    def __post_init__(self):
        """Validate grid dimensions."""
        if self.width < 3:
            raise ValueError(f"width must be >= 3, got {self.width}")

    @property
    def size(self) -> int:
        """Total number of cells."""
        return self.width * self.width

    @property
    def shape(self) -> tuple[int, int]:
        """Grid shape as (width, width) tuple."""
        return (self.width, self.width)

    def row_bands(self, n_bands: int, margin: int = HYDRAULIC_MARGIN) -> list[tuple[int, int]]:
        """Split rows [margin, width - margin) into at most n_bands contiguous bands.

        Args:
            n_bands: Desired number of bands (typically the worker count)
            margin: Rows excluded at the top and bottom

        Returns:
            List of (start, stop) row ranges covering the rows exactly once
        """
        start, stop = margin, self.width - margin
        n_rows = stop - start
        if n_rows <= 0:
            return []
        n_bands = max(1, min(n_bands, n_rows))
        edges = [start + (n_rows * b) // n_bands for b in range(n_bands + 1)]
        return [(edges[b], edges[b + 1]) for b in range(n_bands)]


def frame_mask(width: int, margin: int) -> np.ndarray:
    """Boolean (width, width) mask that is True on the outer `margin` rings."""
    mask = np.ones((width, width), dtype=bool)
    mask[margin:width - margin, margin:width - margin] = False
    return mask


# =============================================================================
# Taichi helper functions for use in kernels
# =============================================================================


@ti.func
def is_interior(i, j, width, margin):
    """Check if cell (i, j) lies inside a `margin`-wide fixed frame.

    Args:
        i: Row index
        j: Column index
        width: Grid side length
        margin: Width of the fixed frame

    Returns:
        True if the cell is not part of the frame
    """
    return i >= margin and i < width - margin and j >= margin and j < width - margin
