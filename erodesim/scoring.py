"""Roughness score of a heightmap.

The score is the coefficient of variation of local slope, where the slope
of a cell is its largest absolute height difference to one of its four
axis neighbors. Only cells at least two cells away from the edge are
scored. Higher scores mean more varied, rougher terrain.
"""

import numpy as np

from erodesim.core.geometry import SCORE_MARGIN
from erodesim.errors import DegenerateScoreError


def local_slopes(height: np.ndarray, margin: int = SCORE_MARGIN) -> np.ndarray:
    """Max 4-neighbor absolute height difference for cells inside the margin.

    Returns:
        Array of shape (width - 2 * margin, width - 2 * margin), float64
    """
    width = height.shape[0]
    if width - 2 * margin <= 0:
        raise ValueError(f"width {width} leaves no cells inside a {margin}-cell border")

    h = np.asarray(height, dtype=np.float64)
    lo, hi = margin, width - margin
    centre = h[lo:hi, lo:hi]
    return np.maximum.reduce([
        np.abs(centre - h[lo - 1:hi - 1, lo:hi]),  # north
        np.abs(centre - h[lo + 1:hi + 1, lo:hi]),  # south
        np.abs(centre - h[lo:hi, lo + 1:hi + 1]),  # east
        np.abs(centre - h[lo:hi, lo - 1:hi - 1]),  # west
    ])


def roughness_score(height: np.ndarray) -> float:
    """Coefficient of variation (population std / mean) of local slope.

    Raises:
        DegenerateScoreError: If the mean slope is zero (flat terrain)
        ValueError: If the grid is too small to have scored cells
    """
    slopes = local_slopes(height)
    mean = float(slopes.mean())
    if mean == 0.0:
        raise DegenerateScoreError("mean slope is zero, roughness is undefined")
    std = float(np.sqrt(np.mean((slopes - mean) ** 2)))
    return std / mean
