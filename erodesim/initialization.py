"""Synthetic heightmaps for tests, benchmarks and demos.

Every builder returns a HeightGrid, which satisfies the HeightGridSource
protocol the controller binds to.
"""

import numpy as np

from erodesim.interfaces import HeightGrid


def flat_grid(width: int, elevation: float = 1.0, dtype=np.float64) -> HeightGrid:
    """Uniform heightmap."""
    return HeightGrid(np.full((width, width), elevation, dtype=dtype))


def spike_grid(
    width: int,
    peak: float = 20.0,
    base: float = 0.0,
    dtype=np.float64,
) -> HeightGrid:
    """Flat heightmap with a single raised cell in the centre.

    max_height is the peak, so initial moisture on the spike equals `rain`.
    """
    height = np.full((width, width), base, dtype=dtype)
    height[width // 2, width // 2] = peak
    return HeightGrid(height, max_height=peak)


def tilted_plane(
    width: int,
    slope: float = 0.01,
    direction: str = "south",
    base: float = 1.0,
    dtype=np.float64,
) -> HeightGrid:
    """Plane falling toward one edge.

    Args:
        width: Grid side length
        slope: Height drop per cell
        direction: 'south', 'north', 'east', or 'west' (downhill side)
        base: Elevation of the lowest edge
    """
    rows = np.arange(width, dtype=np.float64).reshape(-1, 1)
    cols = np.arange(width, dtype=np.float64).reshape(1, -1)

    if direction == "south":
        distance = (width - 1 - rows) * np.ones((1, width))
    elif direction == "north":
        distance = rows * np.ones((1, width))
    elif direction == "east":
        distance = (width - 1 - cols) * np.ones((width, 1))
    elif direction == "west":
        distance = cols * np.ones((width, 1))
    else:
        raise ValueError(f"Unknown direction: {direction}")

    return HeightGrid((base + slope * distance).astype(dtype))


def _radius(width: int) -> np.ndarray:
    centre = (width - 1) / 2.0
    i, j = np.mgrid[0:width, 0:width]
    return np.hypot(i - centre, j - centre) / centre


def cone_grid(width: int, peak: float = 10.0, base: float = 1.0, dtype=np.float64) -> HeightGrid:
    """Cone peaking in the centre, falling linearly to `base` at the edge midpoints."""
    height = base + (peak - base) * np.clip(1.0 - _radius(width), 0.0, None)
    return HeightGrid(height.astype(dtype))


def bowl_grid(width: int, depth: float = 10.0, base: float = 1.0, dtype=np.float64) -> HeightGrid:
    """Paraboloid bowl, lowest (`base`) in the centre."""
    height = base + depth * _radius(width) ** 2
    return HeightGrid(height.astype(dtype))


def noise_grid(
    width: int,
    amplitude: float = 1.0,
    base: float = 5.0,
    seed: int | None = 42,
    dtype=np.float64,
) -> HeightGrid:
    """Smoothed uniform noise, a cheap stand-in for a procedural heightmap."""
    rng = np.random.default_rng(seed)
    noise = rng.uniform(0.0, 1.0, (width, width))
    # one pass of a 3x3 box filter
    padded = np.pad(noise, 1, mode="edge")
    smooth = sum(
        padded[1 + di:1 + di + width, 1 + dj:1 + dj + width]
        for di in (-1, 0, 1)
        for dj in (-1, 0, 1)
    ) / 9.0
    return HeightGrid((base + amplitude * smooth).astype(dtype))


def from_dem(dem: np.ndarray, max_height: float | None = None) -> HeightGrid:
    """Wrap a DEM array as a heightmap source.

    Args:
        dem: Square 2D array of elevations; copied so the caller's array is
            left untouched
        max_height: Rain normalization (default: DEM maximum)
    """
    if dem.ndim != 2 or dem.shape[0] != dem.shape[1]:
        raise ValueError(f"DEM must be square, got shape {dem.shape}")
    height = np.array(dem, dtype=np.result_type(dem.dtype, np.float32), copy=True)
    return HeightGrid(height, max_height=max_height)
