"""
Buffer maintenance sweeps for the CPU pipeline: initial moisture, rain,
evaporation and out -> in rotation, and boundary outflow accounting.

Every sweep takes a `rows` band and only touches those rows, so bands can
run concurrently on the thread pool.
"""

import numpy as np

from erodesim.core.geometry import HYDRAULIC_MARGIN, frame_mask
from erodesim.fields.state import StateFields
from erodesim.kernels.protocol import RunFluxes

# Water depth below which a cell counts as dry
EPSILON_DRY = 1e-6


def initialize_moisture(
    state: StateFields, rain: float, max_height: float, rows: tuple[int, int]
) -> None:
    """Seed water proportional to elevation and clear sediment.

    Interior cells get water = rain * height / max_height. The "out"
    buffers of the band are primed with the "in" values.
    """
    r0, r1 = rows
    width = state.height.shape[0]
    cols = slice(HYDRAULIC_MARGIN, width - HYDRAULIC_MARGIN)
    band = (slice(r0, r1), cols)

    state.water[band] = rain * (state.height[band] / max_height)
    state.sediment[band] = 0.0

    state.height_out[r0:r1] = state.height[r0:r1]
    state.water_out[r0:r1] = state.water[r0:r1]
    state.sediment_out[r0:r1] = state.sediment[r0:r1]


def prime_frame(state: StateFields) -> None:
    """Copy the fixed frame rows (top and bottom) into the "out" buffers."""
    for row in (0, state.height.shape[0] - 1):
        state.height_out[row] = state.height[row]
        state.water_out[row] = state.water[row]
        state.sediment_out[row] = state.sediment[row]


def distribute_rain(
    state: StateFields, rain: float, max_height: float, rows: tuple[int, int]
) -> None:
    """Add a rain event to the band, mirrored into water_out."""
    r0, r1 = rows
    width = state.height.shape[0]
    band = (slice(r0, r1), slice(HYDRAULIC_MARGIN, width - HYDRAULIC_MARGIN))

    state.water[band] += rain * (state.height[band] / max_height)
    state.water_out[band] = state.water[band]


def evaporate_and_rotate(state: StateFields, k_e: float, rows: tuple[int, int]) -> None:
    """Evaporate water, settle sediment in dry cells, then copy out -> in.

    A cell whose water drops below EPSILON_DRY dries out: the sediment it
    held at the start of the step settles into its height, and its water
    and sediment are zeroed.
    """
    r0, r1 = rows
    width = state.height.shape[0]
    band = (slice(r0, r1), slice(HYDRAULIC_MARGIN, width - HYDRAULIC_MARGIN))

    water = state.water_out[band] * k_e
    dry = water < EPSILON_DRY

    state.height_out[band] += np.where(dry, state.sediment[band], 0.0)
    state.sediment_out[band] = np.where(dry, 0.0, state.sediment_out[band])
    state.water_out[band] = np.where(dry, 0.0, water)

    state.height[band] = state.height_out[band]
    state.water[band] = state.water_out[band]
    state.sediment[band] = state.sediment_out[band]


def drain_boundary(state: StateFields) -> RunFluxes:
    """Collect what was pushed into the frame and reset its "out" cells.

    The hydraulic pass may scatter water and sediment into frame cells,
    which are never rotated; their "out" excess is material that left the
    simulated area.
    """
    frame = frame_mask(state.height.shape[0], HYDRAULIC_MARGIN)

    water = float(np.sum(state.water_out[frame] - state.water[frame], dtype=np.float64))
    sediment = float(
        np.sum(state.sediment_out[frame] - state.sediment[frame], dtype=np.float64)
    )

    state.water_out[frame] = state.water[frame]
    state.sediment_out[frame] = state.sediment[frame]
    state.height_out[frame] = state.height[frame]

    return RunFluxes(boundary_water=water, boundary_sediment=sediment)
