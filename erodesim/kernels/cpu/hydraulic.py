"""
Hydraulic erosion sweeps for the CPU pipeline.

Water on each cell flows to lower neighbors (Moore neighborhood) in
proportion to the drop in water surface. Moving water carries sediment up to
its capacity: surplus sediment is deposited, spare capacity dissolves the
bed. Cells with no outflow toward a neighbor that is not lower pool and
deposit a fraction of their sediment.

The sweep is vectorized over a band of rows with the 8 directions stacked
on a leading axis.
"""

import numpy as np

from erodesim.core.geometry import HYDRAULIC_MARGIN, NEIGHBOR_OFFSETS
from erodesim.fields.scratch import ScratchFields
from erodesim.fields.state import StateFields
from erodesim.kernels.cpu.gather import gather_emissions


def neighbor_stack(grid: np.ndarray, rows: tuple[int, int], margin: int) -> np.ndarray:
    """Stack the 8 neighbor views of a band's cells.

    Returns:
        Array of shape (8, r1 - r0, width - 2 * margin); entry k holds the
        value of neighbor k for every cell in the band
    """
    r0, r1 = rows
    width = grid.shape[0]
    lo, hi = margin, width - margin
    return np.stack(
        [grid[r0 + di:r1 + di, lo + dj:hi + dj] for di, dj in NEIGHBOR_OFFSETS]
    )


def hydraulic_scan(
    state: StateFields,
    scratch: ScratchFields,
    k_c: float,
    k_d: float,
    k_s: float,
    rows: tuple[int, int],
) -> None:
    """Scan phase of the hydraulic pass for one band.

    Applies each cell's own height, water and sediment changes to its "out"
    buffers and records what it sends to each neighbor in the emission
    fields.
    """
    r0, r1 = rows
    width = state.height.shape[0]
    band = (slice(r0, r1), slice(HYDRAULIC_MARGIN, width - HYDRAULIC_MARGIN))

    height = state.height[band]
    water = state.water[band]
    sediment = state.sediment[band]

    nb_height = neighbor_stack(state.height, rows, HYDRAULIC_MARGIN)
    nb_surface = nb_height + neighbor_stack(state.water, rows, HYDRAULIC_MARGIN)
    delta_h = (height + water) - nb_surface

    wet = water > 0.0
    downhill = wet & (delta_h > 0.0)
    total_delta_h = np.where(downhill, delta_h, 0.0).sum(axis=0)
    share = np.where(downhill, delta_h / np.where(total_delta_h > 0.0, total_delta_h, 1.0), 0.0)

    delta_w = np.minimum(water, delta_h) * share
    delta_s = sediment * share
    capacity = delta_w * k_c

    depositing = downhill & (delta_s >= capacity)
    eroding = downhill & ~depositing
    # no outflow toward a neighbor that is not lower: pool and settle
    pooling = wet & (delta_h <= 0.0) & (height <= nb_height)

    pooled = np.where(pooling, k_d * sediment, 0.0)
    deposited = np.where(depositing, k_d * (delta_s - capacity), 0.0)
    eroded = np.where(eroding, k_s * (capacity - delta_s), 0.0)

    sent_water = np.where(downhill, delta_w, 0.0)
    sent_sediment = np.where(depositing, capacity, np.where(eroding, delta_s + eroded, 0.0))
    lost_sediment = np.where(depositing, deposited + capacity, np.where(eroding, delta_s, 0.0))

    state.height_out[band] += (pooled + deposited - eroded).sum(axis=0)
    state.sediment_out[band] -= (pooled + lost_sediment).sum(axis=0)
    state.water_out[band] -= sent_water.sum(axis=0)

    scratch.emit_water[band] = np.moveaxis(sent_water, 0, -1)
    scratch.emit_sediment[band] = np.moveaxis(sent_sediment, 0, -1)


def hydraulic_gather(state: StateFields, scratch: ScratchFields, rows: tuple[int, int]) -> None:
    """Gather phase of the hydraulic pass for one band of target rows."""
    gather_emissions(state.water_out, scratch.emit_water, HYDRAULIC_MARGIN, rows)
    gather_emissions(state.sediment_out, scratch.emit_sediment, HYDRAULIC_MARGIN, rows)
