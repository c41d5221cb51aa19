"""
Thermal weathering sweeps for the CPU pipeline.

Material on a cell that stands more than the talus threshold k_t above a
neighbor slides toward it. The amount moved to each qualifying neighbor is
c_t * (dH - k_t), weighted by that neighbor's share of the total drop.

Both the source cells and the receiving cells are restricted to the
thermal interior (two-ring frame).
"""

import numpy as np

from erodesim.core.geometry import NEIGHBOR_OFFSETS, THERMAL_MARGIN
from erodesim.fields.scratch import ScratchFields
from erodesim.fields.state import StateFields
from erodesim.kernels.cpu.gather import gather_emissions
from erodesim.kernels.cpu.hydraulic import neighbor_stack


def _valid_neighbors(width: int, rows: tuple[int, int]) -> np.ndarray:
    """Mask (8, rows, cols) of neighbors inside the thermal interior."""
    r0, r1 = rows
    lo, hi = THERMAL_MARGIN, width - THERMAL_MARGIN
    row_idx = np.arange(r0, r1)[:, None]
    col_idx = np.arange(lo, hi)[None, :]
    return np.stack(
        [
            (row_idx + di >= lo) & (row_idx + di < hi) & (col_idx + dj >= lo) & (col_idx + dj < hi)
            for di, dj in NEIGHBOR_OFFSETS
        ]
    )


def thermal_scan(
    state: StateFields,
    scratch: ScratchFields,
    k_t: float,
    c_t: float,
    rows: tuple[int, int],
) -> None:
    """Scan phase of the thermal pass for one band."""
    r0, r1 = rows
    width = state.height.shape[0]
    band = (slice(r0, r1), slice(THERMAL_MARGIN, width - THERMAL_MARGIN))

    height = state.height[band]
    delta_h = height - neighbor_stack(state.height, rows, THERMAL_MARGIN)

    steep = _valid_neighbors(width, rows) & (delta_h > k_t)
    total_delta_h = np.where(steep, delta_h, 0.0).sum(axis=0)
    safe_total = np.where(total_delta_h > 0.0, total_delta_h, 1.0)

    moved = np.where(steep, c_t * (delta_h - k_t) * (delta_h / safe_total), 0.0)

    state.height_out[band] -= moved.sum(axis=0)
    scratch.emit_height[band] = np.moveaxis(moved, 0, -1)


def thermal_gather(state: StateFields, scratch: ScratchFields, rows: tuple[int, int]) -> None:
    """Gather phase of the thermal pass for one band of target rows."""
    gather_emissions(state.height_out, scratch.emit_height, THERMAL_MARGIN, rows)
