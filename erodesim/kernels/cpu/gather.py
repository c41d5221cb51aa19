"""
Gather phase of the CPU scatter-add.

Scan sweeps record, per source cell and per direction k, the amount sent to
neighbor k in an emission field of shape (width, width, 8). The gather sweep
then has every target cell pull its neighbors' emissions. Each band writes
only its own target rows, so no two workers ever update the same cell.
"""

import numpy as np

from erodesim.core.geometry import NEIGHBOR_OFFSETS


def gather_emissions(
    out: np.ndarray, emit: np.ndarray, margin: int, rows: tuple[int, int]
) -> None:
    """Add incoming emissions to `out` for target rows [t0, t1).

    Args:
        out: Target "out" buffer, shape (width, width)
        emit: Per-direction emissions, shape (width, width, 8)
        margin: Frame width of the sources (emissions outside are zero)
        rows: Target row band; may include frame rows
    """
    t0, t1 = rows
    width = out.shape[0]
    lo, hi = margin, width - margin

    for k, (di, dj) in enumerate(NEIGHBOR_OFFSETS):
        # source s sends to target s + (di, dj)
        s0 = max(t0 - di, lo)
        s1 = min(t1 - di, hi)
        if s0 >= s1:
            continue
        out[s0 + di:s1 + di, lo + dj:hi + dj] += emit[s0:s1, lo:hi, k]
