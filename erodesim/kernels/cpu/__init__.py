"""
NumPy erosion backend (reference implementation).

Sweeps run over row bands on a thread pool. Neighbor transfers use a
two-phase gather (scan, then gather) so that no two workers write the same
cell.
"""

from erodesim.kernels.cpu.buffers import EPSILON_DRY
from erodesim.kernels.cpu.pipeline import CpuErosionPipeline

__all__ = ["CpuErosionPipeline", "EPSILON_DRY"]
