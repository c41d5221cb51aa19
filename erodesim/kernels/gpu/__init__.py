"""Taichi erosion backend (device compute dispatches)."""

from erodesim.kernels.gpu.pipeline import GpuErosionPipeline

__all__ = ["GpuErosionPipeline"]
