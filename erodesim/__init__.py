"""
erodesim: hydraulic and thermal terrain erosion on CPU and GPU.

Erodes a square heightmap with a NumPy thread-pool backend or a Taichi
compute backend, and scores the result by local slope roughness.
"""

__version__ = "0.1.0"

from erodesim.controller import ErosionController, RunStatus
from erodesim.interfaces import HeightGrid, HeightGridSource, MeshConsumer, NullMeshConsumer
from erodesim.kernels.protocol import ErosionBackend
from erodesim.params import EngineConfig, ErosionParams, PreviewParams

__all__ = [
    "ErosionController",
    "RunStatus",
    "ErosionBackend",
    "ErosionParams",
    "PreviewParams",
    "EngineConfig",
    "HeightGrid",
    "HeightGridSource",
    "MeshConsumer",
    "NullMeshConsumer",
]
