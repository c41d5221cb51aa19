"""Grid storage shared by the erosion backends.

GridStorage owns one host container (NumPy) and, optionally, one device
container (Taichi) for a bound heightmap source:

    host:   height/height_out, water/water_out, sediment/sediment_out,
            emit_water, emit_sediment, emit_height
    device: the same state fields, plus total_delta_hw and total_delta_h

The host "height" buffer is the source's own array, so the erosion result
lands where the caller (and the mesh consumer) already look for it.
Sediment is never copied back from the device.
"""

import logging

import numpy as np

from erodesim.core.dtypes import DTYPE, taichi_dtype
from erodesim.core.geometry import GridGeometry
from erodesim.fields.base import FieldContainer, FieldStorage
from erodesim.fields.scratch import ScratchFields, create_delta_specs, create_emission_specs
from erodesim.fields.state import StateFields, create_state_specs
from erodesim.interfaces import HeightGridSource

logger = logging.getLogger(__name__)


class GridStorage:
    """Double-buffered erosion fields for a bound heightmap source.

    Attributes:
        geometry: Grid dimensions
        max_height: Rain normalization constant taken from the source
        host: Host state fields
        host_scratch: Host emission fields
        device: Device state fields, or None
        device_scratch: Device delta fields, or None
    """

    def __init__(self, source: HeightGridSource, use_gpu: bool = True):
        """Allocate buffers for `source`.

        Args:
            source: Heightmap source; its height array is adopted, not copied
            use_gpu: Also allocate device mirrors (Taichi must be initialized)
        """
        height = source.height
        if height.shape != (source.width, source.width):
            raise ValueError(
                f"height shape {height.shape} doesn't match width {source.width}"
            )
        if not np.issubdtype(height.dtype, np.floating):
            raise ValueError(f"height must be floating point, got {height.dtype}")
        if source.max_height <= 0:
            raise ValueError(f"max_height must be positive, got {source.max_height}")

        self.geometry = GridGeometry(source.width)
        self.max_height = float(source.max_height)

        host_dtype = taichi_dtype(height.dtype)
        host = FieldContainer(self.geometry, FieldStorage.HOST)
        host.register_many(create_state_specs(host_dtype))
        host.register_many(create_emission_specs(host_dtype))
        host.adopt("height", height)
        host.allocate()
        self._host = host
        self.host = StateFields(host)
        self.host_scratch = ScratchFields(host)

        self._device: FieldContainer | None = None
        self.device: StateFields | None = None
        self.device_scratch: ScratchFields | None = None
        if use_gpu:
            device = FieldContainer(self.geometry, FieldStorage.DEVICE)
            device.register_many(create_state_specs(DTYPE))
            device.register_many(create_delta_specs(DTYPE))
            device.allocate()
            self._device = device
            self.device = StateFields(device)
            self.device_scratch = ScratchFields(device)

        logger.debug(
            "Allocated grid storage (width=%d, host=%.1f MB, device=%s)",
            self.geometry.width,
            host.memory_mb,
            f"{self._device.memory_mb:.1f} MB" if self._device else "none",
        )

    @property
    def width(self) -> int:
        """Grid side length."""
        return self.geometry.width

    @property
    def size(self) -> int:
        """Number of cells."""
        return self.geometry.size

    @property
    def has_device(self) -> bool:
        """Whether device mirrors were allocated."""
        return self._device is not None

    @property
    def memory_bytes(self) -> int:
        """Host plus device memory held by this storage."""
        total = self._host.memory_bytes
        if self._device is not None:
            total += self._device.memory_bytes
        return total

    def release(self) -> None:
        """Free host buffers and destroy device mirrors."""
        self._host.release()
        if self._device is not None:
            self._device.release()
        self._device = None
        self.device = None
        self.device_scratch = None
