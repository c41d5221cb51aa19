"""Base field container and specification classes.

This module provides the foundation for declarative field management:
- FieldSpec: Describes a field's name, dtype, shape, and role
- FieldRole: Enum categorizing field usage patterns
- FieldStorage: Where a container keeps its fields (host NumPy or device Taichi)
- FieldContainer: Manages field lifecycle, allocation, and double-buffering

Usage:
    container = FieldContainer(geometry, FieldStorage.DEVICE)
    container.register(FieldSpec("water", DTYPE, FieldRole.STATE, double_buffer=True))
    container.allocate()
    water = container.get("water")
    water_out = container.get_buffer("water")
    ...
    container.release()

Device fields are placed in their own SNode tree through ti.FieldsBuilder so
that release() can hand the memory back to the runtime.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

import numpy as np
import taichi as ti

from erodesim.core.dtypes import numpy_dtype
from erodesim.core.geometry import GridGeometry


class FieldRole(Enum):
    """Categorizes field usage patterns for documentation and validation.

    STATE: Simulation state (height, water, sediment) - double-buffered
    DERIVED: Recomputed from state every step (neighbor delta totals)
    SCRATCH: Temporary workspace for intermediate computations
    """

    STATE = auto()
    DERIVED = auto()
    SCRATCH = auto()


class FieldStorage(Enum):
    """Memory space a FieldContainer allocates in."""

    HOST = auto()  # NumPy arrays in process memory
    DEVICE = auto()  # Taichi fields on the initialized arch


@dataclass(frozen=True)
class FieldSpec:
    """Immutable specification for a grid field.

    Attributes:
        name: Field identifier (snake_case)
        dtype: Taichi data type (ti.f32, ti.i8, etc.); mapped to NumPy on host
        role: Field usage category
        double_buffer: If True, allocate a companion "_out" buffer
        extra_dims: Additional dimensions beyond (width, width), e.g. (8,)
        description: Human-readable description

    The field shape is (width, width) + extra_dims, where width comes from
    the GridGeometry passed to the FieldContainer.
    """

    name: str
    dtype: Any  # Taichi dtype
    role: FieldRole
    double_buffer: bool = False
    extra_dims: tuple[int, ...] = ()
    description: str = ""

    def __post_init__(self):
        """Validate field specification."""
        if not self.name:
            raise ValueError("Field name cannot be empty")
        if not self.name.islower() or not self.name.replace("_", "").isalnum():
            raise ValueError(
                f"Field name must be snake_case, got: {self.name}"
            )
        if self.double_buffer and self.role != FieldRole.STATE:
            raise ValueError(
                f"Only state fields can be double-buffered, got '{self.name}'"
            )

    def buffer_name(self) -> str:
        """Get the name for this field's output buffer."""
        return f"{self.name}_out"


class FieldContainer:
    """Manages grid field lifecycle with declarative specifications.

    A FieldContainer holds a collection of fields associated with a specific
    grid geometry, either as NumPy arrays (host) or Taichi fields (device).
    Fields are registered via FieldSpec, then allocated together.

    Host containers may adopt an externally owned array for a field (the
    heightmap the caller wants eroded in place) instead of allocating one.

    Example:
        container = FieldContainer(GridGeometry(64), FieldStorage.HOST)
        container.register(FieldSpec("height", DTYPE, FieldRole.STATE, double_buffer=True))
        container.adopt("height", heightmap)
        container.allocate()

        container["height"] is heightmap  # True
    """

    def __init__(self, geometry: GridGeometry, storage: FieldStorage = FieldStorage.HOST):
        """Initialize container with grid geometry.

        Args:
            geometry: Grid dimensions
            storage: Memory space for the fields
        """
        self._geometry = geometry
        self._storage = storage
        self._specs: dict[str, FieldSpec] = {}
        self._fields: dict[str, Any] = {}
        self._adopted: dict[str, np.ndarray] = {}
        self._snode_tree = None
        self._allocated = False

    @property
    def geometry(self) -> GridGeometry:
        """Get the grid geometry."""
        return self._geometry

    @property
    def storage(self) -> FieldStorage:
        """Get the memory space of this container."""
        return self._storage

    @property
    def allocated(self) -> bool:
        """Check if fields have been allocated."""
        return self._allocated

    def register(self, spec: FieldSpec) -> None:
        """Register a field specification.

        Args:
            spec: Field specification to register

        Raises:
            ValueError: If name already registered
            RuntimeError: If fields already allocated
        """
        if self._allocated:
            raise RuntimeError("Cannot register fields after allocation")
        if spec.name in self._specs:
            raise ValueError(f"Field '{spec.name}' already registered")
        if spec.double_buffer and spec.buffer_name() in self._specs:
            raise ValueError(
                f"Buffer name '{spec.buffer_name()}' conflicts with existing field"
            )
        self._specs[spec.name] = spec

    def register_many(self, specs: list[FieldSpec]) -> None:
        """Register multiple field specifications.

        Args:
            specs: List of field specifications to register
        """
        for spec in specs:
            self.register(spec)

    def adopt(self, name: str, array: np.ndarray) -> None:
        """Use an existing host array as the primary buffer of a field.

        Args:
            name: Registered field name
            array: Array with the field's shape; it is written in place

        Raises:
            ValueError: On device containers or shape mismatch
        """
        if self._storage != FieldStorage.HOST:
            raise ValueError("Only host containers can adopt arrays")
        if self._allocated:
            raise RuntimeError("Cannot adopt arrays after allocation")
        spec = self.get_spec(name)
        shape = self._geometry.shape + spec.extra_dims
        if array.shape != shape:
            raise ValueError(
                f"Array for '{name}' has shape {array.shape}, expected {shape}"
            )
        self._adopted[name] = array

    def allocate(self) -> None:
        """Allocate all registered fields.

        Double-buffered fields get a companion field with suffix "_out".
        Adopted host arrays are used as-is and their buffers take the
        adopted array's dtype.

        Raises:
            RuntimeError: If already allocated or no fields registered
        """
        if self._allocated:
            raise RuntimeError("Fields already allocated")
        if not self._specs:
            raise RuntimeError("No fields registered")

        if self._storage == FieldStorage.HOST:
            self._allocate_host()
        else:
            self._allocate_device()

        self._allocated = True

    def _allocate_host(self) -> None:
        for name, spec in self._specs.items():
            shape = self._geometry.shape + spec.extra_dims
            if name in self._adopted:
                primary = self._adopted[name]
            else:
                primary = np.zeros(shape, dtype=numpy_dtype(spec.dtype))
            self._fields[name] = primary

            if spec.double_buffer:
                self._fields[spec.buffer_name()] = np.zeros_like(primary)

    def _allocate_device(self) -> None:
        builder = ti.FieldsBuilder()
        for name, spec in self._specs.items():
            shape = self._geometry.shape + spec.extra_dims
            axes = ti.ijk if spec.extra_dims else ti.ij
            names = [name]
            if spec.double_buffer:
                names.append(spec.buffer_name())
            for field_name in names:
                f = ti.field(dtype=spec.dtype)
                builder.dense(axes, shape).place(f)
                self._fields[field_name] = f
        self._snode_tree = builder.finalize()

    def release(self) -> None:
        """Drop all fields; device memory is returned to the Taichi runtime."""
        if self._snode_tree is not None:
            self._snode_tree.destroy()
            self._snode_tree = None
        self._fields.clear()
        self._adopted.clear()
        self._allocated = False

    def get(self, name: str) -> Any:
        """Get a field by name.

        Args:
            name: Field name

        Returns:
            The NumPy array or Taichi field

        Raises:
            KeyError: If field not found
            RuntimeError: If fields not allocated
        """
        if not self._allocated:
            raise RuntimeError("Fields not yet allocated")
        if name not in self._fields:
            raise KeyError(f"Field '{name}' not found")
        return self._fields[name]

    def __getitem__(self, name: str) -> Any:
        """Get a field by name using bracket notation."""
        return self.get(name)

    def get_buffer(self, name: str) -> Any:
        """Get the output buffer for a field.

        Args:
            name: Primary field name

        Returns:
            The buffer field (name_out)

        Raises:
            ValueError: If field is not double-buffered
        """
        spec = self.get_spec(name)
        if not spec.double_buffer:
            raise ValueError(f"Field '{name}' is not double-buffered")
        return self.get(spec.buffer_name())

    def get_spec(self, name: str) -> FieldSpec:
        """Get the specification for a field.

        Args:
            name: Field name

        Returns:
            The FieldSpec for this field
        """
        if name not in self._specs:
            raise KeyError(f"Field '{name}' not registered")
        return self._specs[name]

    @property
    def memory_bytes(self) -> int:
        """Estimate total memory usage in bytes.

        Returns:
            Approximate memory usage for all allocated fields, buffers included
        """
        if not self._allocated:
            return 0

        total = 0
        for name, spec in self._specs.items():
            n_elements = int(np.prod(self._geometry.shape + spec.extra_dims))
            itemsize = np.dtype(numpy_dtype(spec.dtype)).itemsize
            field_bytes = n_elements * itemsize
            total += field_bytes
            if spec.double_buffer:
                total += field_bytes

        return total

    @property
    def memory_mb(self) -> float:
        """Estimate total memory usage in megabytes."""
        return self.memory_bytes / (1024 * 1024)

    def __contains__(self, name: str) -> bool:
        """Check if a field is registered."""
        return name in self._specs

    def __len__(self) -> int:
        """Number of registered fields (not counting buffers)."""
        return len(self._specs)
