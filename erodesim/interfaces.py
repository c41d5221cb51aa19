"""Boundary contracts with the collaborators around the erosion engine.

The engine reads a heightmap from a HeightGridSource and tells a
MeshConsumer when there is new terrain to turn into a mesh. Both are
structural protocols; anything with the right attributes will do.
"""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class HeightGridSource(Protocol):
    """Supplies the heightmap to erode.

    Attributes:
        width: Grid side length in cells
        max_height: Highest elevation of the heightmap, used to scale rain
        height: (width, width) floating array, eroded in place
    """

    width: int
    max_height: float
    height: np.ndarray


@runtime_checkable
class MeshConsumer(Protocol):
    """Rebuilds a renderable surface from the current height and water."""

    def needs_upload(self) -> bool:
        """True while a previously built mesh is still waiting to be uploaded."""
        ...

    def regenerate(self, include_water: bool) -> None:
        """Request a rebuild; must not block the caller for long."""
        ...


@dataclass
class HeightGrid:
    """Plain in-memory heightmap source.

    Attributes:
        height: Square elevation array
        max_height: Defaults to the array maximum
    """

    height: np.ndarray
    max_height: float = field(default=None)  # type: ignore[assignment]

    def __post_init__(self):
        """Validate the array and fill in max_height."""
        if self.height.ndim != 2 or self.height.shape[0] != self.height.shape[1]:
            raise ValueError(f"height must be a square 2D array, got {self.height.shape}")
        if not np.issubdtype(self.height.dtype, np.floating):
            raise ValueError(f"height must be floating point, got {self.height.dtype}")
        if self.max_height is None:
            self.max_height = float(self.height.max())

    @property
    def width(self) -> int:
        """Grid side length."""
        return self.height.shape[0]


class NullMeshConsumer:
    """Mesh consumer that ignores every request (headless runs)."""

    def needs_upload(self) -> bool:
        return False

    def regenerate(self, include_water: bool) -> None:
        pass
