"""State field specifications and access wrapper.

State fields are the quantities the erosion step evolves:
- height: Terrain elevation
- water: Surface water depth (>= 0)
- sediment: Suspended sediment mass (>= 0)

All state fields are double-buffered: each step reads the "in" buffer and
accumulates into the "out" buffer, then copies out -> in.
"""

from typing import Any

from erodesim.core.dtypes import DTYPE
from erodesim.fields.base import FieldContainer, FieldRole, FieldSpec

STATE_FIELDS = ("height", "water", "sediment")


def create_state_specs(dtype: Any = DTYPE) -> list[FieldSpec]:
    """Create specifications for the double-buffered state fields.

    Args:
        dtype: Floating-point type (default: DTYPE from dtypes.py)

    Returns:
        List of FieldSpec for height, water and sediment
    """
    return [
        FieldSpec(
            name="height",
            dtype=dtype,
            role=FieldRole.STATE,
            double_buffer=True,
            description="Terrain elevation",
        ),
        FieldSpec(
            name="water",
            dtype=dtype,
            role=FieldRole.STATE,
            double_buffer=True,
            description="Surface water depth",
        ),
        FieldSpec(
            name="sediment",
            dtype=dtype,
            role=FieldRole.STATE,
            double_buffer=True,
            description="Suspended sediment mass",
        ),
    ]


class StateFields:
    """Convenience wrapper for accessing state fields.

    Works the same for host and device containers; the "in" buffers are the
    primary fields and the "out" buffers are their companions.

    Example:
        state = StateFields(container)
        state.water_out[...] = state.water
    """

    def __init__(self, container: FieldContainer):
        """Initialize with field container.

        Args:
            container: Allocated FieldContainer with state fields
        """
        self._container = container

    @property
    def container(self) -> FieldContainer:
        """Underlying field container."""
        return self._container

    @property
    def height(self) -> Any:
        """Elevation "in" buffer."""
        return self._container["height"]

    @property
    def height_out(self) -> Any:
        """Elevation "out" buffer."""
        return self._container.get_buffer("height")

    @property
    def water(self) -> Any:
        """Water depth "in" buffer."""
        return self._container["water"]

    @property
    def water_out(self) -> Any:
        """Water depth "out" buffer."""
        return self._container.get_buffer("water")

    @property
    def sediment(self) -> Any:
        """Suspended sediment "in" buffer."""
        return self._container["sediment"]

    @property
    def sediment_out(self) -> Any:
        """Suspended sediment "out" buffer."""
        return self._container.get_buffer("sediment")

