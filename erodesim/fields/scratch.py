"""Scratch and derived field specifications.

Host scratch fields hold per-direction emissions for the two-phase gather
used by the CPU pipeline: during the scan phase a cell records what it sends
to each of its 8 neighbors, and during the gather phase every cell sums what
its neighbors recorded for it. Nothing is ever written to a neighbor's cell,
so the sweep is race-free.

Device derived fields hold the per-cell neighbor delta totals that the GPU
pipeline's delta stage computes ahead of the erosion stage.
"""

from typing import Any

from erodesim.core.dtypes import DTYPE
from erodesim.core.geometry import NUM_NEIGHBORS
from erodesim.fields.base import FieldContainer, FieldRole, FieldSpec


def create_emission_specs(dtype: Any = DTYPE) -> list[FieldSpec]:
    """Create specifications for per-direction emission scratch fields.

    Args:
        dtype: Floating-point type

    Returns:
        List of FieldSpec with shape (width, width, 8)
    """
    return [
        FieldSpec(
            name="emit_water",
            dtype=dtype,
            role=FieldRole.SCRATCH,
            extra_dims=(NUM_NEIGHBORS,),
            description="Water sent to each neighbor this step",
        ),
        FieldSpec(
            name="emit_sediment",
            dtype=dtype,
            role=FieldRole.SCRATCH,
            extra_dims=(NUM_NEIGHBORS,),
            description="Sediment sent to each neighbor this step",
        ),
        FieldSpec(
            name="emit_height",
            dtype=dtype,
            role=FieldRole.SCRATCH,
            extra_dims=(NUM_NEIGHBORS,),
            description="Material slumped to each neighbor this step",
        ),
    ]


def create_delta_specs(dtype: Any = DTYPE) -> list[FieldSpec]:
    """Create specifications for the neighbor delta totals.

    - total_delta_hw: Sum of positive (height + water) drops to neighbors
    - total_delta_h: Sum of height drops above the talus threshold

    Args:
        dtype: Floating-point type

    Returns:
        List of FieldSpec for derived fields
    """
    return [
        FieldSpec(
            name="total_delta_hw",
            dtype=dtype,
            role=FieldRole.DERIVED,
            description="Total downhill (height + water) difference",
        ),
        FieldSpec(
            name="total_delta_h",
            dtype=dtype,
            role=FieldRole.DERIVED,
            description="Total height difference above talus threshold",
        ),
    ]


class ScratchFields:
    """Convenience wrapper for emission and delta fields.

    Only the fields registered in the container are accessible; host
    containers carry emissions, device containers carry delta totals.
    """

    def __init__(self, container: FieldContainer):
        """Initialize with field container.

        Args:
            container: Allocated FieldContainer
        """
        self._container = container

    @property
    def emit_water(self) -> Any:
        """Per-direction water emissions."""
        return self._container["emit_water"]

    @property
    def emit_sediment(self) -> Any:
        """Per-direction sediment emissions."""
        return self._container["emit_sediment"]

    @property
    def emit_height(self) -> Any:
        """Per-direction thermal emissions."""
        return self._container["emit_height"]

    @property
    def total_delta_hw(self) -> Any:
        """Hydraulic neighbor delta totals."""
        return self._container["total_delta_hw"]

    @property
    def total_delta_h(self) -> Any:
        """Thermal neighbor delta totals."""
        return self._container["total_delta_h"]
