"""Field management for erodesim.

This module provides declarative field containers for the erosion buffers,
on the host (NumPy) and on the device (Taichi).

Main classes:
- FieldSpec: Declarative field specification
- FieldRole: Field categorization (STATE, DERIVED, SCRATCH)
- FieldStorage: HOST or DEVICE
- FieldContainer: Manages field lifecycle

Convenience wrappers:
- StateFields: height, water, sediment and their "_out" buffers
- ScratchFields: CPU emission fields and GPU delta totals
- GridStorage: Everything a bound heightmap needs, for both backends
"""

from erodesim.fields.base import (
    FieldContainer,
    FieldRole,
    FieldSpec,
    FieldStorage,
)
from erodesim.fields.scratch import (
    ScratchFields,
    create_delta_specs,
    create_emission_specs,
)
from erodesim.fields.state import (
    STATE_FIELDS,
    StateFields,
    create_state_specs,
)
from erodesim.fields.storage import GridStorage

__all__ = [
    # Core classes
    "FieldContainer",
    "FieldRole",
    "FieldSpec",
    "FieldStorage",
    # Convenience wrappers
    "StateFields",
    "ScratchFields",
    "GridStorage",
    # Factory functions
    "STATE_FIELDS",
    "create_state_specs",
    "create_emission_specs",
    "create_delta_specs",
]
