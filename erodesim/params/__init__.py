"""
Parameter management for erodesim.

This module provides:
- Validated parameter containers (schema.py)
- YAML loading utilities (loader.py)
"""

from erodesim.params.schema import (
    EngineConfig,
    ErosionParams,
    PreviewParams,
    ValidationError,
)
from erodesim.params.loader import (
    apply_overrides,
    load_config,
    load_config_with_overrides,
    save_config,
)

__all__ = [
    # Schema classes
    "ErosionParams",
    "PreviewParams",
    "EngineConfig",
    "ValidationError",
    # Loader functions
    "load_config",
    "save_config",
    "load_config_with_overrides",
    "apply_overrides",
]
