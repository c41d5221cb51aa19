"""
YAML presets for erosion runs.

A preset file is either grouped:

    erosion:
      n_steps: 500
      k_c: 0.5
    preview:
      show_water: false

or a flat mapping of parameter names, each routed to the group that owns
it. Overrides use the same routing and also accept dotted keys
("erosion.k_c") and YAML scalars given as strings ("500", "off"), which is
what a command line or environment variable hands over.
"""

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from erodesim.params.schema import EngineConfig, ErosionParams, PreviewParams, ValidationError

GROUPS = {
    "erosion": ErosionParams,
    "preview": PreviewParams,
}


def _owner(key: str) -> str:
    """Group that declares parameter `key`."""
    for group, cls in GROUPS.items():
        if key in {f.name for f in fields(cls)}:
            return group
    raise ValidationError(f"Unknown parameter: {key}")


def _coerce(group: str, key: str, value: Any) -> Any:
    """Parse string scalars and check the value against the field's type."""
    if isinstance(value, str):
        value = yaml.safe_load(value)
    expected = type(getattr(GROUPS[group](), key))
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise ValidationError(
            f"{group}.{key} expects {expected.__name__}, got {value!r}"
        )
    return value


def _grouped(data: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Normalize grouped, flat or dotted keys into {group: {key: value}}."""
    grouped: dict[str, dict[str, Any]] = {}
    for key, value in data.items():
        if key in GROUPS:
            if value is None:
                continue
            if not isinstance(value, dict):
                raise ValidationError(f"Group '{key}' must be a mapping, got {value!r}")
            for name, item in value.items():
                if _owner(name) != key:
                    raise ValidationError(f"Unknown {key} parameter: {name}")
                grouped.setdefault(key, {})[name] = _coerce(key, name, item)
        elif "." in key:
            group, name = key.split(".", 1)
            if group not in GROUPS or _owner(name) != group:
                raise ValidationError(f"Unknown parameter: {key}")
            grouped.setdefault(group, {})[name] = _coerce(group, name, value)
        else:
            group = _owner(key)
            grouped.setdefault(group, {})[key] = _coerce(group, key, value)
    return grouped


def load_config(path: str | Path) -> EngineConfig:
    """
    Load an erosion preset from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: On unknown keys, wrong types or out-of-range values
        yaml.YAMLError: If the YAML is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"{path}: preset must be a mapping, got {type(data).__name__}")

    try:
        return EngineConfig.from_dict(_grouped(data))
    except ValidationError as exc:
        raise ValidationError(f"{path}: {exc}") from exc


def save_config(config: EngineConfig, path: str | Path) -> None:
    """Write `config` as a grouped preset."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False))


def apply_overrides(config: EngineConfig, overrides: dict[str, Any]) -> EngineConfig:
    """Return a copy of `config` with grouped, flat or dotted overrides applied.

    Example:
        apply_overrides(config, {"erosion.n_steps": "500", "show_water": False})
    """
    return config.with_updates(**_grouped(overrides))


def load_config_with_overrides(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> EngineConfig:
    """Load a preset (defaults if `path` is None) and apply `overrides`."""
    config = load_config(path) if path is not None else EngineConfig()
    if overrides:
        config = apply_overrides(config, overrides)
    return config
