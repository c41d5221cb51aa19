"""Erosion parameter schema with validation.

Parameters are plain mutable dataclasses: a UI may tweak them between runs
(or even during a CPU run, since every value is a scalar read when used).
They are validated on construction and again when a run starts.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any


class ValidationError(ValueError):
    """Parameter validation failed."""
    pass


def _positive(value: float, name: str) -> None:
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")


def _non_negative(value: float, name: str) -> None:
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")


def _fraction(value: float, name: str) -> None:
    if not 0 <= value <= 1:
        raise ValidationError(f"{name} must be in [0, 1], got {value}")


@dataclass
class ErosionParams:
    """Hydraulic and thermal erosion parameters.

    Attributes:
        n_steps: Iteration budget for a run
        hydraulic_enabled: Run rain, water flow and sediment transport
        k_c: Sediment capacity per unit of moving water
        k_d: Fraction of excess sediment deposited per step
        k_s: Fraction of spare capacity dissolved from the bed per step
        k_e: Water kept per step (1.0 = no evaporation)
        rain: Water depth added per rain event at max_height
        rain_frequency: Steps between rain events (0 = initial moisture only)
        thermal_enabled: Run talus slumping
        k_t: Talus threshold on neighbor height difference
        c_t: Fraction of the excess above k_t moved per step
    """

    n_steps: int = 2500
    # Hydraulic erosion
    hydraulic_enabled: bool = True
    k_c: float = 0.75
    k_d: float = 0.015
    k_s: float = 0.15
    k_e: float = 1.0
    rain: float = 0.15
    rain_frequency: int = 0
    # Thermal weathering
    thermal_enabled: bool = True
    k_t: float = 0.6
    c_t: float = 0.05

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check every parameter range.

        Raises:
            ValidationError: On the first out-of-range value
        """
        _positive(self.n_steps, "n_steps")
        _non_negative(self.k_c, "k_c")
        _fraction(self.k_d, "k_d")
        _fraction(self.k_s, "k_s")
        _fraction(self.k_e, "k_e")
        _non_negative(self.rain, "rain")
        _non_negative(self.rain_frequency, "rain_frequency")
        _non_negative(self.k_t, "k_t")
        _fraction(self.c_t, "c_t")

    def rains_at(self, step: int) -> bool:
        """Whether a rain event falls on `step` (initial moisture excluded)."""
        if not self.hydraulic_enabled or self.rain_frequency == 0:
            return False
        return step % self.rain_frequency == 0


@dataclass
class PreviewParams:
    """Live preview toggles for the mesh consumer.

    Attributes:
        show_erosion: Ask for a new mesh after every CPU step
        show_water: Include the water surface in per-step meshes
    """

    show_erosion: bool = True
    show_water: bool = True


@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration."""

    erosion: ErosionParams = field(default_factory=ErosionParams)
    preview: PreviewParams = field(default_factory=PreviewParams)

    def to_dict(self) -> dict[str, Any]:
        """Convert to nested dictionary."""
        return {
            "erosion": asdict(self.erosion),
            "preview": asdict(self.preview),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineConfig":
        """Create from nested dictionary.

        Raises:
            ValidationError: On unknown groups or keys
        """
        param_classes = {
            "erosion": ErosionParams,
            "preview": PreviewParams,
        }
        kwargs = {}
        for group, values in data.items():
            if group not in param_classes:
                raise ValidationError(f"Unknown parameter group: {group}")
            known = {f.name for f in fields(param_classes[group])}
            unknown = set(values or {}) - known
            if unknown:
                raise ValidationError(
                    f"Unknown {group} parameters: {sorted(unknown)}"
                )
            kwargs[group] = param_classes[group](**(values or {}))
        return cls(**kwargs)

    def with_updates(self, **kwargs: Any) -> "EngineConfig":
        """Create new config with updates."""
        current = self.to_dict()
        for key, value in kwargs.items():
            if key not in current:
                raise ValidationError(f"Unknown parameter group: {key}")
            if isinstance(value, dict):
                current[key].update(value)
            else:
                current[key] = asdict(value)
        return self.from_dict(current)
