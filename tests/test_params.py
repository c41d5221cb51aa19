"""Tests for parameter management module.

Tests schema validation, rain scheduling, and YAML loading.
"""

import tempfile
from pathlib import Path

import pytest

from erodesim.params import (
    EngineConfig,
    ErosionParams,
    PreviewParams,
    ValidationError,
    load_config,
    apply_overrides,
    load_config_with_overrides,
    save_config,
)


class TestErosionParams:
    """Tests for ErosionParams dataclass."""

    def test_default_values(self):
        """Defaults match the values the engine shipped with."""
        params = ErosionParams()
        assert params.n_steps == 2500
        assert params.k_c == 0.75
        assert params.k_d == 0.015
        assert params.k_s == 0.15
        assert params.k_e == 1.0
        assert params.rain == 0.15
        assert params.rain_frequency == 0
        assert params.k_t == 0.6
        assert params.c_t == 0.05
        assert params.hydraulic_enabled and params.thermal_enabled

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"n_steps": 0},
            {"k_c": -0.1},
            {"k_d": 1.5},
            {"k_s": -0.01},
            {"k_e": 1.01},
            {"rain": -1.0},
            {"rain_frequency": -2},
            {"k_t": -0.5},
            {"c_t": 2.0},
        ],
    )
    def test_validation_rejects(self, kwargs):
        with pytest.raises(ValidationError):
            ErosionParams(**kwargs)

    def test_revalidate_after_mutation(self):
        """Parameters are mutable; validate() catches bad edits."""
        params = ErosionParams()
        params.k_e = 3.0
        with pytest.raises(ValidationError, match="k_e"):
            params.validate()

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            ErosionParams(c_t=-1.0)


class TestRainSchedule:
    """Tests for ErosionParams.rains_at."""

    def test_zero_frequency_never_rains(self):
        params = ErosionParams(rain_frequency=0)
        assert not any(params.rains_at(step) for step in range(50))

    def test_every_n_steps(self):
        params = ErosionParams(rain_frequency=5)
        assert [s for s in range(12) if params.rains_at(s)] == [0, 5, 10]

    def test_hydraulic_disabled(self):
        params = ErosionParams(rain_frequency=1, hydraulic_enabled=False)
        assert not params.rains_at(0)


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_round_trip_dict(self):
        config = EngineConfig(erosion=ErosionParams(n_steps=10), preview=PreviewParams(show_water=False))
        restored = EngineConfig.from_dict(config.to_dict())
        assert restored == config

    def test_partial_dict(self):
        config = EngineConfig.from_dict({"erosion": {"k_c": 0.5}})
        assert config.erosion.k_c == 0.5
        assert config.erosion.n_steps == 2500
        assert config.preview.show_erosion is True

    def test_unknown_group(self):
        with pytest.raises(ValidationError, match="Unknown parameter group"):
            EngineConfig.from_dict({"render": {}})

    def test_unknown_key(self):
        with pytest.raises(ValidationError, match="Unknown erosion parameters"):
            EngineConfig.from_dict({"erosion": {"k_x": 1.0}})

    def test_with_updates(self):
        config = EngineConfig().with_updates(erosion={"n_steps": 100, "thermal_enabled": False})
        assert config.erosion.n_steps == 100
        assert config.erosion.thermal_enabled is False
        assert config.erosion.k_c == 0.75

    def test_with_updates_validates(self):
        with pytest.raises(ValidationError):
            EngineConfig().with_updates(erosion={"k_d": 7.0})


class TestLoader:
    """Tests for YAML load/save."""

    def test_save_and_load(self):
        config = EngineConfig(erosion=ErosionParams(n_steps=42, rain=0.3))
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "erosion.yaml"
            save_config(config, path)
            assert path.exists()
            assert load_config(path) == config

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/erosion.yaml")

    def test_empty_file_uses_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "empty.yaml"
            path.write_text("")
            assert load_config(path) == EngineConfig()

    def test_non_mapping(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "list.yaml"
            path.write_text("- 1\n- 2\n")
            with pytest.raises(ValidationError, match="mapping"):
                load_config(path)

    def test_overrides_without_file(self):
        config = load_config_with_overrides(overrides={"preview": {"show_erosion": False}})
        assert config.preview.show_erosion is False
        assert config.erosion == ErosionParams()

    def test_flat_preset(self):
        """Ungrouped keys land in the group that owns them."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "flat.yaml"
            path.write_text("n_steps: 300\nk_c: 1\nshow_water: false\n")
            config = load_config(path)
        assert config.erosion.n_steps == 300
        assert config.erosion.k_c == 1.0
        assert isinstance(config.erosion.k_c, float)
        assert config.preview.show_water is False

    def test_preview_key_under_erosion_group(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.yaml"
            path.write_text("erosion:\n  show_water: false\n")
            with pytest.raises(ValidationError, match="bad.yaml"):
                load_config(path)

    def test_out_of_range_value_names_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "range.yaml"
            path.write_text("erosion:\n  k_e: 2.0\n")
            with pytest.raises(ValidationError, match="range.yaml"):
                load_config(path)


class TestOverrides:
    """Tests for apply_overrides."""

    def test_dotted_string_values(self):
        config = apply_overrides(
            EngineConfig(), {"erosion.n_steps": "500", "preview.show_erosion": "off"}
        )
        assert config.erosion.n_steps == 500
        assert config.preview.show_erosion is False

    def test_flat_keys(self):
        config = apply_overrides(EngineConfig(), {"k_t": "0.8", "thermal_enabled": False})
        assert config.erosion.k_t == 0.8
        assert config.erosion.thermal_enabled is False

    def test_original_unchanged(self):
        base = EngineConfig()
        apply_overrides(base, {"k_c": 0.1})
        assert base.erosion.k_c == 0.75

    @pytest.mark.parametrize(
        "overrides, match",
        [
            ({"erosion.k_x": 1.0}, "Unknown parameter"),
            ({"render.scale": 1.0}, "Unknown parameter"),
            ({"preview": {"n_steps": 10}}, "Unknown preview parameter"),
            ({"n_steps": "lots"}, "expects int"),
            ({"n_steps": 2.5}, "expects int"),
            ({"hydraulic_enabled": 1}, "expects bool"),
            ({"preview": 3}, "must be a mapping"),
        ],
    )
    def test_rejects(self, overrides, match):
        with pytest.raises(ValidationError, match=match):
            apply_overrides(EngineConfig(), overrides)

    def test_range_checked(self):
        with pytest.raises(ValidationError, match="k_d"):
            apply_overrides(EngineConfig(), {"erosion": {"k_d": "7"}})
