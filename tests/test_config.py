"""Configuration loading and validation tests."""

import pytest
from pydantic import ValidationError

from vescrow.config import config_from_dict, load_config, merge_sections
from vescrow.config.schema import ClockSettings, EscrowConfig, WeightLensSettings


class TestLoadConfig:
    """Packaged defaults and YAML overrides."""

    def test_defaults_file_matches_model_defaults(self):
        config = load_config()
        assert config.max_time == 63072000
        assert config.clock_unit == 604800
        assert config.merge.permanence_policy == "strict"
        assert config.compute_hash() == EscrowConfig().compute_hash()

    def test_version_is_string(self):
        assert load_config().ve_details.version == "1"

    def test_yaml_override(self, tmp_path):
        path = tmp_path / "escrow.yaml"
        path.write_text(
            "clock:\n"
            "  max_time: 31536000\n"
            "  clock_unit: 86400\n"
            "ve_details:\n"
            "  version: 2\n"
        )
        config = load_config(str(path))
        assert config.max_time == 31536000
        assert config.clock.max_walk_steps == 365
        assert config.ve_details.version == "2"
        assert config.merge.permanence_policy == "strict"

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)).compute_hash() == EscrowConfig().compute_hash()


class TestConfigValidation:
    """Pydantic validators reject inconsistent settings."""

    def test_walk_cap(self):
        assert ClockSettings().max_walk_steps == 105
        assert ClockSettings(max_time=100, clock_unit=10).max_walk_steps == 10

    def test_clock_unit_larger_than_horizon(self):
        with pytest.raises(ValidationError):
            ClockSettings(max_time=100, clock_unit=200)

    def test_non_positive_clock(self):
        with pytest.raises(ValidationError):
            ClockSettings(clock_unit=0)

    def test_unknown_merge_policy(self):
        with pytest.raises(ValidationError):
            config_from_dict({"merge": {"permanence_policy": "sometimes"}})

    def test_lens_length_mismatch(self):
        with pytest.raises(ValidationError):
            WeightLensSettings(duration_days_thresholds=[365, 180], multipliers=[2000])

    def test_lens_thresholds_must_descend(self):
        with pytest.raises(ValidationError):
            WeightLensSettings(duration_days_thresholds=[90, 180], multipliers=[1000, 2000])


class TestHash:
    """Config hash for reproducibility."""

    def test_deterministic(self):
        assert EscrowConfig().compute_hash() == EscrowConfig().compute_hash()
        assert len(EscrowConfig().compute_hash()) == 16

    def test_changes_with_settings(self):
        changed = config_from_dict({"merge": {"permanence_policy": "destination"}})
        assert changed.compute_hash() != EscrowConfig().compute_hash()

    def test_round_trip_through_dict(self):
        config = config_from_dict({"clock": {"clock_unit": 86400}})
        assert EscrowConfig.from_dict(config.to_dict()) == config


class TestLayeredLoading:
    """Partial files and overrides layer over the packaged defaults."""

    def test_partial_file_keeps_other_defaults(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text("weight_lens:\n  multiplier_precision: 100\n")
        config = load_config(str(path))
        assert config.weight_lens.multiplier_precision == 100
        assert config.weight_lens.multipliers == [2000, 1500, 1250, 1000]
        assert config.clock_unit == 604800

    def test_overrides_applied_last(self, tmp_path):
        path = tmp_path / "escrow.yaml"
        path.write_text("merge:\n  permanence_policy: destination\n")
        config = load_config(str(path), overrides={"merge": {"permanence_policy": "strict"}})
        assert config.merge.permanence_policy == "strict"
        config = load_config(overrides={"clock": {"clock_unit": 86400}})
        assert config.clock_unit == 86400
        assert config.max_time == 63072000

    def test_overrides_still_validated(self):
        with pytest.raises(ValidationError):
            load_config(overrides={"clock": {"clock_unit": 10 ** 9}})

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_merge_sections_leaves_inputs_untouched(self):
        base = {"clock": {"max_time": 10, "clock_unit": 1}, "merge": {"permanence_policy": "strict"}}
        merged = merge_sections(base, {"clock": {"clock_unit": 2}})
        assert merged == {"clock": {"max_time": 10, "clock_unit": 2}, "merge": {"permanence_policy": "strict"}}
        assert base["clock"]["clock_unit"] == 1
