"""Unit tests for config schema validation, merging and profile overlays."""

from __future__ import annotations

import pytest

from maintenance_scheduler.config.schema import (
    BUILTIN_PROFILE_NAMES,
    ConfigSchemaVersion,
    ConfigValidationError,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)


def _issue_paths(config: object) -> set[str]:
    return {issue.path for issue in validate_config(config).issues}


def test_default_config_is_valid_and_copied() -> None:
    config = default_config()
    result = validate_config(config)
    assert result.is_valid
    assert result.config == config
    assert set(config["profiles"]) == set(BUILTIN_PROFILE_NAMES)

    config["utilization"]["target_percent"] = 1.0
    assert default_config()["utilization"]["target_percent"] == 85.0


def test_unknown_and_missing_fields_are_reported_with_paths() -> None:
    config = default_config()
    config["scoring"]["urgency_bonus"] = 2  # type: ignore[typeddict-unknown-key]
    del config["synthesizer"]["placement"]  # type: ignore[misc]
    config["extra"] = {}  # type: ignore[typeddict-unknown-key]

    paths = _issue_paths(config)
    assert paths == {"scoring.urgency_bonus", "synthesizer.placement", "extra"}


def test_numeric_constraints_and_cross_field_rules() -> None:
    config = default_config()
    config["scoring"]["default_processing_days"] = 0.5
    config["scoring"]["criticality_weights"]["critical"] = -1.0
    config["utilization"]["underutilized_percent"] = 120.0
    config["windows"]["force"]["min_days"] = 0
    config["synthesizer"]["lead_time_days"] = True  # type: ignore[typeddict-item]

    paths = _issue_paths(config)
    assert paths == {
        "scoring.default_processing_days",
        "scoring.criticality_weights.critical",
        "utilization.underutilized_percent",
        "windows.force.min_days",
        "synthesizer.lead_time_days",
    }


def test_schema_version_mismatch_carries_migration_guidance() -> None:
    config = default_config()
    config["meta"]["schema_version"] = ConfigSchemaVersion + 1
    with pytest.raises(ConfigValidationError, match="upgrade the maintenance-scheduler package"):
        assert_valid_config(config)
    assert "older than supported" in migration_guidance(0)
    assert migration_guidance(ConfigSchemaVersion) == "schema version is current"


def test_profile_overlays_are_validated_as_partial_sections() -> None:
    config = default_config()
    config["profiles"]["night-shift"] = {"utilization": {"target_percent": "high"}}
    config["profiles"]["Bad Name"] = {}
    paths = _issue_paths(config)
    assert paths == {
        "profiles.night-shift.utilization.target_percent",
        "profiles.Bad Name",
    }


def test_active_profile_is_validated_after_merge() -> None:
    config = default_config()
    config["profiles"]["tight"] = {"utilization": {"overload_percent": 40.0}}
    result = validate_config(config, active_profile="tight")
    assert not result.is_valid
    assert [issue.path for issue in result.issues] == ["utilization.underutilized_percent"]

    with pytest.raises(ConfigValidationError):
        apply_profile_overlay(config, "tight")


def test_apply_profile_overlay_merges_and_ignores_blank_names() -> None:
    config = default_config()
    aggressive = apply_profile_overlay(config, "aggressive")
    assert aggressive["utilization"]["target_percent"] == 95.0
    assert aggressive["utilization"]["overload_percent"] == 100.0
    assert apply_profile_overlay(config, "  ") == merge_config({}, config)


def test_merge_config_is_deep_and_does_not_mutate_inputs() -> None:
    base = {"a": {"b": 1, "c": [1, 2]}}
    overlay = {"a": {"b": 2}, "d": 3}
    merged = merge_config(base, overlay)
    assert merged == {"a": {"b": 2, "c": [1, 2]}, "d": 3}
    assert base == {"a": {"b": 1, "c": [1, 2]}}
    merged["a"]["c"].append(3)
    assert base["a"]["c"] == [1, 2]
