"""
maintenance-scheduler: configuration schema and validation.

File: src/maintenance_scheduler/config/schema.py

Purpose
- Define authoritative scheduling defaults and strict validation rules.

What should be included in this file
- Schema versioning and migration guidance.
- Validation rules for required fields, types, enums, and numeric constraints.
- Profile overlay validation and deterministic deep-merge helpers.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Support the conservative/aggressive profile overlays.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from maintenance_scheduler.constants import (
    BALANCE_WEIGHT_PER_LEVEL,
    CONFIG_SCHEMA_VERSION,
    CRITICALITY_LEVELS,
    CRITICALITY_WEIGHTS,
    DEFAULT_CRITICALITY_WEIGHT,
    DEFAULT_LEAD_TIME_DAYS,
    DEFAULT_PROCESSING_DAYS,
    EQUIPMENT_FACTOR,
    OVERLOAD_THRESHOLD_PERCENT,
    PLACEMENT_POLICIES,
    TARGET_UTILIZATION_PERCENT,
    UNDERUTILIZED_THRESHOLD_PERCENT,
    WINDOW_TYPE_DURATION_DAYS,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
BUILTIN_PROFILE_NAMES: Final[tuple[str, ...]] = ("conservative", "aggressive")

_PROFILE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")
_LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
_LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")
_WINDOW_TYPES: Final[tuple[str, ...]] = tuple(WINDOW_TYPE_DURATION_DAYS)
_OVERLAY_SECTIONS: Final[tuple[str, ...]] = (
    "observability",
    "scoring",
    "synthesizer",
    "utilization",
    "windows",
)

class MetaConfig(TypedDict):
    schema_version: int


class ScoringConfig(TypedDict):
    criticality_weights: dict[str, float]
    default_criticality_weight: float
    equipment_factor: float
    default_processing_days: float


class UtilizationConfig(TypedDict):
    target_percent: float
    overload_percent: float
    underutilized_percent: float
    balance_weight_per_level: float


class WindowRangeConfig(TypedDict):
    min_days: int
    max_days: int


class SynthesizerConfig(TypedDict):
    placement: Literal["immediate", "next_available"]
    lead_time_days: int


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["json", "text"]
    log_dir: str
    stdout: bool


class ProfileOverlay(TypedDict, total=False):
    scoring: dict[str, object]
    utilization: dict[str, object]
    windows: dict[str, object]
    synthesizer: dict[str, object]
    observability: dict[str, object]


class SchedulerConfig(TypedDict):
    meta: MetaConfig
    scoring: ScoringConfig
    utilization: UtilizationConfig
    windows: dict[str, WindowRangeConfig]
    synthesizer: SynthesizerConfig
    observability: ObservabilityConfig
    profiles: dict[str, ProfileOverlay]


DEFAULT_CONFIG: Final[SchedulerConfig] = {
    "meta": {
        "schema_version": ConfigSchemaVersion,
    },
    "scoring": {
        "criticality_weights": dict(CRITICALITY_WEIGHTS),
        "default_criticality_weight": DEFAULT_CRITICALITY_WEIGHT,
        "equipment_factor": EQUIPMENT_FACTOR,
        "default_processing_days": DEFAULT_PROCESSING_DAYS,
    },
    "utilization": {
        "target_percent": TARGET_UTILIZATION_PERCENT,
        "overload_percent": OVERLOAD_THRESHOLD_PERCENT,
        "underutilized_percent": UNDERUTILIZED_THRESHOLD_PERCENT,
        "balance_weight_per_level": BALANCE_WEIGHT_PER_LEVEL,
    },
    "windows": {
        name: {"min_days": low, "max_days": high}
        for name, (low, high) in WINDOW_TYPE_DURATION_DAYS.items()
    },
    "synthesizer": {
        "placement": "immediate",
        "lead_time_days": DEFAULT_LEAD_TIME_DAYS,
    },
    "observability": {
        "log_level": "INFO",
        "log_format": "json",
        "log_dir": "logs/",
        "stdout": False,
    },
    "profiles": {
        "conservative": {
            "utilization": {"target_percent": 75.0, "overload_percent": 90.0},
            "synthesizer": {"placement": "next_available", "lead_time_days": 7},
        },
        "aggressive": {
            "utilization": {"target_percent": 95.0, "underutilized_percent": 60.0},
        },
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> SchedulerConfig:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    """Return deterministic migration guidance for schema version mismatch."""

    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade scheduler.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the maintenance-scheduler package"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def apply_profile_overlay(config: Mapping[str, object], profile: str | None) -> dict[str, Any]:
    """Apply a named profile overlay and re-validate the resulting config."""

    materialized = _deep_copy_mapping(config)
    if profile is None:
        return materialized

    selected = profile.strip()
    if not selected:
        return materialized

    profiles_raw = materialized.get("profiles")
    if not isinstance(profiles_raw, Mapping):
        raise ConfigValidationError(
            (ConfigValidationIssue("profiles", "profiles section is required"),)
        )

    overlay_raw = profiles_raw.get(selected)
    if overlay_raw is None:
        raise ConfigValidationError(
            (ConfigValidationIssue("profiles", f"profile {selected!r} is not defined"),)
        )
    if not isinstance(overlay_raw, Mapping):
        raise ConfigValidationError(
            (ConfigValidationIssue(f"profiles.{selected}", "profile overlay must be an object"),)
        )

    merged = merge_config(materialized, overlay_raw)
    return assert_valid_config(merged, active_profile=selected)


def validate_config(
    config: Mapping[str, object] | object,
    *,
    active_profile: str | None = None,
) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, "", issues, partial=False)

    selected_profile = active_profile.strip() if isinstance(active_profile, str) else None
    if selected_profile:
        profiles = normalized.get("profiles")
        if not isinstance(profiles, Mapping) or selected_profile not in profiles:
            issues.add("profiles", f"profile {selected_profile!r} is not defined")
        else:
            effective = merge_config(normalized, profiles[selected_profile])
            _validate_root(effective, "", issues, partial=False)

    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(
    config: Mapping[str, object] | object,
    *,
    active_profile: str | None = None,
) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config, active_profile=active_profile)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_root(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    required = {"meta", *_OVERLAY_SECTIONS}
    _reject_unknown_keys(payload, required | {"profiles"}, path, issues)
    if not partial:
        _require_keys(payload, required, path, issues)

    validators: dict[str, Callable[[dict[str, object], str], dict[str, Any]]] = {
        "meta": lambda section, section_path: _validate_meta(
            section, section_path, issues, partial=partial
        ),
        "scoring": lambda section, section_path: _validate_scoring(
            section, section_path, issues, partial=partial
        ),
        "utilization": lambda section, section_path: _validate_utilization(
            section, section_path, issues, partial=partial
        ),
        "windows": lambda section, section_path: _validate_windows(
            section, section_path, issues, partial=partial
        ),
        "synthesizer": lambda section, section_path: _validate_synthesizer(
            section, section_path, issues, partial=partial
        ),
        "observability": lambda section, section_path: _validate_observability(
            section, section_path, issues, partial=partial
        ),
    }

    out: dict[str, Any] = {}
    for key in sorted(validators):
        _section(payload, key=key, path=path, issues=issues, validator=validators[key], out=out)

    profiles_raw = payload.get("profiles")
    if profiles_raw is not None:
        profiles_path = _join(path, "profiles")
        profiles_obj = _as_object(profiles_raw, profiles_path, issues)
        if profiles_obj is not None:
            out["profiles"] = _validate_profiles(profiles_obj, profiles_path, issues)

    if not partial:
        _validate_utilization_cross_fields(
            out.get("utilization"), _join(path, "utilization"), issues
        )
    return out


def _section(
    payload: Mapping[str, object],
    *,
    key: str,
    path: str,
    issues: _IssueCollector,
    validator: Callable[[dict[str, object], str], dict[str, Any]],
    out: dict[str, Any],
) -> None:
    raw = payload.get(key)
    if raw is None:
        return
    section_path = _join(path, key)
    section_obj = _as_object(raw, section_path, issues)
    if section_obj is None:
        return
    out[key] = validator(section_obj, section_path)


def _validate_meta(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, path, issues)
    if not partial:
        _require_keys(payload, {"schema_version"}, path, issues)

    out: dict[str, Any] = {}
    if "schema_version" in payload:
        parsed = _as_int(
            payload["schema_version"], _join(path, "schema_version"), issues, minimum=1
        )
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != ConfigSchemaVersion:
                issues.add(_join(path, "schema_version"), migration_guidance(parsed))
    return out


def _validate_scoring(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    allowed = {
        "criticality_weights",
        "default_criticality_weight",
        "equipment_factor",
        "default_processing_days",
    }
    _reject_unknown_keys(payload, allowed, path, issues)
    if not partial:
        _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "criticality_weights" in payload:
        weights_path = _join(path, "criticality_weights")
        weights = _as_object(payload["criticality_weights"], weights_path, issues)
        if weights is not None:
            _reject_unknown_keys(weights, set(CRITICALITY_LEVELS), weights_path, issues)
            if not partial:
                _require_keys(weights, set(CRITICALITY_LEVELS), weights_path, issues)
            parsed_weights: dict[str, float] = {}
            for level in CRITICALITY_LEVELS:
                if level not in weights:
                    continue
                parsed = _as_float(weights[level], _join(weights_path, level), issues, minimum=0.0)
                if parsed is not None:
                    parsed_weights[level] = parsed
            out["criticality_weights"] = parsed_weights

    for key in ("default_criticality_weight", "equipment_factor"):
        if key in payload:
            parsed = _as_float(payload[key], _join(path, key), issues, minimum=0.0)
            if parsed is not None:
                out[key] = parsed

    if "default_processing_days" in payload:
        parsed = _as_float(
            payload["default_processing_days"],
            _join(path, "default_processing_days"),
            issues,
            minimum=1.0,
        )
        if parsed is not None:
            out["default_processing_days"] = parsed
    return out


def _validate_utilization(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    allowed = {
        "target_percent",
        "overload_percent",
        "underutilized_percent",
        "balance_weight_per_level",
    }
    _reject_unknown_keys(payload, allowed, path, issues)
    if not partial:
        _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    for key in sorted(allowed):
        if key in payload:
            parsed = _as_float(payload[key], _join(path, key), issues, minimum=0.0)
            if parsed is not None:
                out[key] = parsed
    return out


def _validate_windows(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    _reject_unknown_keys(payload, set(_WINDOW_TYPES), path, issues)
    if not partial:
        _require_keys(payload, set(_WINDOW_TYPES), path, issues)

    out: dict[str, Any] = {}
    for window_type in _WINDOW_TYPES:
        raw = payload.get(window_type)
        if raw is None:
            continue
        range_path = _join(path, window_type)
        range_obj = _as_object(raw, range_path, issues)
        if range_obj is None:
            continue
        _reject_unknown_keys(range_obj, {"min_days", "max_days"}, range_path, issues)
        if not partial:
            _require_keys(range_obj, {"min_days", "max_days"}, range_path, issues)
        parsed_range: dict[str, int] = {}
        for key in ("min_days", "max_days"):
            if key in range_obj:
                parsed = _as_int(range_obj[key], _join(range_path, key), issues, minimum=1)
                if parsed is not None:
                    parsed_range[key] = parsed
        low = parsed_range.get("min_days")
        high = parsed_range.get("max_days")
        if low is not None and high is not None and low > high:
            issues.add(_join(range_path, "max_days"), "must be >= min_days")
        out[window_type] = parsed_range
    return out


def _validate_synthesizer(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    allowed = {"placement", "lead_time_days"}
    _reject_unknown_keys(payload, allowed, path, issues)
    if not partial:
        _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "placement" in payload:
        parsed_placement = _as_enum(
            payload["placement"],
            _join(path, "placement"),
            issues,
            allowed_values=PLACEMENT_POLICIES,
        )
        if parsed_placement is not None:
            out["placement"] = parsed_placement

    if "lead_time_days" in payload:
        parsed_lead = _as_int(
            payload["lead_time_days"], _join(path, "lead_time_days"), issues, minimum=0
        )
        if parsed_lead is not None:
            out["lead_time_days"] = parsed_lead
    return out


def _validate_observability(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    allowed = {"log_level", "log_format", "log_dir", "stdout"}
    _reject_unknown_keys(payload, allowed, path, issues)
    if not partial:
        _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}

    if "log_level" in payload:
        parsed_log_level = _as_enum(
            payload["log_level"], _join(path, "log_level"), issues, allowed_values=_LOG_LEVELS
        )
        if parsed_log_level is not None:
            out["log_level"] = parsed_log_level

    if "log_format" in payload:
        parsed_log_format = _as_enum(
            payload["log_format"], _join(path, "log_format"), issues, allowed_values=_LOG_FORMATS
        )
        if parsed_log_format is not None:
            out["log_format"] = parsed_log_format

    if "log_dir" in payload:
        parsed_log_dir = _as_path_text(payload["log_dir"], _join(path, "log_dir"), issues)
        if parsed_log_dir is not None:
            out["log_dir"] = parsed_log_dir

    if "stdout" in payload:
        parsed_stdout = _as_bool(payload["stdout"], _join(path, "stdout"), issues)
        if parsed_stdout is not None:
            out["stdout"] = parsed_stdout

    return out


def _validate_profiles(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for profile_name in sorted(payload):
        profile_path = _join(path, profile_name)
        if not _PROFILE_NAME_PATTERN.fullmatch(profile_name):
            issues.add(profile_path, "profile name must match ^[a-z][a-z0-9_-]*$")
            continue
        profile_obj = _as_object(payload[profile_name], profile_path, issues)
        if profile_obj is None:
            continue
        out[profile_name] = _validate_profile_overlay(profile_obj, profile_path, issues)
    return out


def _validate_profile_overlay(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
) -> dict[str, Any]:
    _reject_unknown_keys(payload, set(_OVERLAY_SECTIONS), path, issues)
    return _validate_root(
        {key: value for key, value in payload.items() if key in _OVERLAY_SECTIONS},
        path,
        issues,
        partial=True,
    )


def _validate_utilization_cross_fields(
    utilization: object,
    path: str,
    issues: _IssueCollector,
) -> None:
    if not isinstance(utilization, Mapping):
        return
    underutilized = utilization.get("underutilized_percent")
    overload = utilization.get("overload_percent")
    if isinstance(underutilized, float) and isinstance(overload, float):
        if underutilized >= overload:
            issues.add(
                _join(path, "underutilized_percent"), "must be lower than overload_percent"
            )


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_float(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: float | None = None,
) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        issues.add(path, f"expected number, got {type(value).__name__}")
        return None
    parsed = float(value)
    if not math.isfinite(parsed):
        issues.add(path, "must be finite")
        return None
    if minimum is not None and parsed < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return parsed


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            elif isinstance(existing, Mapping):
                nested = _deep_copy_mapping(existing)
                _merge_into(nested, value)
                target[key] = nested
            else:
                nested_new: dict[str, Any] = {}
                _merge_into(nested_new, value)
                target[key] = nested_new
        else:
            target[key] = _deep_copy_value(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in sorted(value):
        out[key] = _deep_copy_value(value[key])
    return out


def _deep_copy_value(value: object) -> Any:
    if isinstance(value, Mapping):
        out: dict[str, Any] = {}
        for key, item in value.items():
            if isinstance(key, str):
                out[key] = _deep_copy_value(item)
        return out
    if isinstance(value, list):
        return [_deep_copy_value(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_deep_copy_value(item) for item in value)
    return copy.deepcopy(value)


__all__ = [
    "BUILTIN_PROFILE_NAMES",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "ProfileOverlay",
    "SchedulerConfig",
    "apply_profile_overlay",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
