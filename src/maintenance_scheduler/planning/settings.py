"""Tunable scoring, utilization and window-sizing parameters for the planning engine."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field

from maintenance_scheduler.constants import (
    BALANCE_WEIGHT_PER_LEVEL,
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
from maintenance_scheduler.domain.models import CriticalityLevel, WindowType


def _default_weights() -> dict[CriticalityLevel, float]:
    return {CriticalityLevel(level): weight for level, weight in CRITICALITY_WEIGHTS.items()}


def _default_ranges() -> dict[WindowType, tuple[int, int]]:
    return {WindowType(name): bounds for name, bounds in WINDOW_TYPE_DURATION_DAYS.items()}


@dataclass(frozen=True, slots=True)
class SchedulingSettings:
    """Immutable engine parameters; defaults reproduce the stock planning rules."""

    criticality_weights: Mapping[CriticalityLevel, float] = field(
        default_factory=_default_weights
    )
    default_criticality_weight: float = DEFAULT_CRITICALITY_WEIGHT
    equipment_factor: float = EQUIPMENT_FACTOR
    default_processing_days: float = DEFAULT_PROCESSING_DAYS
    target_utilization_percent: float = TARGET_UTILIZATION_PERCENT
    overload_threshold_percent: float = OVERLOAD_THRESHOLD_PERCENT
    underutilized_threshold_percent: float = UNDERUTILIZED_THRESHOLD_PERCENT
    balance_weight_per_level: float = BALANCE_WEIGHT_PER_LEVEL
    window_duration_days: Mapping[WindowType, tuple[int, int]] = field(
        default_factory=_default_ranges
    )
    placement: str = "immediate"
    lead_time_days: int = DEFAULT_LEAD_TIME_DAYS

    def __post_init__(self) -> None:
        for level, weight in self.criticality_weights.items():
            if not isinstance(level, CriticalityLevel):
                raise ValueError(
                    "criticality_weights keys must be CriticalityLevel values, "
                    f"got {type(level).__name__}"
                )
            _require_non_negative(weight, f"criticality_weights[{level.value}]")
        _require_non_negative(self.default_criticality_weight, "default_criticality_weight")
        _require_non_negative(self.equipment_factor, "equipment_factor")
        if not math.isfinite(self.default_processing_days) or self.default_processing_days < 1:
            raise ValueError("default_processing_days must be >= 1")
        if self.underutilized_threshold_percent >= self.overload_threshold_percent:
            raise ValueError(
                "underutilized_threshold_percent must be lower than overload_threshold_percent"
            )
        missing = sorted(kind.value for kind in WindowType if kind not in self.window_duration_days)
        if missing:
            raise ValueError(f"window_duration_days is missing window types: {missing}")
        for kind, (low, high) in self.window_duration_days.items():
            if low < 1 or high < low:
                raise ValueError(f"window_duration_days[{kind.value}] must satisfy 1 <= min <= max")
        if self.placement not in PLACEMENT_POLICIES:
            raise ValueError(f"placement must be one of: {', '.join(PLACEMENT_POLICIES)}")
        if self.lead_time_days < 0:
            raise ValueError("lead_time_days must be >= 0")

    def weight_for(self, level: CriticalityLevel | None) -> float:
        if level is None:
            return self.default_criticality_weight
        return self.criticality_weights.get(level, self.default_criticality_weight)

    def duration_range(self, window_type: WindowType) -> tuple[int, int]:
        return self.window_duration_days[window_type]

    @property
    def max_window_days(self) -> int:
        return max(high for _, high in self.window_duration_days.values())

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> SchedulingSettings:
        """Build settings from a validated config mapping (see ``config.load_config``).

        Sections that are absent fall back to the built-in defaults.
        """

        scoring = _section(config, "scoring")
        utilization = _section(config, "utilization")
        windows = _section(config, "windows")
        synthesizer = _section(config, "synthesizer")

        weights = _default_weights()
        raw_weights = scoring.get("criticality_weights")
        if isinstance(raw_weights, Mapping):
            for level, weight in raw_weights.items():
                weights[CriticalityLevel(level)] = float(weight)

        ranges = _default_ranges()
        for name, bounds in windows.items():
            if not isinstance(bounds, Mapping):
                continue
            kind = WindowType(name)
            low, high = ranges[kind]
            ranges[kind] = (
                int(bounds.get("min_days", low)),
                int(bounds.get("max_days", high)),
            )

        return cls(
            criticality_weights=weights,
            default_criticality_weight=float(
                scoring.get("default_criticality_weight", DEFAULT_CRITICALITY_WEIGHT)
            ),
            equipment_factor=float(scoring.get("equipment_factor", EQUIPMENT_FACTOR)),
            default_processing_days=float(
                scoring.get("default_processing_days", DEFAULT_PROCESSING_DAYS)
            ),
            target_utilization_percent=float(
                utilization.get("target_percent", TARGET_UTILIZATION_PERCENT)
            ),
            overload_threshold_percent=float(
                utilization.get("overload_percent", OVERLOAD_THRESHOLD_PERCENT)
            ),
            underutilized_threshold_percent=float(
                utilization.get("underutilized_percent", UNDERUTILIZED_THRESHOLD_PERCENT)
            ),
            balance_weight_per_level=float(
                utilization.get("balance_weight_per_level", BALANCE_WEIGHT_PER_LEVEL)
            ),
            window_duration_days=ranges,
            placement=str(synthesizer.get("placement", "immediate")),
            lead_time_days=int(synthesizer.get("lead_time_days", DEFAULT_LEAD_TIME_DAYS)),
        )


def _section(config: Mapping[str, object], key: str) -> Mapping[str, object]:
    raw = config.get(key)
    if isinstance(raw, Mapping):
        return raw
    return {}


def _require_non_negative(value: float, name: str) -> None:
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a finite number >= 0")


DEFAULT_SETTINGS = SchedulingSettings()


def resolve_settings(settings: SchedulingSettings | None) -> SchedulingSettings:
    return settings if settings is not None else DEFAULT_SETTINGS


__all__ = ["DEFAULT_SETTINGS", "SchedulingSettings", "resolve_settings"]
