"""Stable constants shared by the scheduling engine and its configuration."""

from __future__ import annotations

from typing import Final

CONFIG_SCHEMA_VERSION: Final[int] = 1
MODEL_SCHEMA_VERSION: Final[int] = 1

# Summed sub-score thresholds for criticality classification.
CRITICAL_SCORE_THRESHOLD: Final[float] = 9
HIGH_SCORE_THRESHOLD: Final[float] = 7
NORMAL_SCORE_THRESHOLD: Final[float] = 3

CRITICALITY_LEVELS: Final[tuple[str, ...]] = ("low", "normal", "high", "critical")
DEFAULT_CRITICALITY_WEIGHT: Final[float] = 1.0
CRITICALITY_WEIGHTS: Final[dict[str, float]] = {
    "low": 1.0,
    "normal": 4.0,
    "high": 7.0,
    "critical": 10.0,
}
EQUIPMENT_FACTOR: Final[float] = 1.2
DEFAULT_PROCESSING_DAYS: Final[float] = 1.0

# Window capacity targets, in percent of duration_days.
TARGET_UTILIZATION_PERCENT: Final[float] = 85.0
OVERLOAD_THRESHOLD_PERCENT: Final[float] = 100.0
UNDERUTILIZED_THRESHOLD_PERCENT: Final[float] = 50.0
BALANCE_WEIGHT_PER_LEVEL: Final[float] = 10.0

# Inclusive duration range in days for each window type, smallest first.
WINDOW_TYPE_DURATION_DAYS: Final[dict[str, tuple[int, int]]] = {
    "force": (1, 3),
    "minor": (3, 7),
    "major": (14, 42),
}

DEFAULT_LEAD_TIME_DAYS: Final[int] = 1
PLACEMENT_POLICIES: Final[tuple[str, ...]] = ("immediate", "next_available")

__all__ = [
    "BALANCE_WEIGHT_PER_LEVEL",
    "CONFIG_SCHEMA_VERSION",
    "CRITICALITY_LEVELS",
    "CRITICALITY_WEIGHTS",
    "CRITICAL_SCORE_THRESHOLD",
    "DEFAULT_CRITICALITY_WEIGHT",
    "DEFAULT_LEAD_TIME_DAYS",
    "DEFAULT_PROCESSING_DAYS",
    "EQUIPMENT_FACTOR",
    "HIGH_SCORE_THRESHOLD",
    "MODEL_SCHEMA_VERSION",
    "NORMAL_SCORE_THRESHOLD",
    "OVERLOAD_THRESHOLD_PERCENT",
    "PLACEMENT_POLICIES",
    "TARGET_UTILIZATION_PERCENT",
    "UNDERUTILIZED_THRESHOLD_PERCENT",
    "WINDOW_TYPE_DURATION_DAYS",
]
