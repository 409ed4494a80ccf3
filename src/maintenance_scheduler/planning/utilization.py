"""Workload, utilization and quality scores for maintenance windows."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from maintenance_scheduler.domain.models import CriticalityLevel
from maintenance_scheduler.planning.scoring import index_action_plans, processing_time_days
from maintenance_scheduler.planning.settings import resolve_settings

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from maintenance_scheduler.domain.models import Anomaly, MaintenanceWindow
    from maintenance_scheduler.planning.scoring import PlanLookup
    from maintenance_scheduler.planning.settings import SchedulingSettings

_LEVEL_ORDER: tuple[CriticalityLevel, ...] = (
    CriticalityLevel.CRITICAL,
    CriticalityLevel.HIGH,
    CriticalityLevel.NORMAL,
    CriticalityLevel.LOW,
)

# Absorbs float drift when fractional plan durations fill a window exactly.
CAPACITY_EPSILON = 1e-9


@dataclass(frozen=True, slots=True)
class WindowAnalysis:
    """Utilization snapshot of one window and the anomalies assigned to it."""

    window_id: str
    capacity: float
    total_workload: float
    utilization: float
    criticality_balance: tuple[tuple[CriticalityLevel, int], ...]
    balance_score: float
    efficiency_score: float
    overall_score: float
    assigned_anomaly_ids: tuple[str, ...]
    is_overloaded: bool
    is_underutilized: bool

    @property
    def remaining_capacity(self) -> float:
        return self.capacity - self.total_workload

    def level_count(self, level: CriticalityLevel) -> int:
        for candidate, count in self.criticality_balance:
            if candidate is level:
                return count
        return 0

    def to_dict(self) -> dict[str, object]:
        return {
            "window_id": self.window_id,
            "capacity": self.capacity,
            "total_workload": self.total_workload,
            "remaining_capacity": self.remaining_capacity,
            "utilization": self.utilization,
            "criticality_balance": {
                level.value: count for level, count in self.criticality_balance
            },
            "balance_score": self.balance_score,
            "efficiency_score": self.efficiency_score,
            "overall_score": self.overall_score,
            "assigned_anomaly_ids": list(self.assigned_anomaly_ids),
            "is_overloaded": self.is_overloaded,
            "is_underutilized": self.is_underutilized,
        }


def utilization_percent(workload: float, capacity: float) -> float:
    """Workload as a percentage of capacity; 0 for a window without capacity."""
    if capacity <= 0:
        return 0.0
    return workload / capacity * 100


def fits_capacity(workload: float, capacity: float) -> bool:
    """True when ``workload`` days fit into ``capacity`` days, up to float drift."""
    return workload <= capacity + CAPACITY_EPSILON


def exceeds_share(workload: float, capacity: float, percent: float) -> bool:
    if capacity <= 0:
        return False
    return workload > capacity * (percent / 100) + CAPACITY_EPSILON


def below_share(workload: float, capacity: float, percent: float) -> bool:
    if capacity <= 0:
        return False
    return workload + CAPACITY_EPSILON < capacity * (percent / 100)


def efficiency_score(utilization: float, *, settings: SchedulingSettings | None = None) -> float:
    resolved = resolve_settings(settings)
    return max(0.0, 100 - abs(resolved.target_utilization_percent - utilization))


def analyze_window(
    window: MaintenanceWindow,
    assigned_anomalies: Sequence[Anomaly],
    action_plans: PlanLookup,
    *,
    settings: SchedulingSettings | None = None,
) -> WindowAnalysis:
    """Score how well ``window`` is loaded by ``assigned_anomalies``.

    The assigned set is taken as given; callers that hold every anomaly should
    use :func:`analyze_windows`, which derives it from window references.
    """

    resolved = resolve_settings(settings)
    plans = index_action_plans(action_plans)

    durations: list[float] = []
    counts: Counter[CriticalityLevel] = Counter()
    for anomaly in assigned_anomalies:
        durations.append(processing_time_days(plans.get(anomaly.id), settings=resolved))
        counts[anomaly.level] += 1
    # fsum keeps the total independent of assignment order.
    workload = math.fsum(durations)

    capacity = window.duration_days
    utilization = utilization_percent(workload, capacity)
    balance = len(counts) * resolved.balance_weight_per_level
    efficiency = efficiency_score(utilization, settings=resolved)

    return WindowAnalysis(
        window_id=window.id,
        capacity=capacity,
        total_workload=workload,
        utilization=utilization,
        criticality_balance=tuple(
            (level, counts[level]) for level in _LEVEL_ORDER if counts[level]
        ),
        balance_score=balance,
        efficiency_score=efficiency,
        overall_score=(balance + efficiency) / 2,
        assigned_anomaly_ids=tuple(anomaly.id for anomaly in assigned_anomalies),
        is_overloaded=exceeds_share(workload, capacity, resolved.overload_threshold_percent),
        is_underutilized=(
            workload > 0
            and below_share(workload, capacity, resolved.underutilized_threshold_percent)
        ),
    )


def analyze_windows(
    windows: Iterable[MaintenanceWindow],
    anomalies: Iterable[Anomaly],
    action_plans: PlanLookup,
    *,
    settings: SchedulingSettings | None = None,
) -> tuple[WindowAnalysis, ...]:
    """Analyze every window in input order."""

    resolved = resolve_settings(settings)
    plans = index_action_plans(action_plans)
    by_window = group_by_window(anomalies)
    return tuple(
        analyze_window(window, by_window.get(window.id, ()), plans, settings=resolved)
        for window in windows
    )


def group_by_window(anomalies: Iterable[Anomaly]) -> dict[str, tuple[Anomaly, ...]]:
    grouped: dict[str, list[Anomaly]] = {}
    for anomaly in anomalies:
        if anomaly.maintenance_window_id is None:
            continue
        grouped.setdefault(anomaly.maintenance_window_id, []).append(anomaly)
    return {window_id: tuple(items) for window_id, items in grouped.items()}


__all__ = [
    "CAPACITY_EPSILON",
    "WindowAnalysis",
    "analyze_window",
    "analyze_windows",
    "below_share",
    "efficiency_score",
    "exceeds_share",
    "fits_capacity",
    "group_by_window",
    "utilization_percent",
]
