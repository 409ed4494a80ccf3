"""Greedy first-fit assignment of treated anomalies to available maintenance windows."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from maintenance_scheduler.planning.scoring import (
    index_action_plans,
    processing_time_days,
    rank_anomalies,
)
from maintenance_scheduler.planning.settings import resolve_settings
from maintenance_scheduler.planning.utilization import fits_capacity

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime

    from maintenance_scheduler.domain.models import Anomaly, MaintenanceWindow
    from maintenance_scheduler.planning.scoring import PlanLookup
    from maintenance_scheduler.planning.settings import SchedulingSettings

@dataclass(frozen=True, slots=True)
class Assignment:
    anomaly_id: str
    window_id: str


@dataclass(frozen=True, slots=True)
class ScheduleResult:
    """Outcome of one scheduling pass; nothing has been persisted yet."""

    assignments: tuple[Assignment, ...]
    unassigned: tuple[str, ...]

    @property
    def assigned_count(self) -> int:
        return len(self.assignments)

    def window_for(self, anomaly_id: str) -> str | None:
        for assignment in self.assignments:
            if assignment.anomaly_id == anomaly_id:
                return assignment.window_id
        return None

    def to_dict(self) -> dict[str, object]:
        return {
            "assignments": [
                {"anomaly_id": item.anomaly_id, "window_id": item.window_id}
                for item in self.assignments
            ],
            "unassigned": list(self.unassigned),
        }


class AutoScheduler:
    """Efficiency-ordered first-fit bin filling.

    Windows are tried in the order given, so callers control tie-breaking
    between windows (for example by sorting on start date). The scheduler
    never creates windows; anything that fits nowhere is reported back.
    """

    __slots__ = ("_logger", "_settings")

    def __init__(
        self,
        *,
        settings: SchedulingSettings | None = None,
        logger: Any | None = None,
    ) -> None:
        self._settings = resolve_settings(settings)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def settings(self) -> SchedulingSettings:
        return self._settings

    def schedule(
        self,
        unscheduled: Iterable[Anomaly],
        available_windows: Sequence[MaintenanceWindow],
        action_plans: PlanLookup,
        *,
        assigned_anomalies: Iterable[Anomaly] = (),
    ) -> ScheduleResult:
        plans = index_action_plans(action_plans)
        ranked = rank_anomalies(unscheduled, plans, settings=self._settings)
        if not ranked:
            return ScheduleResult(assignments=(), unassigned=())

        # Per-window durations; totals use fsum exactly as the analyzer does.
        loads: dict[str, list[float]] = {window.id: [] for window in available_windows}
        for anomaly in assigned_anomalies:
            window_id = anomaly.maintenance_window_id
            if window_id in loads:
                loads[window_id].append(
                    processing_time_days(plans.get(anomaly.id), settings=self._settings)
                )

        assignments: list[Assignment] = []
        unassigned: list[str] = []
        for score in ranked:
            target = self._first_fit(available_windows, loads, score.processing_time)
            if target is None:
                unassigned.append(score.anomaly_id)
                continue
            loads[target.id].append(score.processing_time)
            assignments.append(Assignment(anomaly_id=score.anomaly_id, window_id=target.id))

        self._logger.info(
            "auto_schedule_completed",
            candidates=len(ranked),
            windows=len(available_windows),
            assigned=len(assignments),
            unassigned=len(unassigned),
        )
        return ScheduleResult(assignments=tuple(assignments), unassigned=tuple(unassigned))

    @staticmethod
    def _first_fit(
        windows: Sequence[MaintenanceWindow],
        loads: dict[str, list[float]],
        required: float,
    ) -> MaintenanceWindow | None:
        for window in windows:
            if fits_capacity(math.fsum([*loads[window.id], required]), window.duration_days):
                return window
        return None


def auto_schedule(
    unscheduled: Iterable[Anomaly],
    available_windows: Sequence[MaintenanceWindow],
    action_plans: PlanLookup,
    *,
    assigned_anomalies: Iterable[Anomaly] = (),
    settings: SchedulingSettings | None = None,
    logger: Any | None = None,
) -> ScheduleResult:
    """Convenience wrapper around :class:`AutoScheduler`."""

    return AutoScheduler(settings=settings, logger=logger).schedule(
        unscheduled,
        available_windows,
        action_plans,
        assigned_anomalies=assigned_anomalies,
    )


def filter_available_windows(
    windows: Iterable[MaintenanceWindow],
    *,
    now: datetime,
) -> tuple[MaintenanceWindow, ...]:
    """Keep planned windows that start strictly after ``now``, in input order."""

    return tuple(window for window in windows if window.is_available(now))


__all__ = [
    "Assignment",
    "AutoScheduler",
    "ScheduleResult",
    "auto_schedule",
    "filter_available_windows",
]
