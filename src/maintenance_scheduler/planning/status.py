"""Counts of treated-anomaly scheduling progress and open maintenance windows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from maintenance_scheduler.domain.models import AnomalyStatus, CriticalityLevel, WindowStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from maintenance_scheduler.domain.models import Anomaly, MaintenanceWindow

_OPEN_WINDOW_STATUSES = frozenset({WindowStatus.PLANNED, WindowStatus.IN_PROGRESS})


@dataclass(frozen=True, slots=True)
class PlanningStatus:
    treated_total: int
    treated_assigned: int
    treated_unassigned: int
    critical_unassigned: int
    open_windows: int

    @property
    def assignment_rate(self) -> float:
        """Share of treated anomalies that have a window, 0-100."""
        if self.treated_total == 0:
            return 0.0
        return self.treated_assigned / self.treated_total * 100

    def to_dict(self) -> dict[str, object]:
        return {
            "treated_total": self.treated_total,
            "treated_assigned": self.treated_assigned,
            "treated_unassigned": self.treated_unassigned,
            "critical_unassigned": self.critical_unassigned,
            "open_windows": self.open_windows,
            "assignment_rate": self.assignment_rate,
        }


def summarize_planning_status(
    anomalies: Iterable[Anomaly],
    windows: Iterable[MaintenanceWindow],
) -> PlanningStatus:
    treated = [anomaly for anomaly in anomalies if anomaly.status is AnomalyStatus.TREATED]
    assigned = sum(1 for anomaly in treated if anomaly.is_scheduled)
    critical_unassigned = sum(
        1
        for anomaly in treated
        if not anomaly.is_scheduled and anomaly.criticality_level is CriticalityLevel.CRITICAL
    )
    return PlanningStatus(
        treated_total=len(treated),
        treated_assigned=assigned,
        treated_unassigned=len(treated) - assigned,
        critical_unassigned=critical_unassigned,
        open_windows=sum(1 for window in windows if window.status in _OPEN_WINDOW_STATUSES),
    )


__all__ = ["PlanningStatus", "summarize_planning_status"]
