"""Actionable findings derived from window analyses and anomaly assignment state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from maintenance_scheduler.domain.models import CriticalityLevel

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from maintenance_scheduler.domain.models import Anomaly
    from maintenance_scheduler.planning.utilization import WindowAnalysis


class RecommendationKind(StrEnum):
    OVERLOADED = "overloaded"
    UNDERUTILIZED = "underutilized"
    UNSCHEDULED_CRITICAL = "unscheduled_critical"


class RecommendationSeverity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Recommendation:
    """One aggregated finding; ``subject_ids`` lists the windows or anomalies concerned."""

    kind: RecommendationKind
    severity: RecommendationSeverity
    title: str
    description: str
    action: str
    subject_ids: tuple[str, ...]

    @property
    def count(self) -> int:
        return len(self.subject_ids)

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "action": self.action,
            "subject_ids": list(self.subject_ids),
        }


def generate_recommendations(
    analyses: Sequence[WindowAnalysis],
    anomalies: Iterable[Anomaly],
) -> tuple[Recommendation, ...]:
    """Build recommendations, at most one per kind, in a fixed kind order.

    Overload and underuse flags are read from the analyses, so the thresholds
    are whatever settings produced them.
    """

    recommendations: list[Recommendation] = []

    overloaded = tuple(item.window_id for item in analyses if item.is_overloaded)
    if overloaded:
        recommendations.append(
            Recommendation(
                kind=RecommendationKind.OVERLOADED,
                severity=RecommendationSeverity.WARNING,
                title="Overloaded windows",
                description=f"{len(overloaded)} window(s) exceed their capacity",
                action="Redistribute anomalies or extend the window duration",
                subject_ids=overloaded,
            )
        )

    underutilized = tuple(item.window_id for item in analyses if item.is_underutilized)
    if underutilized:
        recommendations.append(
            Recommendation(
                kind=RecommendationKind.UNDERUTILIZED,
                severity=RecommendationSeverity.INFO,
                title="Available capacity",
                description=f"{len(underutilized)} window(s) can take more anomalies",
                action="Schedule additional anomalies",
                subject_ids=underutilized,
            )
        )

    unscheduled_critical = tuple(
        anomaly.id
        for anomaly in anomalies
        if anomaly.maintenance_window_id is None
        and anomaly.criticality_level is CriticalityLevel.CRITICAL
    )
    if unscheduled_critical:
        recommendations.append(
            Recommendation(
                kind=RecommendationKind.UNSCHEDULED_CRITICAL,
                severity=RecommendationSeverity.ERROR,
                title="Unscheduled critical anomalies",
                description=(
                    f"{len(unscheduled_critical)} critical anomaly(ies) need immediate attention"
                ),
                action="Create an emergency window or reorganize priorities",
                subject_ids=unscheduled_critical,
            )
        )

    return tuple(recommendations)


__all__ = [
    "Recommendation",
    "RecommendationKind",
    "RecommendationSeverity",
    "generate_recommendations",
]
