"""Urgency and efficiency scoring used to order anomalies for scheduling."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from maintenance_scheduler.planning.settings import resolve_settings

if TYPE_CHECKING:
    from maintenance_scheduler.domain.models import ActionPlan, Anomaly
    from maintenance_scheduler.planning.settings import SchedulingSettings

# Plans may be passed as a sequence or already keyed by anomaly id.
PlanLookup = Mapping[str, "ActionPlan"] | Iterable["ActionPlan"]


@dataclass(frozen=True, slots=True)
class AnomalyScore:
    """Scheduling score for one anomaly.

    ``efficiency`` is urgency per day of remediation work and is the only
    ordering key used by the scheduler and optimizer.
    """

    anomaly_id: str
    urgency_score: float
    processing_time: float
    efficiency: float

    def to_dict(self) -> dict[str, object]:
        return {
            "anomaly_id": self.anomaly_id,
            "urgency_score": self.urgency_score,
            "processing_time": self.processing_time,
            "efficiency": self.efficiency,
        }


def processing_time_days(
    action_plan: ActionPlan | None,
    *,
    settings: SchedulingSettings | None = None,
) -> float:
    """Remediation days for one anomaly, never below the default processing time."""
    resolved = resolve_settings(settings)
    if action_plan is None:
        return resolved.default_processing_days
    return max(action_plan.total_duration_days, resolved.default_processing_days)


def score_anomaly(
    anomaly: Anomaly,
    action_plan: ActionPlan | None = None,
    *,
    settings: SchedulingSettings | None = None,
) -> AnomalyScore:
    resolved = resolve_settings(settings)
    factor = resolved.equipment_factor if anomaly.equipment_id is not None else 1.0
    urgency = resolved.weight_for(anomaly.criticality_level) * factor
    processing_time = processing_time_days(action_plan, settings=resolved)
    return AnomalyScore(
        anomaly_id=anomaly.id,
        urgency_score=urgency,
        processing_time=processing_time,
        efficiency=urgency / processing_time,
    )


def rank_anomalies(
    anomalies: Iterable[Anomaly],
    action_plans: PlanLookup,
    *,
    settings: SchedulingSettings | None = None,
) -> tuple[AnomalyScore, ...]:
    """Score ``anomalies`` and order them by efficiency, highest first.

    The sort is stable so equal efficiencies keep their input order.
    """

    resolved = resolve_settings(settings)
    plans = index_action_plans(action_plans)
    scores = [
        score_anomaly(anomaly, plans.get(anomaly.id), settings=resolved)
        for anomaly in anomalies
    ]
    scores.sort(key=lambda score: -score.efficiency)
    return tuple(scores)


def index_action_plans(action_plans: PlanLookup) -> dict[str, ActionPlan]:
    """Key plans by anomaly id; the last plan wins when an anomaly has several."""
    if isinstance(action_plans, Mapping):
        return dict(action_plans)
    return {plan.anomaly_id: plan for plan in action_plans}


__all__ = [
    "AnomalyScore",
    "PlanLookup",
    "index_action_plans",
    "processing_time_days",
    "rank_anomalies",
    "score_anomaly",
]
