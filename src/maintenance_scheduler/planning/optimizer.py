"""Rebalancing of overloaded maintenance windows and post-move recommendations.

The optimizer is pure: it reads anomalies, windows and plans, and proposes
reassignments without touching any store. A proposal is accepted only when it
relieves an overloaded window without lowering the ``overall_score`` of either
window involved, and it never overloads its target. Because windows can only
leave the overloaded set, the search terminates, and re-running it on its own
result proposes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from maintenance_scheduler.domain.models import WindowStatus
from maintenance_scheduler.planning.recommendations import generate_recommendations
from maintenance_scheduler.planning.scoring import index_action_plans, score_anomaly
from maintenance_scheduler.planning.settings import resolve_settings
from maintenance_scheduler.planning.utilization import (
    analyze_window,
    analyze_windows,
    fits_capacity,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from maintenance_scheduler.domain.models import ActionPlan, Anomaly, MaintenanceWindow
    from maintenance_scheduler.planning.recommendations import Recommendation
    from maintenance_scheduler.planning.scoring import PlanLookup
    from maintenance_scheduler.planning.settings import SchedulingSettings
    from maintenance_scheduler.planning.utilization import WindowAnalysis

_MOVABLE_STATUSES = frozenset({WindowStatus.PLANNED})


@dataclass(frozen=True, slots=True)
class Reassignment:
    anomaly_id: str
    from_window_id: str
    to_window_id: str

    def to_dict(self) -> dict[str, object]:
        return {
            "anomaly_id": self.anomaly_id,
            "from_window_id": self.from_window_id,
            "to_window_id": self.to_window_id,
        }


@dataclass(frozen=True, slots=True)
class OptimizationResult:
    """Proposed moves with window analyses before and after applying them."""

    reassignments: tuple[Reassignment, ...]
    recommendations: tuple[Recommendation, ...]
    before: tuple[WindowAnalysis, ...]
    after: tuple[WindowAnalysis, ...]

    @property
    def changed(self) -> bool:
        return bool(self.reassignments)

    def to_dict(self) -> dict[str, object]:
        return {
            "reassignments": [item.to_dict() for item in self.reassignments],
            "recommendations": [item.to_dict() for item in self.recommendations],
            "before": [item.to_dict() for item in self.before],
            "after": [item.to_dict() for item in self.after],
        }


@dataclass(frozen=True, slots=True)
class _Move:
    anomaly: Anomaly
    source_id: str
    target_id: str
    source_after: WindowAnalysis
    target_after: WindowAnalysis


class SchedulingOptimizer:
    __slots__ = ("_logger", "_settings")

    def __init__(
        self,
        *,
        settings: SchedulingSettings | None = None,
        logger: Any | None = None,
    ) -> None:
        self._settings = resolve_settings(settings)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def optimize(
        self,
        treated_anomalies: Sequence[Anomaly],
        maintenance_windows: Sequence[MaintenanceWindow],
        action_plans: PlanLookup,
    ) -> OptimizationResult:
        plans = index_action_plans(action_plans)
        before = analyze_windows(
            maintenance_windows, treated_anomalies, plans, settings=self._settings
        )

        windows_by_id = {window.id: window for window in maintenance_windows}
        members: dict[str, list[Anomaly]] = {window_id: [] for window_id in windows_by_id}
        for anomaly in treated_anomalies:
            if anomaly.maintenance_window_id in members:
                members[anomaly.maintenance_window_id].append(anomaly)
        analyses = {item.window_id: item for item in before}
        efficiency = {
            anomaly.id: score_anomaly(
                anomaly, plans.get(anomaly.id), settings=self._settings
            ).efficiency
            for anomaly in treated_anomalies
        }

        moved_from: dict[str, str] = {}
        moved_to: dict[str, str] = {}
        # Each accepted move removes at least one day from an overloaded window.
        while True:
            move = self._find_move(windows_by_id, members, analyses, plans, efficiency)
            if move is None:
                break
            source_items = members[move.source_id]
            source_items.remove(move.anomaly)
            members[move.target_id].append(move.anomaly.with_window(move.target_id))
            analyses[move.source_id] = move.source_after
            analyses[move.target_id] = move.target_after
            moved_from.setdefault(move.anomaly.id, move.source_id)
            moved_to[move.anomaly.id] = move.target_id
            self._logger.info(
                "scheduling_reassignment_proposed",
                anomaly_id=move.anomaly.id,
                from_window_id=move.source_id,
                to_window_id=move.target_id,
                source_overall_score=move.source_after.overall_score,
                target_overall_score=move.target_after.overall_score,
            )

        reassignments = tuple(
            Reassignment(
                anomaly_id=anomaly_id,
                from_window_id=moved_from[anomaly_id],
                to_window_id=moved_to[anomaly_id],
            )
            for anomaly_id in moved_to
            if moved_from[anomaly_id] != moved_to[anomaly_id]
        )

        final_anomalies = [
            anomaly.with_window(moved_to[anomaly.id]) if anomaly.id in moved_to else anomaly
            for anomaly in treated_anomalies
        ]
        after = analyze_windows(maintenance_windows, final_anomalies, plans, settings=self._settings)
        recommendations = generate_recommendations(after, final_anomalies)

        self._logger.info(
            "scheduling_optimization_completed",
            windows=len(maintenance_windows),
            anomalies=len(treated_anomalies),
            reassignments=len(reassignments),
            recommendations=len(recommendations),
        )
        return OptimizationResult(
            reassignments=reassignments,
            recommendations=recommendations,
            before=before,
            after=after,
        )

    def _find_move(
        self,
        windows_by_id: dict[str, MaintenanceWindow],
        members: dict[str, list[Anomaly]],
        analyses: dict[str, WindowAnalysis],
        plans: dict[str, ActionPlan],
        efficiency: dict[str, float],
    ) -> _Move | None:
        movable = [
            window_id
            for window_id, window in windows_by_id.items()
            if window.status in _MOVABLE_STATUSES
        ]
        sources = sorted(
            (window_id for window_id in movable if analyses[window_id].is_overloaded),
            key=lambda window_id: -analyses[window_id].utilization,
        )
        if not sources:
            return None
        targets = sorted(
            (window_id for window_id in movable if analyses[window_id].is_underutilized),
            key=lambda window_id: -analyses[window_id].overall_score,
        )
        if not targets:
            return None

        for source_id in sources:
            # Lowest efficiency first; stable on assignment order for ties.
            candidates = sorted(members[source_id], key=lambda item: efficiency[item.id])
            for anomaly in candidates:
                move = self._first_acceptable_target(
                    anomaly, source_id, targets, windows_by_id, members, analyses, plans
                )
                if move is not None:
                    return move
        return None

    def _first_acceptable_target(
        self,
        anomaly: Anomaly,
        source_id: str,
        targets: list[str],
        windows_by_id: dict[str, MaintenanceWindow],
        members: dict[str, list[Anomaly]],
        analyses: dict[str, WindowAnalysis],
        plans: dict[str, ActionPlan],
    ) -> _Move | None:
        source_before = analyses[source_id]
        remaining_source = [item for item in members[source_id] if item is not anomaly]
        source_after: WindowAnalysis | None = None

        for target_id in targets:
            if target_id == source_id:
                continue
            target_before = analyses[target_id]
            target_after = analyze_window(
                windows_by_id[target_id],
                [*members[target_id], anomaly.with_window(target_id)],
                plans,
                settings=self._settings,
            )
            if not fits_capacity(target_after.total_workload, target_before.capacity):
                continue
            if target_after.is_overloaded:
                continue
            if target_after.overall_score < target_before.overall_score:
                continue
            if source_after is None:
                source_after = analyze_window(
                    windows_by_id[source_id], remaining_source, plans, settings=self._settings
                )
                if source_after.overall_score < source_before.overall_score:
                    return None
            return _Move(
                anomaly=anomaly,
                source_id=source_id,
                target_id=target_id,
                source_after=source_after,
                target_after=target_after,
            )
        return None


def optimize(
    treated_anomalies: Sequence[Anomaly],
    maintenance_windows: Sequence[MaintenanceWindow],
    action_plans: PlanLookup,
    *,
    settings: SchedulingSettings | None = None,
    logger: Any | None = None,
) -> OptimizationResult:
    """Convenience wrapper around :class:`SchedulingOptimizer`."""

    return SchedulingOptimizer(settings=settings, logger=logger).optimize(
        treated_anomalies, maintenance_windows, action_plans
    )


__all__ = [
    "OptimizationResult",
    "Reassignment",
    "SchedulingOptimizer",
    "optimize",
]
