"""
Async adapter that runs the planning engine against anomaly, window and plan stores.

The engine functions are pure; this service loads their inputs, applies their
outputs, and owns the error channels:

- store failures are re-raised as ``InfrastructureError`` with the cause chained,
- caller mistakes (unknown ids, empty selections, closed windows) raise
  ``SchedulingError``,
- anomalies that cannot be placed are data in the returned result.

Store calls are awaited one at a time. Writes are applied record by record, so
a cancelled pass leaves every record it already updated in place.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from maintenance_scheduler.domain.ids import generate_prefixed_id
from maintenance_scheduler.domain.models import AnomalyStatus, WindowStatus
from maintenance_scheduler.observability.logging import correlation_scope
from maintenance_scheduler.persistence.stores import InfrastructureError
from maintenance_scheduler.planning.auto_scheduler import AutoScheduler, filter_available_windows
from maintenance_scheduler.planning.optimizer import SchedulingOptimizer
from maintenance_scheduler.planning.settings import resolve_settings
from maintenance_scheduler.planning.status import summarize_planning_status
from maintenance_scheduler.planning.utilization import analyze_windows
from maintenance_scheduler.planning.window_synthesizer import WindowSynthesizer, utc_now

if TYPE_CHECKING:
    from maintenance_scheduler.domain.ids import IdFactory
    from maintenance_scheduler.domain.models import ActionPlan, Anomaly, MaintenanceWindow
    from maintenance_scheduler.persistence.stores import (
        ActionPlanStore,
        AnomalyStore,
        MaintenanceWindowStore,
    )
    from maintenance_scheduler.planning.auto_scheduler import ScheduleResult
    from maintenance_scheduler.planning.optimizer import OptimizationResult
    from maintenance_scheduler.planning.settings import SchedulingSettings
    from maintenance_scheduler.planning.status import PlanningStatus
    from maintenance_scheduler.planning.utilization import WindowAnalysis
    from maintenance_scheduler.planning.window_synthesizer import (
        Clock,
        PlacementPolicy,
        WindowSynthesis,
    )

T = TypeVar("T")

_PASS_ID_PREFIX = "pass"
_ASSIGNABLE_WINDOW_STATUSES = frozenset({WindowStatus.PLANNED, WindowStatus.IN_PROGRESS})


class SchedulingError(ValueError):
    """Raised when a scheduling request refers to missing or unusable records."""


def _default_pass_id() -> str:
    return generate_prefixed_id(_PASS_ID_PREFIX)


class PlanningService:
    """Scheduling operations over injected stores."""

    __slots__ = (
        "_action_plans",
        "_anomalies",
        "_clock",
        "_logger",
        "_optimizer",
        "_pass_id_factory",
        "_scheduler",
        "_settings",
        "_synthesizer",
        "_windows",
    )

    def __init__(
        self,
        anomaly_store: AnomalyStore,
        window_store: MaintenanceWindowStore,
        action_plan_store: ActionPlanStore,
        *,
        settings: SchedulingSettings | None = None,
        clock: Clock | None = None,
        placement: PlacementPolicy | None = None,
        id_factory: IdFactory | None = None,
        pass_id_factory: IdFactory | None = None,
        logger: Any | None = None,
    ) -> None:
        self._anomalies = anomaly_store
        self._windows = window_store
        self._action_plans = action_plan_store
        self._settings = resolve_settings(settings)
        self._clock = clock if clock is not None else utc_now
        self._pass_id_factory = pass_id_factory if pass_id_factory is not None else _default_pass_id
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._scheduler = AutoScheduler(settings=self._settings, logger=self._logger)
        self._synthesizer = WindowSynthesizer(
            clock=self._clock,
            placement=placement,
            settings=self._settings,
            id_factory=id_factory,
            logger=self._logger,
        )
        self._optimizer = SchedulingOptimizer(settings=self._settings, logger=self._logger)

    @property
    def settings(self) -> SchedulingSettings:
        return self._settings

    async def auto_schedule_treated_anomalies(self) -> ScheduleResult:
        """Fill available windows with unscheduled treated anomalies and persist the result."""

        pass_id = self._pass_id_factory()
        with correlation_scope(pass_id=pass_id, operation="auto_schedule"):
            # Only treated anomalies count toward window workload.
            treated = await self._store_call(
                "list_anomalies",
                lambda: self._anomalies.list_anomalies(status=AnomalyStatus.TREATED),
            )
            windows = await self._store_call("list_windows", self._windows.list_windows)
            plans = await self._store_call(
                "list_action_plans", self._action_plans.list_action_plans
            )

            available = filter_available_windows(windows, now=self._clock())
            unscheduled = [anomaly for anomaly in treated if not anomaly.is_scheduled]
            result = self._scheduler.schedule(
                unscheduled,
                available,
                plans,
                assigned_anomalies=[anomaly for anomaly in treated if anomaly.is_scheduled],
            )

            by_id = {anomaly.id: anomaly for anomaly in unscheduled}
            for assignment in result.assignments:
                anomaly = by_id[assignment.anomaly_id]
                await self._save_anomaly(anomaly.with_window(assignment.window_id))

            self._logger.info(
                "auto_schedule_applied",
                pass_id=pass_id,
                available_windows=len(available),
                assigned=len(result.assignments),
                unassigned=len(result.unassigned),
            )
            return result

    async def create_optimal_window(
        self,
        anomaly_ids: Sequence[str],
        *,
        assign: bool = False,
        description: str | None = None,
    ) -> WindowSynthesis:
        """Synthesize and store a window sized for ``anomaly_ids``; optionally assign them."""

        pass_id = self._pass_id_factory()
        with correlation_scope(pass_id=pass_id, operation="create_optimal_window"):
            if not anomaly_ids:
                raise SchedulingError("anomaly_ids must not be empty")
            anomalies = await self._require_anomalies(anomaly_ids)
            windows = await self._store_call("list_windows", self._windows.list_windows)
            plans = await self._plans_for(anomalies)

            synthesis = self._synthesizer.synthesize(
                [anomaly.id for anomaly in anomalies],
                plans,
                existing_windows=windows,
                description=description,
            )
            await self._store_call(
                "create_window", lambda: self._windows.create_window(synthesis.window)
            )
            if assign:
                for anomaly in anomalies:
                    await self._save_anomaly(anomaly.with_window(synthesis.window.id))

            self._logger.info(
                "optimal_window_stored",
                pass_id=pass_id,
                window_id=synthesis.window.id,
                assigned=len(anomalies) if assign else 0,
                overflow_days=synthesis.overflow_days,
            )
            return synthesis

    async def create_window(
        self,
        window: MaintenanceWindow,
        *,
        assign_anomaly_ids: Sequence[str] = (),
    ) -> MaintenanceWindow:
        """Store an operator-defined window and assign the given anomalies to it."""

        window = replace(window, auto_created=False)
        anomalies = await self._require_anomalies(assign_anomaly_ids)
        existing = await self._store_call(
            "get_window", lambda: self._windows.get_window(window.id)
        )
        if existing is not None:
            raise SchedulingError(f"maintenance window already exists: {window.id}")
        stored = await self._store_call(
            "create_window", lambda: self._windows.create_window(window)
        )
        for anomaly in anomalies:
            await self._save_anomaly(anomaly.with_window(stored.id))
        self._logger.info(
            "maintenance_window_created",
            window_id=stored.id,
            window_type=stored.type.value,
            assigned=len(anomalies),
        )
        return stored

    async def update_window(self, window: MaintenanceWindow) -> MaintenanceWindow:
        await self._require_window(window.id)
        return await self._store_call("update_window", lambda: self._windows.update_window(window))

    async def optimize_scheduling(self) -> OptimizationResult:
        """Run the optimizer over treated anomalies and apply every proposed move."""

        pass_id = self._pass_id_factory()
        with correlation_scope(pass_id=pass_id, operation="optimize"):
            treated = await self._store_call(
                "list_anomalies",
                lambda: self._anomalies.list_anomalies(status=AnomalyStatus.TREATED),
            )
            windows = await self._store_call("list_windows", self._windows.list_windows)
            plans = await self._store_call(
                "list_action_plans", self._action_plans.list_action_plans
            )

            result = self._optimizer.optimize(treated, windows, plans)

            by_id = {anomaly.id: anomaly for anomaly in treated}
            for move in result.reassignments:
                await self._save_anomaly(by_id[move.anomaly_id].with_window(move.to_window_id))

            self._logger.info(
                "optimization_applied",
                pass_id=pass_id,
                reassignments=len(result.reassignments),
                recommendations=[item.kind.value for item in result.recommendations],
            )
            return result

    async def schedule_anomaly(self, anomaly_id: str, window_id: str) -> Anomaly:
        """Manually assign one anomaly to an open window."""

        (updated,) = await self.schedule_batch((anomaly_id,), window_id)
        return updated

    async def schedule_batch(
        self, anomaly_ids: Sequence[str], window_id: str
    ) -> tuple[Anomaly, ...]:
        """Assign several anomalies to one open window.

        Every id is checked before the first write, so an unknown id leaves the
        store untouched.
        """

        window = await self._require_window(window_id)
        if window.status not in _ASSIGNABLE_WINDOW_STATUSES:
            raise SchedulingError(
                f"window {window_id} is {window.status.value}; only open windows accept anomalies"
            )
        anomalies = await self._require_anomalies(anomaly_ids)
        updated = [
            await self._save_anomaly(anomaly.with_window(window.id)) for anomaly in anomalies
        ]
        self._logger.info(
            "anomalies_scheduled_manually", window_id=window.id, count=len(updated)
        )
        return tuple(updated)

    async def unschedule_anomaly(self, anomaly_id: str) -> Anomaly:
        (anomaly,) = await self._require_anomalies((anomaly_id,))
        return await self._save_anomaly(anomaly.with_window(None))

    async def delete_window(self, window_id: str) -> tuple[str, ...]:
        """Unassign every anomaly from ``window_id``, then delete it.

        Returns the ids of the anomalies that were unassigned.
        """

        await self._require_window(window_id)
        anomalies = await self._store_call("list_anomalies", self._anomalies.list_anomalies)
        released: list[str] = []
        for anomaly in anomalies:
            if anomaly.maintenance_window_id != window_id:
                continue
            await self._save_anomaly(anomaly.with_window(None))
            released.append(anomaly.id)
        await self._store_call("delete_window", lambda: self._windows.delete_window(window_id))
        self._logger.info(
            "maintenance_window_deleted", window_id=window_id, released=len(released)
        )
        return tuple(released)

    async def planning_status(self) -> PlanningStatus:
        anomalies = await self._store_call("list_anomalies", self._anomalies.list_anomalies)
        windows = await self._store_call("list_windows", self._windows.list_windows)
        return summarize_planning_status(anomalies, windows)

    async def window_analyses(self) -> tuple[WindowAnalysis, ...]:
        """Current utilization of every window, counting treated anomalies only."""

        treated = await self._store_call(
            "list_anomalies",
            lambda: self._anomalies.list_anomalies(status=AnomalyStatus.TREATED),
        )
        windows = await self._store_call("list_windows", self._windows.list_windows)
        plans = await self._store_call("list_action_plans", self._action_plans.list_action_plans)
        return analyze_windows(windows, treated, plans, settings=self._settings)

    async def _require_anomalies(self, anomaly_ids: Sequence[str]) -> list[Anomaly]:
        found: list[Anomaly] = []
        missing: list[str] = []
        for anomaly_id in dict.fromkeys(anomaly_ids):
            anomaly = await self._store_call(
                "get_anomaly",
                lambda anomaly_id=anomaly_id: self._anomalies.get_anomaly(anomaly_id),
            )
            if anomaly is None:
                missing.append(anomaly_id)
            else:
                found.append(anomaly)
        if missing:
            raise SchedulingError(f"unknown anomaly ids: {missing}")
        return found

    async def _plans_for(self, anomalies: Sequence[Anomaly]) -> list[ActionPlan]:
        plans: list[ActionPlan] = []
        for anomaly in anomalies:
            plan = await self._store_call(
                "get_action_plan_for_anomaly",
                lambda anomaly_id=anomaly.id: self._action_plans.get_action_plan_for_anomaly(
                    anomaly_id
                ),
            )
            if plan is not None:
                plans.append(plan)
        return plans

    async def _require_window(self, window_id: str) -> MaintenanceWindow:
        window = await self._store_call("get_window", lambda: self._windows.get_window(window_id))
        if window is None:
            raise SchedulingError(f"unknown maintenance window id: {window_id}")
        return window

    async def _save_anomaly(self, anomaly: Anomaly) -> Anomaly:
        return await self._store_call(
            "update_anomaly", lambda: self._anomalies.update_anomaly(anomaly)
        )

    async def _store_call(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call()
        except Exception as exc:
            self._logger.error(
                "store_call_failed", operation=operation, error_type=type(exc).__name__
            )
            raise InfrastructureError(operation, str(exc)) from exc


__all__ = ["InfrastructureError", "PlanningService", "SchedulingError"]
