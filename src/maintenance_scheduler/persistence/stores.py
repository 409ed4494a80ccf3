"""
maintenance-scheduler: store contracts for the planning service.

File: src/maintenance_scheduler/persistence/stores.py

Purpose
- Async store protocols for anomalies, maintenance windows and action plans.
- An in-memory reference implementation for tests and embedding.

Functional requirements
- Listing preserves insertion order so scheduling passes are repeatable.
- Unknown ids on update/delete raise ``ValueError`` naming the id.

Non-functional requirements
- Real backends live outside this package; failures they raise are wrapped
  by the service layer as ``InfrastructureError``.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable

    from maintenance_scheduler.domain.models import (
        ActionPlan,
        Anomaly,
        AnomalyStatus,
        MaintenanceWindow,
    )


class InfrastructureError(RuntimeError):
    """A store call failed; the original exception is chained as ``__cause__``."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation}: {message}")


class AnomalyStore(Protocol):
    async def list_anomalies(self, *, status: AnomalyStatus | None = None) -> list[Anomaly]: ...

    async def get_anomaly(self, anomaly_id: str) -> Anomaly | None: ...

    async def update_anomaly(self, anomaly: Anomaly) -> Anomaly: ...


class MaintenanceWindowStore(Protocol):
    async def list_windows(self) -> list[MaintenanceWindow]: ...

    async def get_window(self, window_id: str) -> MaintenanceWindow | None: ...

    async def create_window(self, window: MaintenanceWindow) -> MaintenanceWindow: ...

    async def update_window(self, window: MaintenanceWindow) -> MaintenanceWindow: ...

    async def delete_window(self, window_id: str) -> None: ...


class ActionPlanStore(Protocol):
    async def list_action_plans(self) -> list[ActionPlan]: ...

    async def get_action_plan_for_anomaly(self, anomaly_id: str) -> ActionPlan | None: ...


class InMemoryPlanningStore:
    """Dict-backed implementation of all three store protocols.

    Records are copied on the way in and out so callers never share mutable
    state with the store.
    """

    def __init__(
        self,
        *,
        anomalies: Iterable[Anomaly] = (),
        windows: Iterable[MaintenanceWindow] = (),
        action_plans: Iterable[ActionPlan] = (),
    ) -> None:
        self._anomalies: dict[str, Anomaly] = {item.id: replace(item) for item in anomalies}
        self._windows: dict[str, MaintenanceWindow] = {item.id: replace(item) for item in windows}
        self._action_plans: dict[str, ActionPlan] = {
            item.id: _copy_plan(item) for item in action_plans
        }

    async def list_anomalies(self, *, status: AnomalyStatus | None = None) -> list[Anomaly]:
        await asyncio.sleep(0)
        return [
            replace(item)
            for item in self._anomalies.values()
            if status is None or item.status is status
        ]

    async def get_anomaly(self, anomaly_id: str) -> Anomaly | None:
        await asyncio.sleep(0)
        found = self._anomalies.get(anomaly_id)
        return replace(found) if found is not None else None

    async def update_anomaly(self, anomaly: Anomaly) -> Anomaly:
        await asyncio.sleep(0)
        if anomaly.id not in self._anomalies:
            raise ValueError(f"anomaly_id not found: {anomaly.id}")
        self._anomalies[anomaly.id] = replace(anomaly)
        return replace(anomaly)

    async def add_anomaly(self, anomaly: Anomaly) -> Anomaly:
        await asyncio.sleep(0)
        if anomaly.id in self._anomalies:
            raise ValueError(f"anomaly already exists: {anomaly.id}")
        self._anomalies[anomaly.id] = replace(anomaly)
        return replace(anomaly)

    async def list_windows(self) -> list[MaintenanceWindow]:
        await asyncio.sleep(0)
        return [replace(item) for item in self._windows.values()]

    async def get_window(self, window_id: str) -> MaintenanceWindow | None:
        await asyncio.sleep(0)
        found = self._windows.get(window_id)
        return replace(found) if found is not None else None

    async def create_window(self, window: MaintenanceWindow) -> MaintenanceWindow:
        await asyncio.sleep(0)
        if window.id in self._windows:
            raise ValueError(f"maintenance window already exists: {window.id}")
        self._windows[window.id] = replace(window)
        return replace(window)

    async def update_window(self, window: MaintenanceWindow) -> MaintenanceWindow:
        await asyncio.sleep(0)
        if window.id not in self._windows:
            raise ValueError(f"window_id not found: {window.id}")
        self._windows[window.id] = replace(window)
        return replace(window)

    async def delete_window(self, window_id: str) -> None:
        await asyncio.sleep(0)
        if self._windows.pop(window_id, None) is None:
            raise ValueError(f"window_id not found: {window_id}")

    async def list_action_plans(self) -> list[ActionPlan]:
        await asyncio.sleep(0)
        return [_copy_plan(item) for item in self._action_plans.values()]

    async def get_action_plan_for_anomaly(self, anomaly_id: str) -> ActionPlan | None:
        await asyncio.sleep(0)
        found: ActionPlan | None = None
        for plan in self._action_plans.values():
            if plan.anomaly_id == anomaly_id:
                found = plan
        return _copy_plan(found) if found is not None else None

    async def save_action_plan(self, plan: ActionPlan) -> ActionPlan:
        await asyncio.sleep(0)
        self._action_plans[plan.id] = _copy_plan(plan)
        return _copy_plan(plan)


def _copy_plan(plan: ActionPlan) -> ActionPlan:
    # Action items are mutable records; a shallow copy would share them.
    return replace(plan, actions=tuple(replace(item) for item in plan.actions))


__all__ = [
    "ActionPlanStore",
    "AnomalyStore",
    "InMemoryPlanningStore",
    "InfrastructureError",
    "MaintenanceWindowStore",
]
