"""Shared deterministic builders and a recording logger for scheduling tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Final

from maintenance_scheduler.domain.models import (
    ActionItem,
    ActionPlan,
    Anomaly,
    AnomalyStatus,
    CriticalityLevel,
    MaintenanceWindow,
    WindowStatus,
    WindowType,
)

NOW: Final[datetime] = datetime(2026, 3, 2, 8, 0, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return NOW


def anomaly_id(index: int) -> str:
    return f"anom-{index:03d}"


def window_id(index: int) -> str:
    return f"mw-{index:03d}"


def make_anomaly(
    index: int,
    *,
    level: CriticalityLevel = CriticalityLevel.NORMAL,
    status: AnomalyStatus = AnomalyStatus.TREATED,
    window: str | None = None,
    equipment_id: str | None = None,
) -> Anomaly:
    return Anomaly(
        id=anomaly_id(index),
        status=status,
        title=f"Anomaly {index}",
        equipment_id=equipment_id,
        maintenance_window_id=window,
        criticality_level=level,
    )


def make_plan(owner: str, *durations: float) -> ActionPlan:
    return ActionPlan(
        id=f"ap-{owner}",
        anomaly_id=owner,
        actions=tuple(
            ActionItem(id=f"act-{owner}-{step}", action=f"step {step}", duration_days=days)
            for step, days in enumerate(durations)
        ),
    )


def make_window(
    index: int,
    capacity: float,
    *,
    start_in_days: float = 7,
    status: WindowStatus = WindowStatus.PLANNED,
    window_type: WindowType = WindowType.MINOR,
) -> MaintenanceWindow:
    start = NOW + timedelta(days=start_in_days)
    return MaintenanceWindow(
        id=window_id(index),
        type=window_type,
        duration_days=capacity,
        start_date=start,
        end_date=start + timedelta(days=max(capacity, 0)),
        status=status,
    )


class SequentialIds:
    """Deterministic id factory: ``<prefix>-001``, ``<prefix>-002``, ..."""

    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._count = 0

    def __call__(self) -> str:
        self._count += 1
        return f"{self._prefix}-{self._count:03d}"


class RecordingLogger:
    """Minimal structlog-compatible logger that keeps every event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def _record(self, level: str, event: str, fields: dict[str, Any]) -> None:
        self.events.append((level, event, fields))

    def info(self, event: str, **fields: Any) -> None:
        self._record("info", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._record("warning", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._record("error", event, fields)

    def names(self, level: str | None = None) -> list[str]:
        return [event for lvl, event, _ in self.events if level is None or lvl == level]

    def fields_of(self, event: str) -> dict[str, Any]:
        for _, name, fields in self.events:
            if name == event:
                return fields
        raise KeyError(event)
