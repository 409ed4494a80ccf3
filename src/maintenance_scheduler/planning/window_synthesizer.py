"""Creation of right-sized maintenance windows for anomalies that fit nowhere else."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from maintenance_scheduler.domain.ids import generate_window_id
from maintenance_scheduler.domain.models import MaintenanceWindow, WindowStatus, WindowType
from maintenance_scheduler.planning.scoring import index_action_plans, processing_time_days
from maintenance_scheduler.planning.settings import resolve_settings

if TYPE_CHECKING:
    from maintenance_scheduler.domain.ids import IdFactory
    from maintenance_scheduler.planning.scoring import PlanLookup
    from maintenance_scheduler.planning.settings import SchedulingSettings

Clock = Callable[[], datetime]

_OPEN_STATUSES = frozenset({WindowStatus.PLANNED, WindowStatus.IN_PROGRESS})
_TYPES_BY_SIZE: tuple[WindowType, ...] = (WindowType.FORCE, WindowType.MINOR, WindowType.MAJOR)


def utc_now() -> datetime:
    return datetime.now(UTC)


class PlacementPolicy(Protocol):
    """Chooses the start of a newly synthesized window."""

    def place(
        self,
        *,
        now: datetime,
        duration_days: int,
        existing_windows: Sequence[MaintenanceWindow],
    ) -> datetime: ...


@dataclass(frozen=True, slots=True)
class ImmediatePlacement:
    """Start ``lead_time_days`` after now, ignoring other windows."""

    lead_time_days: int = 0

    def __post_init__(self) -> None:
        if self.lead_time_days < 0:
            raise ValueError("lead_time_days must be >= 0")

    def place(
        self,
        *,
        now: datetime,
        duration_days: int,
        existing_windows: Sequence[MaintenanceWindow],
    ) -> datetime:
        return now + timedelta(days=self.lead_time_days)


@dataclass(frozen=True, slots=True)
class NextAvailableSlotPlacement:
    """Start at the earliest point after the lead time that overlaps no open window."""

    lead_time_days: int = 1

    def __post_init__(self) -> None:
        if self.lead_time_days < 0:
            raise ValueError("lead_time_days must be >= 0")

    def place(
        self,
        *,
        now: datetime,
        duration_days: int,
        existing_windows: Sequence[MaintenanceWindow],
    ) -> datetime:
        span = timedelta(days=duration_days)
        blocking = sorted(
            (window for window in existing_windows if window.status in _OPEN_STATUSES),
            key=lambda window: (window.start_date, window.end_date, window.id),
        )
        start = now + timedelta(days=self.lead_time_days)
        # Windows are visited by start date, so one pass pushes past every clash.
        for window in blocking:
            if window.overlaps(start, start + span):
                start = max(start, window.end_date)
        return start


def placement_from_settings(settings: SchedulingSettings | None = None) -> PlacementPolicy:
    resolved = resolve_settings(settings)
    if resolved.placement == "next_available":
        return NextAvailableSlotPlacement(lead_time_days=resolved.lead_time_days)
    return ImmediatePlacement(lead_time_days=resolved.lead_time_days)


@dataclass(frozen=True, slots=True)
class WindowSynthesis:
    """A proposed window plus how much of the requested work it can hold."""

    window: MaintenanceWindow
    anomaly_ids: tuple[str, ...]
    required_days: float
    overflow_days: float

    @property
    def is_overflowing(self) -> bool:
        return self.overflow_days > 0

    def to_dict(self) -> dict[str, object]:
        return {
            "window": self.window.to_dict(),
            "anomaly_ids": list(self.anomaly_ids),
            "required_days": self.required_days,
            "overflow_days": self.overflow_days,
            "is_overflowing": self.is_overflowing,
        }


def select_window_type(
    required_days: float,
    *,
    settings: SchedulingSettings | None = None,
) -> WindowType:
    """Smallest window type whose maximum duration covers ``required_days``.

    Work beyond the largest type still maps to the largest type.
    """

    resolved = resolve_settings(settings)
    for window_type in _TYPES_BY_SIZE:
        _, max_days = resolved.duration_range(window_type)
        if required_days <= max_days:
            return window_type
    return _TYPES_BY_SIZE[-1]


def window_duration_days(
    required_days: float,
    window_type: WindowType,
    *,
    settings: SchedulingSettings | None = None,
) -> int:
    resolved = resolve_settings(settings)
    min_days, max_days = resolved.duration_range(window_type)
    return min(max(math.ceil(required_days), min_days), max_days)


class WindowSynthesizer:
    """Sizes, types and places a new window for a set of anomalies.

    The synthesized window is returned, never stored, and the anomalies are
    not assigned to it.
    """

    __slots__ = ("_clock", "_id_factory", "_logger", "_placement", "_settings")

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        placement: PlacementPolicy | None = None,
        settings: SchedulingSettings | None = None,
        id_factory: IdFactory | None = None,
        logger: Any | None = None,
    ) -> None:
        self._settings = resolve_settings(settings)
        self._clock = clock if clock is not None else utc_now
        self._placement = (
            placement if placement is not None else placement_from_settings(self._settings)
        )
        self._id_factory = id_factory if id_factory is not None else generate_window_id
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def synthesize(
        self,
        anomaly_ids: Sequence[str],
        action_plans: PlanLookup,
        *,
        existing_windows: Sequence[MaintenanceWindow] = (),
        description: str | None = None,
    ) -> WindowSynthesis:
        ordered_ids = tuple(dict.fromkeys(anomaly_ids))
        if not ordered_ids:
            raise ValueError("anomaly_ids must not be empty")

        plans = index_action_plans(action_plans)
        required = math.fsum(
            processing_time_days(plans.get(anomaly_id), settings=self._settings)
            for anomaly_id in ordered_ids
        )
        window_type = select_window_type(required, settings=self._settings)
        duration = window_duration_days(required, window_type, settings=self._settings)
        overflow = max(0.0, required - duration)

        now = self._clock()
        start = self._placement.place(
            now=now, duration_days=duration, existing_windows=existing_windows
        )
        window = MaintenanceWindow(
            id=self._id_factory(),
            type=window_type,
            duration_days=float(duration),
            start_date=start,
            end_date=start + timedelta(days=duration),
            status=WindowStatus.PLANNED,
            auto_created=True,
            description=description
            or f"Auto-created {window_type.value} window for {len(ordered_ids)} anomalies",
            source_anomaly_id=ordered_ids[0],
        )

        if overflow > 0:
            self._logger.warning(
                "window_capacity_overflow",
                window_id=window.id,
                required_days=required,
                capacity_days=duration,
                overflow_days=overflow,
            )
        self._logger.info(
            "optimal_window_synthesized",
            window_id=window.id,
            window_type=window_type.value,
            duration_days=duration,
            required_days=required,
            anomaly_count=len(ordered_ids),
            start_date=window.start_date.isoformat(),
        )
        return WindowSynthesis(
            window=window,
            anomaly_ids=ordered_ids,
            required_days=required,
            overflow_days=overflow,
        )


def create_optimal_window(
    anomaly_ids: Sequence[str],
    action_plans: PlanLookup,
    *,
    clock: Clock | None = None,
    placement: PlacementPolicy | None = None,
    settings: SchedulingSettings | None = None,
    id_factory: IdFactory | None = None,
    existing_windows: Sequence[MaintenanceWindow] = (),
    description: str | None = None,
    logger: Any | None = None,
) -> WindowSynthesis:
    """Convenience wrapper around :class:`WindowSynthesizer`."""

    synthesizer = WindowSynthesizer(
        clock=clock,
        placement=placement,
        settings=settings,
        id_factory=id_factory,
        logger=logger,
    )
    return synthesizer.synthesize(
        anomaly_ids,
        action_plans,
        existing_windows=existing_windows,
        description=description,
    )


__all__ = [
    "Clock",
    "ImmediatePlacement",
    "NextAvailableSlotPlacement",
    "PlacementPolicy",
    "WindowSynthesis",
    "WindowSynthesizer",
    "create_optimal_window",
    "placement_from_settings",
    "select_window_type",
    "utc_now",
    "window_duration_days",
]
