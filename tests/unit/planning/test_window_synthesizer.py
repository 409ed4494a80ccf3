"""Unit tests for window type selection, sizing and placement."""

from __future__ import annotations

from datetime import timedelta

import pytest

from maintenance_scheduler.domain.models import WindowStatus, WindowType
from maintenance_scheduler.planning.settings import SchedulingSettings
from maintenance_scheduler.planning.window_synthesizer import (
    ImmediatePlacement,
    NextAvailableSlotPlacement,
    WindowSynthesizer,
    create_optimal_window,
    placement_from_settings,
    select_window_type,
    window_duration_days,
)
from tests.builders import (
    NOW,
    RecordingLogger,
    SequentialIds,
    anomaly_id,
    fixed_clock,
    make_plan,
    make_window,
)


@pytest.mark.parametrize(
    ("required", "expected"),
    [
        (0.5, WindowType.FORCE),
        (2, WindowType.FORCE),
        (3, WindowType.FORCE),
        (3.5, WindowType.MINOR),
        (7, WindowType.MINOR),
        (10, WindowType.MAJOR),
        (90, WindowType.MAJOR),
    ],
)
def test_select_window_type(required: float, expected: WindowType) -> None:
    assert select_window_type(required) is expected


def test_duration_is_ceiled_and_clamped_into_type_range() -> None:
    assert window_duration_days(2.2, WindowType.FORCE) == 3
    assert window_duration_days(0.5, WindowType.FORCE) == 1
    assert window_duration_days(3.5, WindowType.MINOR) == 4
    assert window_duration_days(10, WindowType.MAJOR) == 14
    assert window_duration_days(50, WindowType.MAJOR) == 42


def test_two_day_request_gives_force_window_starting_after_lead_time() -> None:
    owner = anomaly_id(1)
    synthesis = create_optimal_window(
        [owner],
        [make_plan(owner, 2)],
        clock=fixed_clock,
        id_factory=SequentialIds("mw"),
        logger=RecordingLogger(),
    )
    window = synthesis.window
    assert window.id == "mw-001"
    assert window.type is WindowType.FORCE
    assert window.duration_days == 2.0
    assert window.status is WindowStatus.PLANNED
    assert window.auto_created
    assert window.source_anomaly_id == owner
    assert window.start_date == NOW + timedelta(days=1)
    assert window.end_date == window.start_date + timedelta(days=2)
    assert window.is_available(NOW)
    assert synthesis.required_days == 2.0
    assert not synthesis.is_overflowing


def test_ten_days_across_anomalies_gives_major_window() -> None:
    ids = [anomaly_id(1), anomaly_id(2), anomaly_id(3)]
    plans = [make_plan(ids[0], 6), make_plan(ids[1], 3)]
    synthesis = create_optimal_window(ids, plans, clock=fixed_clock, logger=RecordingLogger())
    assert synthesis.required_days == 10.0
    assert synthesis.window.type is WindowType.MAJOR
    assert synthesis.window.duration_days == 14.0
    assert synthesis.anomaly_ids == tuple(ids)
    assert "3 anomalies" in (synthesis.window.description or "")


def test_overflow_is_capped_reported_and_logged() -> None:
    owner = anomaly_id(1)
    logger = RecordingLogger()
    synthesis = create_optimal_window(
        [owner, owner], [make_plan(owner, 30, 20)], clock=fixed_clock, logger=logger
    )
    assert synthesis.anomaly_ids == (owner,)
    assert synthesis.window.duration_days == 42.0
    assert synthesis.overflow_days == 8.0
    assert synthesis.is_overflowing
    assert logger.names("warning") == ["window_capacity_overflow"]
    assert logger.fields_of("window_capacity_overflow")["overflow_days"] == 8.0
    assert "optimal_window_synthesized" in logger.names("info")


def test_empty_request_is_rejected() -> None:
    with pytest.raises(ValueError, match="anomaly_ids must not be empty"):
        WindowSynthesizer(clock=fixed_clock).synthesize([], [])


def test_next_available_slot_skips_open_windows() -> None:
    placement = NextAvailableSlotPlacement(lead_time_days=1)
    existing = [
        make_window(2, 3, start_in_days=4),
        make_window(1, 2, start_in_days=1),
        make_window(3, 5, start_in_days=5, status=WindowStatus.CANCELLED),
    ]
    start = placement.place(now=NOW, duration_days=2, existing_windows=existing)
    # 1-3 is taken, 3-4 is too short before the window at 4-7.
    assert start == NOW + timedelta(days=7)

    free = placement.place(now=NOW, duration_days=2, existing_windows=existing[2:])
    assert free == NOW + timedelta(days=1)


def test_immediate_placement_ignores_existing_windows() -> None:
    placement = ImmediatePlacement(lead_time_days=2)
    start = placement.place(
        now=NOW, duration_days=3, existing_windows=[make_window(1, 5, start_in_days=1)]
    )
    assert start == NOW + timedelta(days=2)
    with pytest.raises(ValueError, match="lead_time_days"):
        ImmediatePlacement(lead_time_days=-1)


def test_placement_follows_settings() -> None:
    conservative = SchedulingSettings(placement="next_available", lead_time_days=7)
    placement = placement_from_settings(conservative)
    assert placement == NextAvailableSlotPlacement(lead_time_days=7)
    assert placement_from_settings() == ImmediatePlacement(lead_time_days=1)


def test_custom_window_ranges_change_type_selection() -> None:
    settings = SchedulingSettings(
        window_duration_days={
            WindowType.FORCE: (1, 2),
            WindowType.MINOR: (2, 10),
            WindowType.MAJOR: (11, 30),
        }
    )
    assert select_window_type(2.5, settings=settings) is WindowType.MINOR
    assert settings.max_window_days == 30
