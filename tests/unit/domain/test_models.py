"""Unit tests for domain models: validation, derived criticality and serialization."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from maintenance_scheduler.domain.models import (
    ActionItem,
    ActionItemStatus,
    ActionPlan,
    Anomaly,
    AnomalyStatus,
    CriticalityLevel,
    MaintenanceWindow,
    WindowStatus,
    WindowType,
    calculate_anomaly_criticality,
    calculate_criticality_level,
)
from tests.builders import NOW, make_plan, make_window

_scores = st.one_of(st.none(), st.floats(min_value=0, max_value=5, allow_nan=False))


@pytest.mark.parametrize(
    ("total", "expected"),
    [
        (9, CriticalityLevel.CRITICAL),
        (8, CriticalityLevel.HIGH),
        (7, CriticalityLevel.HIGH),
        (6, CriticalityLevel.NORMAL),
        (3, CriticalityLevel.NORMAL),
        (2, CriticalityLevel.LOW),
        (0, CriticalityLevel.LOW),
    ],
)
def test_criticality_boundaries(total: float, expected: CriticalityLevel) -> None:
    assert calculate_criticality_level(total) is expected
    anomaly = Anomaly(id="anom-1", reliability_integrity_score=total)
    assert anomaly.criticality_level is expected


def test_user_scores_override_system_scores_and_missing_counts_as_zero() -> None:
    anomaly = Anomaly(
        id="anom-1",
        reliability_integrity_score=1,
        availability_score=1,
        process_safety_score=1,
        user_process_safety_score=7,
    )
    assert anomaly.total_score == 9
    assert anomaly.criticality_level is CriticalityLevel.CRITICAL

    bare = Anomaly(id="anom-2")
    assert bare.total_score == 0
    assert bare.level is CriticalityLevel.LOW


@given(
    system=st.tuples(_scores, _scores, _scores),
    user=st.tuples(_scores, _scores, _scores),
)
def test_derived_level_always_matches_effective_total(
    system: tuple[float | None, float | None, float | None],
    user: tuple[float | None, float | None, float | None],
) -> None:
    anomaly = Anomaly(
        id="anom-1",
        reliability_integrity_score=system[0],
        availability_score=system[1],
        process_safety_score=system[2],
        user_reliability_integrity_score=user[0],
        user_availability_score=user[1],
        user_process_safety_score=user[2],
    )
    expected = sum(
        (override if override is not None else base) or 0.0
        for override, base in zip(user, system, strict=True)
    )
    assert anomaly.total_score == pytest.approx(expected)
    assert anomaly.criticality_level is calculate_anomaly_criticality(anomaly)


def test_explicit_level_is_kept_and_normalized() -> None:
    assert Anomaly(id="a", criticality_level="HIGH").criticality_level is CriticalityLevel.HIGH
    assert Anomaly(id="a", criticality_level="medium").criticality_level is CriticalityLevel.NORMAL
    kept = Anomaly(id="a", reliability_integrity_score=9, criticality_level=CriticalityLevel.LOW)
    assert kept.criticality_level is CriticalityLevel.LOW

    with pytest.raises(ValueError, match="Anomaly.criticality_level: invalid value"):
        Anomaly(id="a", criticality_level="severe")


def test_with_scores_recomputes_level_and_rejects_unknown_fields() -> None:
    anomaly = Anomaly(id="a", availability_score=1, criticality_level=CriticalityLevel.CRITICAL)
    rescored = anomaly.with_scores(user_availability_score=8)
    assert rescored.criticality_level is CriticalityLevel.HIGH
    assert anomaly.criticality_level is CriticalityLevel.CRITICAL

    with pytest.raises(ValueError, match="unknown score fields"):
        anomaly.with_scores(safety=3)


def test_anomaly_validation_paths() -> None:
    assert Anomaly(id="a", maintenance_window_id="  ").maintenance_window_id is None
    assert Anomaly(id="a", status="Treated").status is AnomalyStatus.TREATED

    with pytest.raises(ValueError, match="Anomaly.id: must not be empty"):
        Anomaly(id=" ")
    with pytest.raises(ValueError, match="Anomaly.availability_score: must be >= 0"):
        Anomaly(id="a", availability_score=-1)
    with pytest.raises(ValueError, match="Anomaly.process_safety_score: must be finite"):
        Anomaly(id="a", process_safety_score=float("inf"))


def test_with_window_returns_updated_copy() -> None:
    anomaly = Anomaly(id="a")
    assigned = anomaly.with_window("mw-1")
    assert assigned.is_scheduled
    assert assigned.maintenance_window_id == "mw-1"
    assert not anomaly.is_scheduled
    assert not assigned.with_window(None).is_scheduled


def test_action_plan_totals_and_completion() -> None:
    plan = ActionPlan(
        id="ap-1",
        anomaly_id="anom-1",
        actions=(
            ActionItem(id="s1", action="isolate", duration_days=0.1, status=ActionItemStatus.DONE),
            ActionItem(id="s2", action="repair", duration_days=0.2, duration_hours=4),
            {"id": "s3", "action": "test", "duration_days": 0.7, "duration_hours": 2},
        ),
    )
    assert plan.total_duration_days == 1.0
    assert plan.total_duration_hours == 6.0
    assert plan.completion_percentage == pytest.approx(100 / 3)
    assert ActionPlan(id="ap-2", anomaly_id="anom-2").completion_percentage == 0.0


def test_action_plan_validation() -> None:
    with pytest.raises(ValueError, match="duplicate action ids"):
        ActionPlan(
            id="ap",
            anomaly_id="a",
            actions=(ActionItem(id="x", action="one"), ActionItem(id="x", action="two")),
        )
    with pytest.raises(ValueError, match="ActionPlan.priority: must be <= 5"):
        ActionPlan(id="ap", anomaly_id="a", priority=6)
    with pytest.raises(ValueError, match="ActionItem.duration_days: must be >= 0"):
        ActionItem(id="x", action="one", duration_days=-0.5)
    with pytest.raises(ValueError, match=r"ActionPlan.actions\[0\]"):
        ActionPlan(id="ap", anomaly_id="a", actions=("not-an-item",))


def test_action_plan_json_includes_totals_and_loads_back() -> None:
    plan = make_plan("anom-7", 2, 1.5)
    payload = json.loads(plan.to_json())
    assert payload["total_duration_days"] == 3.5
    assert payload["actions"][0]["status"] == "planned"
    assert ActionPlan.from_json(plan.to_json()) == plan


def test_window_requires_aware_datetimes_and_ordered_range() -> None:
    naive = datetime(2026, 3, 2, 8, 0, 0)
    with pytest.raises(ValueError, match="MaintenanceWindow.start_date: datetime must be"):
        MaintenanceWindow(
            id="mw", type=WindowType.FORCE, duration_days=1, start_date=naive, end_date=naive
        )
    with pytest.raises(ValueError, match="MaintenanceWindow.end_date: must not be before"):
        MaintenanceWindow(
            id="mw",
            type=WindowType.FORCE,
            duration_days=1,
            start_date=NOW,
            end_date=NOW - timedelta(days=1),
        )


def test_window_accepts_iso_strings_and_degenerate_capacity() -> None:
    window = MaintenanceWindow(
        id="mw",
        type="Major",
        duration_days=0,
        start_date="2026-03-09T08:00:00Z",
        end_date="2026-03-09T08:00:00+00:00",
    )
    assert window.type is WindowType.MAJOR
    assert window.start_date == datetime(2026, 3, 9, 8, 0, 0, tzinfo=UTC)
    assert MaintenanceWindow.from_json(window.to_json()) == window

    negative = make_window(1, -2)
    assert negative.duration_days == -2.0


def test_window_availability_and_overlap() -> None:
    future = make_window(1, 5, start_in_days=1)
    started = make_window(2, 5, start_in_days=0)
    cancelled = make_window(3, 5, start_in_days=1, status=WindowStatus.CANCELLED)

    assert future.is_available(NOW)
    assert not started.is_available(NOW)
    assert not cancelled.is_available(NOW)

    assert future.overlaps(NOW, NOW + timedelta(days=2))
    assert not future.overlaps(NOW, future.start_date)


def test_from_dict_rejects_unknown_and_missing_fields() -> None:
    with pytest.raises(ValueError, match="Anomaly: unexpected fields"):
        Anomaly.from_dict({"id": "a", "severity": "high"})
    with pytest.raises(ValueError, match="MaintenanceWindow: missing required fields"):
        MaintenanceWindow.from_dict({"id": "mw", "type": "force"})
    with pytest.raises(ValueError, match="JSON root must be an object"):
        Anomaly.from_json("[]")


def test_anomaly_json_roundtrip_preserves_level_and_refs() -> None:
    anomaly = Anomaly(
        id="anom-1",
        status=AnomalyStatus.TREATED,
        equipment_id="pump-7",
        maintenance_window_id="mw-1",
        availability_score=4,
        user_process_safety_score=5,
    )
    loaded = Anomaly.from_json(anomaly.to_json())
    assert loaded == anomaly
    assert loaded.criticality_level is CriticalityLevel.CRITICAL
