"""Unit tests for window workload and utilization analysis."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from maintenance_scheduler.domain.models import CriticalityLevel
from maintenance_scheduler.planning.settings import SchedulingSettings
from maintenance_scheduler.planning.utilization import (
    analyze_window,
    analyze_windows,
    efficiency_score,
    group_by_window,
    utilization_percent,
)
from tests.builders import anomaly_id, make_anomaly, make_plan, make_window, window_id


@pytest.mark.parametrize(
    ("utilization", "expected"),
    [(85.0, 100.0), (0.0, 15.0), (170.0, 15.0), (100.0, 85.0), (300.0, 0.0)],
)
def test_efficiency_score_peaks_at_target(utilization: float, expected: float) -> None:
    assert efficiency_score(utilization) == pytest.approx(expected)


def test_utilization_is_zero_without_capacity() -> None:
    assert utilization_percent(3, 0) == 0.0
    assert utilization_percent(3, -1) == 0.0
    assert utilization_percent(3, 4) == 75.0


def test_analyze_window_scores_workload_balance_and_flags() -> None:
    window = make_window(1, 10)
    assigned = [
        make_anomaly(1, level=CriticalityLevel.CRITICAL, window=window.id),
        make_anomaly(2, level=CriticalityLevel.LOW, window=window.id),
        make_anomaly(3, level=CriticalityLevel.LOW, window=window.id),
    ]
    plans = [make_plan(anomaly_id(1), 4), make_plan(anomaly_id(2), 2.5)]

    analysis = analyze_window(window, assigned, plans)

    assert analysis.total_workload == 7.5
    assert analysis.utilization == 75.0
    assert analysis.remaining_capacity == 2.5
    assert analysis.criticality_balance == (
        (CriticalityLevel.CRITICAL, 1),
        (CriticalityLevel.LOW, 2),
    )
    assert analysis.level_count(CriticalityLevel.HIGH) == 0
    assert analysis.balance_score == 20.0
    assert analysis.efficiency_score == 90.0
    assert analysis.overall_score == 55.0
    assert analysis.assigned_anomaly_ids == (anomaly_id(1), anomaly_id(2), anomaly_id(3))
    assert not analysis.is_overloaded
    assert not analysis.is_underutilized
    assert analysis.to_dict()["criticality_balance"] == {"critical": 1, "low": 2}


def test_overload_and_underuse_thresholds_are_strict() -> None:
    window = make_window(1, 4)
    full = analyze_window(window, [make_anomaly(i, window=window.id) for i in range(4)], [])
    over = analyze_window(window, [make_anomaly(i, window=window.id) for i in range(5)], [])
    half = analyze_window(window, [make_anomaly(i, window=window.id) for i in range(2)], [])
    quarter = analyze_window(window, [make_anomaly(0, window=window.id)], [])
    empty = analyze_window(window, [], [])

    assert (full.utilization, full.is_overloaded) == (100.0, False)
    assert over.is_overloaded
    assert not half.is_underutilized
    assert quarter.is_underutilized
    assert not empty.is_underutilized
    assert empty.overall_score == pytest.approx(7.5)


def test_thresholds_follow_settings() -> None:
    settings = SchedulingSettings(
        target_utilization_percent=75.0,
        overload_threshold_percent=90.0,
    )
    window = make_window(1, 10)
    analysis = analyze_window(
        window, [make_anomaly(i, window=window.id) for i in range(10)], [], settings=settings
    )
    assert analysis.is_overloaded
    assert analysis.efficiency_score == 75.0


def test_analyze_windows_derives_membership_from_references() -> None:
    windows = [make_window(1, 5), make_window(2, 0)]
    anomalies = [
        make_anomaly(1, window=window_id(1)),
        make_anomaly(2, window=window_id(2)),
        make_anomaly(3),
        make_anomaly(4, window="mw-unknown"),
    ]
    first, second = analyze_windows(windows, anomalies, [])
    assert first.assigned_anomaly_ids == (anomaly_id(1),)
    assert first.utilization == 20.0
    assert second.total_workload == 1.0
    assert second.utilization == 0.0

    grouped = group_by_window(anomalies)
    assert set(grouped) == {window_id(1), window_id(2), "mw-unknown"}


@given(durations=st.lists(st.floats(min_value=0, max_value=10, allow_nan=False), max_size=8))
def test_workload_does_not_depend_on_assignment_order(durations: list[float]) -> None:
    window = make_window(1, 20)
    assigned = [make_anomaly(index, window=window.id) for index in range(len(durations))]
    plans = [make_plan(anomaly_id(index), days) for index, days in enumerate(durations)]
    forward = analyze_window(window, assigned, plans)
    backward = analyze_window(window, list(reversed(assigned)), plans)
    assert forward.total_workload == backward.total_workload
    assert forward.overall_score == backward.overall_score
