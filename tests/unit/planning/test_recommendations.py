"""Unit tests for recommendation generation and planning status counts."""

from __future__ import annotations

import pytest

from maintenance_scheduler.domain.models import AnomalyStatus, CriticalityLevel, WindowStatus
from maintenance_scheduler.planning.recommendations import (
    RecommendationKind,
    RecommendationSeverity,
    generate_recommendations,
)
from maintenance_scheduler.planning.status import summarize_planning_status
from maintenance_scheduler.planning.utilization import analyze_windows
from tests.builders import anomaly_id, make_anomaly, make_window, window_id


def test_one_recommendation_per_kind_in_fixed_order() -> None:
    windows = [make_window(1, 1), make_window(2, 2), make_window(3, 10), make_window(4, 10)]
    anomalies = [
        *(make_anomaly(index, window=window_id(1)) for index in range(1, 3)),
        *(make_anomaly(index, window=window_id(2)) for index in range(3, 6)),
        make_anomaly(6, window=window_id(3)),
        make_anomaly(7, level=CriticalityLevel.CRITICAL),
        make_anomaly(8, level=CriticalityLevel.HIGH),
    ]

    recommendations = generate_recommendations(analyze_windows(windows, anomalies, []), anomalies)

    overloaded, underutilized, critical = recommendations
    assert overloaded.kind is RecommendationKind.OVERLOADED
    assert overloaded.severity is RecommendationSeverity.WARNING
    assert overloaded.subject_ids == (window_id(1), window_id(2))
    assert overloaded.count == 2
    assert underutilized.severity is RecommendationSeverity.INFO
    assert underutilized.subject_ids == (window_id(3),)
    assert critical.kind is RecommendationKind.UNSCHEDULED_CRITICAL
    assert critical.severity is RecommendationSeverity.ERROR
    assert critical.subject_ids == (anomaly_id(7),)
    assert critical.to_dict()["kind"] == "unscheduled_critical"


def test_balanced_plan_has_no_recommendations() -> None:
    window = make_window(1, 4)
    anomalies = [make_anomaly(index, window=window.id) for index in range(3)]
    assert generate_recommendations(analyze_windows([window], anomalies, []), anomalies) == ()


def test_planning_status_counts_treated_anomalies_and_open_windows() -> None:
    anomalies = [
        make_anomaly(1, window=window_id(1)),
        make_anomaly(2),
        make_anomaly(3, level=CriticalityLevel.CRITICAL),
        make_anomaly(4, level=CriticalityLevel.CRITICAL, status=AnomalyStatus.NEW),
        make_anomaly(5, status=AnomalyStatus.CLOSED, window=window_id(1)),
    ]
    windows = [
        make_window(1, 5),
        make_window(2, 5, status=WindowStatus.IN_PROGRESS),
        make_window(3, 5, status=WindowStatus.COMPLETED),
        make_window(4, 5, status=WindowStatus.CANCELLED),
    ]

    status = summarize_planning_status(anomalies, windows)

    assert status.treated_total == 3
    assert status.treated_assigned == 1
    assert status.treated_unassigned == 2
    assert status.critical_unassigned == 1
    assert status.open_windows == 2
    assert status.to_dict()["assignment_rate"] == pytest.approx(100 / 3)


def test_planning_status_without_treated_anomalies() -> None:
    status = summarize_planning_status([], [])
    assert status.assignment_rate == 0.0
    assert status.open_windows == 0
