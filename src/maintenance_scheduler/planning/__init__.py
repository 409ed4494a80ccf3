"""Planning engine public API: scoring, utilization, scheduling, synthesis and optimization."""

from maintenance_scheduler.planning.auto_scheduler import (
    Assignment,
    AutoScheduler,
    ScheduleResult,
    auto_schedule,
    filter_available_windows,
)
from maintenance_scheduler.planning.optimizer import (
    OptimizationResult,
    Reassignment,
    SchedulingOptimizer,
    optimize,
)
from maintenance_scheduler.planning.recommendations import (
    Recommendation,
    RecommendationKind,
    RecommendationSeverity,
    generate_recommendations,
)
from maintenance_scheduler.planning.scoring import (
    AnomalyScore,
    index_action_plans,
    processing_time_days,
    rank_anomalies,
    score_anomaly,
)
from maintenance_scheduler.planning.settings import DEFAULT_SETTINGS, SchedulingSettings
from maintenance_scheduler.planning.status import PlanningStatus, summarize_planning_status
from maintenance_scheduler.planning.utilization import (
    WindowAnalysis,
    analyze_window,
    analyze_windows,
)
from maintenance_scheduler.planning.window_synthesizer import (
    Clock,
    ImmediatePlacement,
    NextAvailableSlotPlacement,
    PlacementPolicy,
    WindowSynthesis,
    WindowSynthesizer,
    create_optimal_window,
    placement_from_settings,
    select_window_type,
)

__all__ = [
    "DEFAULT_SETTINGS",
    "AnomalyScore",
    "Assignment",
    "AutoScheduler",
    "Clock",
    "ImmediatePlacement",
    "NextAvailableSlotPlacement",
    "OptimizationResult",
    "PlacementPolicy",
    "PlanningStatus",
    "Reassignment",
    "Recommendation",
    "RecommendationKind",
    "RecommendationSeverity",
    "ScheduleResult",
    "SchedulingOptimizer",
    "SchedulingSettings",
    "WindowAnalysis",
    "WindowSynthesis",
    "WindowSynthesizer",
    "analyze_window",
    "analyze_windows",
    "auto_schedule",
    "create_optimal_window",
    "filter_available_windows",
    "generate_recommendations",
    "index_action_plans",
    "optimize",
    "placement_from_settings",
    "processing_time_days",
    "rank_anomalies",
    "score_anomaly",
    "select_window_type",
    "summarize_planning_status",
]
