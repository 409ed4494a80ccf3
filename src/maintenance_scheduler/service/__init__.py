"""Async planning service over pluggable anomaly, window and action plan stores."""

from maintenance_scheduler.service.planning_service import (
    InfrastructureError,
    PlanningService,
    SchedulingError,
)

__all__ = ["InfrastructureError", "PlanningService", "SchedulingError"]
