"""
maintenance-scheduler domain layer.

File: src/maintenance_scheduler/domain/__init__.py

Purpose
- Domain records shared by the planning engine, stores and service adapter:
  Anomaly, ActionPlan, ActionItem, MaintenanceWindow and their identifiers.

Functional requirements
- Domain objects must be serializable and versioned.
- Criticality is derived from sub-scores and kept in one vocabulary.

Non-functional requirements
- Domain layer is free of IO side effects and third-party dependencies.
"""

from maintenance_scheduler.domain.ids import (
    ACTION_ITEM_ID_PREFIX,
    ACTION_PLAN_ID_PREFIX,
    ANOMALY_ID_PREFIX,
    WINDOW_ID_PREFIX,
    IdFactory,
    generate_action_item_id,
    generate_action_plan_id,
    generate_anomaly_id,
    generate_prefixed_id,
    generate_ulid,
    generate_window_id,
    validate_prefixed_id,
    validate_ulid,
)
from maintenance_scheduler.domain.models import (
    ActionItem,
    ActionItemStatus,
    ActionPlan,
    ActionPlanStatus,
    Anomaly,
    AnomalyStatus,
    CriticalityLevel,
    MaintenanceWindow,
    WindowStatus,
    WindowType,
    calculate_anomaly_criticality,
    calculate_criticality_level,
)

__all__ = [
    "ACTION_ITEM_ID_PREFIX",
    "ACTION_PLAN_ID_PREFIX",
    "ANOMALY_ID_PREFIX",
    "ActionItem",
    "ActionItemStatus",
    "ActionPlan",
    "ActionPlanStatus",
    "Anomaly",
    "AnomalyStatus",
    "CriticalityLevel",
    "IdFactory",
    "MaintenanceWindow",
    "WINDOW_ID_PREFIX",
    "WindowStatus",
    "WindowType",
    "calculate_anomaly_criticality",
    "calculate_criticality_level",
    "generate_action_item_id",
    "generate_action_plan_id",
    "generate_anomaly_id",
    "generate_prefixed_id",
    "generate_ulid",
    "generate_window_id",
    "validate_prefixed_id",
    "validate_ulid",
]
