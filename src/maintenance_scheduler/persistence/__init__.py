"""Store protocols consumed by the planning service and an in-memory implementation."""

from maintenance_scheduler.persistence.stores import (
    ActionPlanStore,
    AnomalyStore,
    InfrastructureError,
    InMemoryPlanningStore,
    MaintenanceWindowStore,
)

__all__ = [
    "ActionPlanStore",
    "AnomalyStore",
    "InMemoryPlanningStore",
    "InfrastructureError",
    "MaintenanceWindowStore",
]
