"""Dataclass domain models with strict validation and canonical serialization."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass, replace
from datetime import UTC, datetime
from enum import Enum, StrEnum
from typing import NoReturn, TypeVar, cast

from maintenance_scheduler.constants import (
    CRITICAL_SCORE_THRESHOLD,
    HIGH_SCORE_THRESHOLD,
    MODEL_SCHEMA_VERSION,
    NORMAL_SCORE_THRESHOLD,
    WINDOW_TYPE_DURATION_DAYS,
)

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

TModel = TypeVar("TModel", bound="CanonicalModel")
TEnum = TypeVar("TEnum", bound=Enum)

_MAX_TEXT = 8192
_MAX_ACTIONS = 512


class CriticalityLevel(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def _missing_(cls, value: object) -> CriticalityLevel | None:
        # Older records were written with "medium" for the normal tier.
        if isinstance(value, str) and value.strip().lower() == "medium":
            return cls.NORMAL
        return None


class AnomalyStatus(StrEnum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    TREATED = "treated"
    CLOSED = "closed"


class ActionItemStatus(StrEnum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    POSTPONED = "postponed"


class ActionPlanStatus(StrEnum):
    DRAFT = "draft"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class WindowType(StrEnum):
    FORCE = "force"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def min_days(self) -> int:
        return WINDOW_TYPE_DURATION_DAYS[self.value][0]

    @property
    def max_days(self) -> int:
        return WINDOW_TYPE_DURATION_DAYS[self.value][1]


class WindowStatus(StrEnum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def calculate_criticality_level(total_score: float) -> CriticalityLevel:
    """Classify a summed risk score: >=9 critical, >=7 high, >=3 normal, else low."""
    if total_score >= CRITICAL_SCORE_THRESHOLD:
        return CriticalityLevel.CRITICAL
    if total_score >= HIGH_SCORE_THRESHOLD:
        return CriticalityLevel.HIGH
    if total_score >= NORMAL_SCORE_THRESHOLD:
        return CriticalityLevel.NORMAL
    return CriticalityLevel.LOW


def calculate_anomaly_criticality(anomaly: Anomaly) -> CriticalityLevel:
    return calculate_criticality_level(anomaly.total_score)


class CanonicalModel:
    """Mixin for canonical dict/json serialization."""

    def to_dict(self) -> dict[str, JSONValue]:
        serialized = _serialize_value(self, self.__class__.__name__)
        if not isinstance(serialized, dict):
            _fail(self.__class__.__name__, "serialized model must be an object")
        return serialized

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())

    @classmethod
    def from_json(cls: type[TModel], raw: str) -> TModel:
        if not isinstance(raw, str):
            _fail(cls.__name__, f"expected JSON string, got {type(raw).__name__}")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            _fail(cls.__name__, f"invalid JSON: {exc}")
        if not isinstance(parsed, dict):
            _fail(cls.__name__, "JSON root must be an object")
        return cls.from_dict(parsed)

    @classmethod
    def from_dict(cls: type[TModel], data: Mapping[str, object]) -> TModel:
        _fail(cls.__name__, "from_dict is not implemented for this model type")


@dataclass(slots=True)
class Anomaly(CanonicalModel):
    """A reported equipment defect.

    ``criticality_level`` is derived from the three sub-scores when it is not
    given explicitly. Each ``user_*`` override wins over the matching system
    score and a missing score counts as zero.
    """

    id: str
    status: AnomalyStatus = AnomalyStatus.NEW
    title: str | None = None
    equipment_id: str | None = None
    maintenance_window_id: str | None = None
    reliability_integrity_score: float | None = None
    availability_score: float | None = None
    process_safety_score: float | None = None
    user_reliability_integrity_score: float | None = None
    user_availability_score: float | None = None
    user_process_safety_score: float | None = None
    criticality_level: CriticalityLevel | None = None
    schema_version: int = MODEL_SCHEMA_VERSION

    def __post_init__(self) -> None:
        self.schema_version = _as_int(self.schema_version, "Anomaly.schema_version", minimum=1)
        self.id = _as_str(self.id, "Anomaly.id")
        self.status = _as_enum(AnomalyStatus, self.status, "Anomaly.status")
        self.title = _as_optional_str(self.title, "Anomaly.title")
        self.equipment_id = _as_optional_ref(self.equipment_id, "Anomaly.equipment_id")
        self.maintenance_window_id = _as_optional_ref(
            self.maintenance_window_id, "Anomaly.maintenance_window_id"
        )
        for name in _SCORE_FIELDS:
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, _as_float(value, f"Anomaly.{name}", minimum=0.0))
        if self.criticality_level is None:
            self.criticality_level = calculate_criticality_level(self.total_score)
        else:
            self.criticality_level = _as_enum(
                CriticalityLevel, self.criticality_level, "Anomaly.criticality_level"
            )

    @property
    def total_score(self) -> float:
        return (
            _effective_score(self.user_reliability_integrity_score, self.reliability_integrity_score)
            + _effective_score(self.user_availability_score, self.availability_score)
            + _effective_score(self.user_process_safety_score, self.process_safety_score)
        )

    @property
    def is_scheduled(self) -> bool:
        return self.maintenance_window_id is not None

    @property
    def level(self) -> CriticalityLevel:
        return cast("CriticalityLevel", self.criticality_level)

    def with_scores(self, **scores: float | None) -> Anomaly:
        """Return a copy with updated sub-scores and a recomputed criticality level."""
        unknown = sorted(name for name in scores if name not in _SCORE_FIELDS)
        if unknown:
            _fail("Anomaly.with_scores", f"unknown score fields: {unknown}")
        return replace(self, criticality_level=None, **scores)

    def with_window(self, window_id: str | None) -> Anomaly:
        return replace(self, maintenance_window_id=window_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Anomaly:
        parsed = _expect_object(
            data,
            "Anomaly",
            required={"id"},
            optional={
                "status",
                "title",
                "equipment_id",
                "maintenance_window_id",
                "criticality_level",
                "schema_version",
                *_SCORE_FIELDS,
            },
        )
        kwargs: dict[str, object] = {name: parsed.get(name) for name in _SCORE_FIELDS}
        return cls(
            id=_as_str(parsed["id"], "Anomaly.id"),
            status=_as_enum(
                AnomalyStatus, parsed.get("status", AnomalyStatus.NEW.value), "Anomaly.status"
            ),
            title=_as_optional_str(parsed.get("title"), "Anomaly.title"),
            equipment_id=_as_optional_ref(parsed.get("equipment_id"), "Anomaly.equipment_id"),
            maintenance_window_id=_as_optional_ref(
                parsed.get("maintenance_window_id"), "Anomaly.maintenance_window_id"
            ),
            criticality_level=(
                _as_enum(CriticalityLevel, parsed["criticality_level"], "Anomaly.criticality_level")
                if parsed.get("criticality_level") is not None
                else None
            ),
            schema_version=_as_int(
                parsed.get("schema_version", MODEL_SCHEMA_VERSION),
                "Anomaly.schema_version",
                minimum=1,
            ),
            **cast("dict[str, float | None]", kwargs),
        )


_SCORE_FIELDS: tuple[str, ...] = (
    "reliability_integrity_score",
    "availability_score",
    "process_safety_score",
    "user_reliability_integrity_score",
    "user_availability_score",
    "user_process_safety_score",
)


@dataclass(slots=True)
class ActionItem(CanonicalModel):
    id: str
    action: str
    responsible: str | None = None
    status: ActionItemStatus = ActionItemStatus.PLANNED
    duration_days: float = 0.0
    duration_hours: float = 0.0

    def __post_init__(self) -> None:
        self.id = _as_str(self.id, "ActionItem.id")
        self.action = _as_str(self.action, "ActionItem.action")
        self.responsible = _as_optional_str(self.responsible, "ActionItem.responsible")
        self.status = _as_enum(ActionItemStatus, self.status, "ActionItem.status")
        self.duration_days = _as_float(self.duration_days, "ActionItem.duration_days", minimum=0.0)
        self.duration_hours = _as_float(
            self.duration_hours, "ActionItem.duration_hours", minimum=0.0
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ActionItem:
        parsed = _expect_object(
            data,
            "ActionItem",
            required={"id", "action"},
            optional={"responsible", "status", "duration_days", "duration_hours"},
        )
        return cls(
            id=_as_str(parsed["id"], "ActionItem.id"),
            action=_as_str(parsed["action"], "ActionItem.action"),
            responsible=_as_optional_str(parsed.get("responsible"), "ActionItem.responsible"),
            status=_as_enum(
                ActionItemStatus,
                parsed.get("status", ActionItemStatus.PLANNED.value),
                "ActionItem.status",
            ),
            duration_days=_as_float(
                parsed.get("duration_days", 0.0), "ActionItem.duration_days", minimum=0.0
            ),
            duration_hours=_as_float(
                parsed.get("duration_hours", 0.0), "ActionItem.duration_hours", minimum=0.0
            ),
        )


@dataclass(slots=True)
class ActionPlan(CanonicalModel):
    """Ordered remediation steps for one anomaly."""

    id: str
    anomaly_id: str
    actions: tuple[ActionItem, ...] = ()
    status: ActionPlanStatus = ActionPlanStatus.DRAFT
    needs_outage: bool = False
    priority: int = 3
    schema_version: int = MODEL_SCHEMA_VERSION

    def __post_init__(self) -> None:
        self.schema_version = _as_int(
            self.schema_version, "ActionPlan.schema_version", minimum=1
        )
        self.id = _as_str(self.id, "ActionPlan.id")
        self.anomaly_id = _as_str(self.anomaly_id, "ActionPlan.anomaly_id")
        actions = _as_sequence(self.actions, "ActionPlan.actions")
        if len(actions) > _MAX_ACTIONS:
            _fail("ActionPlan.actions", f"too many items (>{_MAX_ACTIONS})")
        parsed_actions: list[ActionItem] = []
        for index, item in enumerate(actions):
            if isinstance(item, ActionItem):
                parsed_actions.append(item)
            elif isinstance(item, Mapping):
                parsed_actions.append(ActionItem.from_dict(item))
            else:
                _fail(f"ActionPlan.actions[{index}]", "expected ActionItem or object")
        item_ids = [item.id for item in parsed_actions]
        if len(set(item_ids)) != len(item_ids):
            _fail("ActionPlan.actions", "contains duplicate action ids")
        self.actions = tuple(parsed_actions)
        self.status = _as_enum(ActionPlanStatus, self.status, "ActionPlan.status")
        self.needs_outage = _as_bool(self.needs_outage, "ActionPlan.needs_outage")
        self.priority = _as_int(self.priority, "ActionPlan.priority", minimum=1)
        if self.priority > 5:
            _fail("ActionPlan.priority", "must be <= 5")

    @property
    def total_duration_days(self) -> float:
        return math.fsum(item.duration_days for item in self.actions)

    @property
    def total_duration_hours(self) -> float:
        return math.fsum(item.duration_hours for item in self.actions)

    @property
    def completion_percentage(self) -> float:
        if not self.actions:
            return 0.0
        done = sum(1 for item in self.actions if item.status is ActionItemStatus.DONE)
        return done / len(self.actions) * 100

    def to_dict(self) -> dict[str, JSONValue]:
        payload = CanonicalModel.to_dict(self)
        payload["total_duration_days"] = self.total_duration_days
        payload["total_duration_hours"] = self.total_duration_hours
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ActionPlan:
        parsed = _expect_object(
            data,
            "ActionPlan",
            required={"id", "anomaly_id"},
            optional={
                "actions",
                "status",
                "needs_outage",
                "priority",
                "schema_version",
                # Derived totals are written by to_dict and recomputed on load.
                "total_duration_days",
                "total_duration_hours",
            },
        )
        return cls(
            id=_as_str(parsed["id"], "ActionPlan.id"),
            anomaly_id=_as_str(parsed["anomaly_id"], "ActionPlan.anomaly_id"),
            actions=tuple(
                ActionItem.from_dict(_as_mapping(item, f"ActionPlan.actions[{index}]"))
                for index, item in enumerate(
                    _as_sequence(parsed.get("actions", ()), "ActionPlan.actions")
                )
            ),
            status=_as_enum(
                ActionPlanStatus,
                parsed.get("status", ActionPlanStatus.DRAFT.value),
                "ActionPlan.status",
            ),
            needs_outage=_as_bool(parsed.get("needs_outage", False), "ActionPlan.needs_outage"),
            priority=_as_int(parsed.get("priority", 3), "ActionPlan.priority", minimum=1),
            schema_version=_as_int(
                parsed.get("schema_version", MODEL_SCHEMA_VERSION),
                "ActionPlan.schema_version",
                minimum=1,
            ),
        )


@dataclass(slots=True)
class MaintenanceWindow(CanonicalModel):
    """A scheduled block of maintenance time.

    ``duration_days`` is the window's work capacity. Zero or negative capacity
    is representable and simply never fits any work.
    """

    id: str
    type: WindowType
    duration_days: float
    start_date: datetime
    end_date: datetime
    status: WindowStatus = WindowStatus.PLANNED
    auto_created: bool = False
    description: str | None = None
    source_anomaly_id: str | None = None
    schema_version: int = MODEL_SCHEMA_VERSION

    def __post_init__(self) -> None:
        self.schema_version = _as_int(
            self.schema_version, "MaintenanceWindow.schema_version", minimum=1
        )
        self.id = _as_str(self.id, "MaintenanceWindow.id")
        self.type = _as_enum(WindowType, self.type, "MaintenanceWindow.type")
        self.duration_days = _as_float(self.duration_days, "MaintenanceWindow.duration_days")
        self.start_date = _as_datetime(self.start_date, "MaintenanceWindow.start_date")
        self.end_date = _as_datetime(self.end_date, "MaintenanceWindow.end_date")
        if self.end_date < self.start_date:
            _fail("MaintenanceWindow.end_date", "must not be before start_date")
        self.status = _as_enum(WindowStatus, self.status, "MaintenanceWindow.status")
        self.auto_created = _as_bool(self.auto_created, "MaintenanceWindow.auto_created")
        self.description = _as_optional_str(self.description, "MaintenanceWindow.description")
        self.source_anomaly_id = _as_optional_ref(
            self.source_anomaly_id, "MaintenanceWindow.source_anomaly_id"
        )

    def is_available(self, now: datetime) -> bool:
        """Planned and starting strictly after ``now``."""
        return self.status is WindowStatus.PLANNED and self.start_date > _as_datetime(
            now, "now"
        )

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start_date < end and start < self.end_date

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> MaintenanceWindow:
        parsed = _expect_object(
            data,
            "MaintenanceWindow",
            required={"id", "type", "duration_days", "start_date", "end_date"},
            optional={
                "status",
                "auto_created",
                "description",
                "source_anomaly_id",
                "schema_version",
            },
        )
        return cls(
            id=_as_str(parsed["id"], "MaintenanceWindow.id"),
            type=_as_enum(WindowType, parsed["type"], "MaintenanceWindow.type"),
            duration_days=_as_float(parsed["duration_days"], "MaintenanceWindow.duration_days"),
            start_date=_as_datetime(parsed["start_date"], "MaintenanceWindow.start_date"),
            end_date=_as_datetime(parsed["end_date"], "MaintenanceWindow.end_date"),
            status=_as_enum(
                WindowStatus,
                parsed.get("status", WindowStatus.PLANNED.value),
                "MaintenanceWindow.status",
            ),
            auto_created=_as_bool(
                parsed.get("auto_created", False), "MaintenanceWindow.auto_created"
            ),
            description=_as_optional_str(
                parsed.get("description"), "MaintenanceWindow.description"
            ),
            source_anomaly_id=_as_optional_ref(
                parsed.get("source_anomaly_id"), "MaintenanceWindow.source_anomaly_id"
            ),
            schema_version=_as_int(
                parsed.get("schema_version", MODEL_SCHEMA_VERSION),
                "MaintenanceWindow.schema_version",
                minimum=1,
            ),
        )


def _effective_score(override: float | None, system: float | None) -> float:
    if override is not None:
        return override
    if system is not None:
        return system
    return 0.0


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _expect_object(
    value: object,
    path: str,
    *,
    required: set[str],
    optional: set[str] | None = None,
) -> dict[str, object]:
    parsed = _as_mapping(value, path)

    allowed = required | (optional or set())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        _fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")
    return parsed


def _as_mapping(value: object, path: str) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")
    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item
    return parsed


def _as_str(value: object, path: str, *, max_len: int = _MAX_TEXT) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    normalized = value.strip()
    if not normalized:
        _fail(path, "must not be empty")
    if len(normalized) > max_len:
        _fail(path, f"must be <= {max_len} characters")
    return normalized


def _as_optional_str(value: object, path: str) -> str | None:
    if value is None:
        return None
    return _as_str(value, path)


def _as_optional_ref(value: object, path: str) -> str | None:
    """Optional reference where a blank string means "not set"."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return _as_str(value, path, max_len=256)


def _as_bool(value: object, path: str) -> bool:
    if isinstance(value, bool):
        return value
    _fail(path, f"expected boolean, got {type(value).__name__}")


def _as_int(value: object, path: str, *, minimum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(path, f"expected integer, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        _fail(path, f"must be >= {minimum}")
    return value


def _as_float(value: object, path: str, *, minimum: float | None = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        _fail(path, f"expected number, got {type(value).__name__}")
    parsed = float(value)
    if not math.isfinite(parsed):
        _fail(path, "must be finite")
    if minimum is not None and parsed < minimum:
        _fail(path, f"must be >= {minimum}")
    return parsed


def _as_datetime(value: object, path: str) -> datetime:
    parsed: datetime
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            _fail(path, f"invalid ISO-8601 datetime: {value!r} ({exc})")
    else:
        _fail(path, f"expected datetime or ISO-8601 string, got {type(value).__name__}")

    if parsed.tzinfo is None or parsed.utcoffset() is None:
        _fail(path, "datetime must be timezone-aware UTC")
    return parsed.astimezone(UTC)


def _datetime_to_iso8601z(value: datetime) -> str:
    normalized = _as_datetime(value, "datetime")
    return normalized.isoformat(timespec="microseconds").replace("+00:00", "Z")


def _as_enum(enum_type: type[TEnum], value: object, path: str) -> TEnum:
    if isinstance(value, enum_type):
        return value
    if not isinstance(value, str):
        _fail(path, f"expected string enum value, got {type(value).__name__}")
    try:
        return enum_type(value.strip().lower())
    except ValueError:
        allowed = ", ".join(sorted(item.value for item in enum_type))
        _fail(path, f"invalid value {value!r}; expected one of: {allowed}")


def _as_sequence(value: object, path: str) -> list[object]:
    if isinstance(value, (list, tuple)):
        return list(value)
    _fail(path, f"expected array, got {type(value).__name__}")


def _serialize_value(value: object, path: str) -> JSONValue:
    if value is None or isinstance(value, bool):
        return cast("JSONValue", value)
    if isinstance(value, Enum):
        return cast("JSONValue", value.value)
    if isinstance(value, (int, str)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            _fail(path, "float values must be finite")
        return value
    if isinstance(value, datetime):
        return _datetime_to_iso8601z(value)
    if isinstance(value, (tuple, list)):
        return [_serialize_value(item, f"{path}[]") for item in value]
    if isinstance(value, Mapping):
        out: dict[str, JSONValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                _fail(path, "dict keys must be strings")
            out[key] = _serialize_value(item, f"{path}.{key}")
        return out
    if is_dataclass(value) and not isinstance(value, type):
        out_obj: dict[str, JSONValue] = {}
        for dataclass_field in fields(value):
            out_obj[dataclass_field.name] = _serialize_value(
                getattr(value, dataclass_field.name),
                f"{path}.{dataclass_field.name}",
            )
        return out_obj

    _fail(path, f"cannot serialize value of type {type(value).__name__}")


__all__ = [
    "ActionItem",
    "ActionItemStatus",
    "ActionPlan",
    "ActionPlanStatus",
    "Anomaly",
    "AnomalyStatus",
    "CanonicalModel",
    "CriticalityLevel",
    "JSONScalar",
    "JSONValue",
    "MaintenanceWindow",
    "WindowStatus",
    "WindowType",
    "calculate_anomaly_criticality",
    "calculate_criticality_level",
]
