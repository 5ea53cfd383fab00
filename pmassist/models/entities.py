"""
Program Management Assistant
Domain entities — Program, Party, Task, Risk, Blocker.

Entities are dataclasses. Attribute names are snake_case; ``to_dict()``
and ``from_dict()`` use the camelCase keys of the persisted state and the
JSON API (``startDate``, ``programId``, ``isProjectOnHold`` ...).

Every enumerated field is a closed set: constructing an entity with a
value outside its set raises ``ValidationError``. The ordered tuples below
double as board column order.

Architecture chain: Program → (Task | Risk | Blocker) via program_id
"""

import logging
from dataclasses import dataclass, field

from pmassist.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────

PROGRAM_STATUSES = ("Not Started", "In Progress", "On Hold", "Completed")
TASK_STATUSES = ("Todo", "In Progress", "Done")
RISK_STATUSES = ("Open", "Mitigated", "Closed")
BLOCKER_STATUSES = ("Active", "Resolved", "Deferred")

PRIORITY_LEVELS = ("Low", "Medium", "High")
IMPACT_LEVELS = ("Low", "Medium", "High")
PROBABILITY_LEVELS = ("Low", "Medium", "High")

DEFAULT_PROGRAM_STATUS = "Not Started"
DEFAULT_LEVEL = "Medium"

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off", ""}


def _validate_enum(value, allowed, field_name: str) -> None:
    if value not in allowed:
        raise ValidationError(
            f"Invalid {field_name}: {value!r}. Allowed: {list(allowed)}",
            details={field_name: value},
        )


def _require(data: dict, key: str, entity: str):
    if data.get(key) in (None, ""):
        raise ValidationError(f"{entity} {key} is required", details={key: "missing"})
    return data[key]


def _to_number(value, field_name: str):
    """Coerce a budget-like value to int/float. Empty → 0."""
    if value in (None, ""):
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field_name}: {value!r}", details={field_name: value})
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}: {value!r}", details={field_name: value})
    return int(number) if number.is_integer() else number


def text_value(value, field_name: str) -> str:
    """A free-text field: None → "", strings as given, anything else rejected."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(
            f"Invalid {field_name}: expected text, got {type(value).__name__}",
            details={field_name: type(value).__name__},
        )
    return value


def flag_value(value, field_name: str) -> bool:
    """A yes/no field. JSON booleans, 0/1 and the usual words are accepted;
    ``"false"`` is False.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValidationError(f"Invalid {field_name}: {value!r}", details={field_name: value})


def from_dicts(entity_cls, items, label: str = "") -> list:
    """Parse stored records one by one; a malformed record is skipped with a
    warning instead of failing the whole list.
    """
    parsed = []
    for item in items or []:
        try:
            parsed.append(entity_cls.from_dict(item))
        except (ValidationError, AttributeError, TypeError, ValueError) as exc:
            logger.warning("Skipping unreadable %s record%s: %s", entity_cls.__name__, label, exc)
    return parsed


# ── Program ──────────────────────────────────────────────────────────────────


@dataclass
class Party:
    """A stakeholder embedded in a Program. No identity of its own."""

    name: str
    designation: str = ""

    def to_dict(self):
        return {"name": self.name, "designation": self.designation}

    @classmethod
    def from_dict(cls, data: dict) -> "Party":
        if not isinstance(data, dict):
            raise ValidationError(
                "Invalid party: expected an object", details={"party": type(data).__name__},
            )
        return cls(
            name=text_value(data.get("name"), "name"),
            designation=text_value(data.get("designation"), "designation"),
        )


@dataclass
class Program:
    id: str
    name: str
    description: str = ""
    start_date: str = ""
    end_date: str = ""
    status: str = DEFAULT_PROGRAM_STATUS
    budget: int | float = 0
    parties: list[Party] = field(default_factory=list)

    def __post_init__(self):
        self.id = str(self.id)
        _validate_enum(self.status, PROGRAM_STATUSES, "status")
        self.budget = _to_number(self.budget, "budget")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "status": self.status,
            "budget": self.budget,
            "parties": [p.to_dict() for p in self.parties],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Program":
        return cls(
            id=_require(data, "id", "Program"),
            name=_require(data, "name", "Program"),
            description=data.get("description") or "",
            start_date=data.get("startDate") or "",
            end_date=data.get("endDate") or "",
            status=data.get("status") or DEFAULT_PROGRAM_STATUS,
            budget=data.get("budget", 0),
            parties=[Party.from_dict(p) for p in data.get("parties") or []],
        )


# ── Board entities ───────────────────────────────────────────────────────────


@dataclass
class Task:
    id: str
    program_id: str
    title: str
    description: str = ""
    status: str = "Todo"
    assignee: str = ""
    due_date: str = ""
    priority: str = DEFAULT_LEVEL

    def __post_init__(self):
        self.id = str(self.id)
        self.program_id = str(self.program_id)
        _validate_enum(self.status, TASK_STATUSES, "status")
        _validate_enum(self.priority, PRIORITY_LEVELS, "priority")

    def to_dict(self):
        return {
            "id": self.id,
            "programId": self.program_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "assignee": self.assignee,
            "dueDate": self.due_date,
            "priority": self.priority,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        return cls(
            id=_require(data, "id", "Task"),
            program_id=_require(data, "programId", "Task"),
            title=_require(data, "title", "Task"),
            description=data.get("description") or "",
            status=data.get("status") or "Todo",
            assignee=data.get("assignee") or "",
            due_date=data.get("dueDate") or "",
            priority=data.get("priority") or DEFAULT_LEVEL,
        )


@dataclass
class Risk:
    id: str
    program_id: str
    title: str
    description: str = ""
    impact: str = DEFAULT_LEVEL
    probability: str = DEFAULT_LEVEL
    mitigation_plan: str = ""
    status: str = "Open"

    def __post_init__(self):
        self.id = str(self.id)
        self.program_id = str(self.program_id)
        _validate_enum(self.impact, IMPACT_LEVELS, "impact")
        _validate_enum(self.probability, PROBABILITY_LEVELS, "probability")
        _validate_enum(self.status, RISK_STATUSES, "status")

    def to_dict(self):
        return {
            "id": self.id,
            "programId": self.program_id,
            "title": self.title,
            "description": self.description,
            "impact": self.impact,
            "probability": self.probability,
            "mitigationPlan": self.mitigation_plan,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Risk":
        return cls(
            id=_require(data, "id", "Risk"),
            program_id=_require(data, "programId", "Risk"),
            title=_require(data, "title", "Risk"),
            description=data.get("description") or "",
            impact=data.get("impact") or DEFAULT_LEVEL,
            probability=data.get("probability") or DEFAULT_LEVEL,
            mitigation_plan=data.get("mitigationPlan") or "",
            status=data.get("status") or "Open",
        )


@dataclass
class Blocker:
    """An impediment, optionally putting the whole program on hold.

    ``project_hold_date`` only exists while ``is_project_on_hold`` is set;
    clearing the flag drops the date.
    """

    id: str
    program_id: str
    title: str
    start_date: str
    description: str = ""
    impact: str = DEFAULT_LEVEL
    is_project_on_hold: bool = False
    project_hold_date: str | None = None
    status: str = "Active"
    resolution: str = ""

    def __post_init__(self):
        self.id = str(self.id)
        self.program_id = str(self.program_id)
        self.is_project_on_hold = flag_value(self.is_project_on_hold, "isProjectOnHold")
        if not self.is_project_on_hold:
            self.project_hold_date = None
        _validate_enum(self.impact, IMPACT_LEVELS, "impact")
        _validate_enum(self.status, BLOCKER_STATUSES, "status")

    def to_dict(self):
        data = {
            "id": self.id,
            "programId": self.program_id,
            "title": self.title,
            "description": self.description,
            "impact": self.impact,
            "startDate": self.start_date,
            "isProjectOnHold": self.is_project_on_hold,
            "status": self.status,
            "resolution": self.resolution,
        }
        if self.project_hold_date:
            data["projectHoldDate"] = self.project_hold_date
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Blocker":
        return cls(
            id=_require(data, "id", "Blocker"),
            program_id=_require(data, "programId", "Blocker"),
            title=_require(data, "title", "Blocker"),
            start_date=data.get("startDate") or "",
            description=data.get("description") or "",
            impact=data.get("impact") or DEFAULT_LEVEL,
            is_project_on_hold=data.get("isProjectOnHold", False),
            project_hold_date=data.get("projectHoldDate") or None,
            status=data.get("status") or "Active",
            resolution=data.get("resolution") or "",
        )
