# src/clippy_tasks/tasks/task_models.py

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from ..core.errors import ValidationError

NO_DEADLINE = "no deadline"

# Spellings the analyzer (or an older client) may use for "no deadline".
NO_DEADLINE_ALIASES: frozenset[str] = frozenset({"no deadline", "기한 없음", "none", "n/a", "-", ""})

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$")


class Priority(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, raw: Any) -> Priority:
        s = str(raw or "").strip().lower()
        for p in cls:
            if p.value.lower() == s:
                return p
        raise ValidationError(f"priority must be one of High/Medium/Low, got {raw!r}")


class TaskSource(StrEnum):
    PERSONAL = "personal"
    TEAM = "team"

    @classmethod
    def parse(cls, raw: Any) -> TaskSource:
        try:
            return cls(str(raw or "").strip().lower())
        except ValueError:
            raise ValidationError(f"source must be personal or team, got {raw!r}") from None


def is_valid_deadline(value: str) -> bool:
    """Strict wire-shape check: sentinel, YYYY-MM-DD or YYYY-MM-DD HH:mm."""
    if value == NO_DEADLINE:
        return True
    fmt = "%Y-%m-%d" if _DATE_RE.match(value) else "%Y-%m-%d %H:%M" if _DATETIME_RE.match(value) else None
    if fmt is None:
        return False
    try:
        datetime.strptime(value, fmt)
    except ValueError:
        return False
    return True


def normalize_deadline(raw: Any) -> str:
    """
    Bring a loosely formatted deadline into wire shape.

    Accepts the sentinel aliases, an ISO "T" separator and trailing seconds.
    Raises ValidationError for anything else.
    """
    s = "" if raw is None else str(raw).strip()
    if s.casefold() in NO_DEADLINE_ALIASES:
        return NO_DEADLINE
    s = s.replace("T", " ", 1)
    if len(s) == 19 and s[16] == ":":
        s = s[:16]
    if not is_valid_deadline(s):
        raise ValidationError(f"deadline must be YYYY-MM-DD or YYYY-MM-DD HH:mm, got {raw!r}")
    return s


def deadline_date(deadline: str | None) -> date | None:
    """Calendar day of a deadline, or None for the sentinel/unparsable values."""
    if not deadline or deadline == NO_DEADLINE:
        return None
    head = deadline.replace("T", " ").strip()[:10]
    try:
        return datetime.strptime(head, "%Y-%m-%d").date()
    except ValueError:
        return None


# Python attribute -> wire field name.
WIRE_FIELDS: dict[str, str] = {
    "id": "id",
    "description": "description",
    "assignee": "assignee",
    "priority": "priority",
    "department": "department",
    "deadline": "deadline",
    "completed": "completed",
    "source": "source",
    "team_id": "teamId",
    "related_summary": "relatedSummary",
}

# Fields a merge-patch may touch. `id` is immutable.
PATCHABLE_WIRE_FIELDS: frozenset[str] = frozenset(v for k, v in WIRE_FIELDS.items() if k != "id")


@dataclass(slots=True)
class Task:
    id: str
    description: str
    assignee: str
    priority: Priority
    department: str
    deadline: str
    completed: bool
    source: TaskSource
    team_id: str | None = None
    related_summary: str | None = None

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "description": self.description,
            "assignee": self.assignee,
            "priority": self.priority.value,
            "department": self.department,
            "deadline": self.deadline,
            "completed": self.completed,
            "source": self.source.value,
        }
        if self.team_id is not None:
            out["teamId"] = self.team_id
        if self.related_summary is not None:
            out["relatedSummary"] = self.related_summary
        return out

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=str(data["id"]),
            description=str(data.get("description", "")),
            assignee=str(data.get("assignee", "")),
            priority=Priority.parse(data.get("priority")),
            department=str(data.get("department", "")),
            deadline=str(data.get("deadline") or NO_DEADLINE),
            completed=bool(data.get("completed", False)),
            source=TaskSource.parse(data.get("source")),
            team_id=data.get("teamId"),
            related_summary=data.get("relatedSummary"),
        )


def check_team_invariant(source: TaskSource, team_id: str | None) -> None:
    """teamId is set if and only if source == team."""
    if source is TaskSource.TEAM and not team_id:
        raise ValidationError("team tasks require a teamId")
    if source is TaskSource.PERSONAL and team_id:
        raise ValidationError("personal tasks must not carry a teamId")


@dataclass(frozen=True, slots=True)
class TaskCreationCommand:
    """A fully validated task waiting for an id from the repository."""

    description: str
    assignee: str
    priority: Priority
    department: str
    deadline: str
    source: TaskSource
    team_id: str | None = None
    related_summary: str | None = None

    def __post_init__(self) -> None:
        if not self.description.strip():
            raise ValidationError("task description is required")
        if not isinstance(self.priority, Priority):
            raise ValidationError(f"invalid priority {self.priority!r}")
        if not is_valid_deadline(self.deadline):
            raise ValidationError(f"invalid deadline {self.deadline!r}")
        check_team_invariant(self.source, self.team_id)

    def to_task(self, task_id: str) -> Task:
        return Task(
            id=task_id,
            description=self.description,
            assignee=self.assignee,
            priority=self.priority,
            department=self.department,
            deadline=self.deadline,
            completed=False,
            source=self.source,
            team_id=self.team_id,
            related_summary=self.related_summary,
        )


@dataclass(frozen=True, slots=True)
class Decision:
    id: str
    description: str


@dataclass(frozen=True, slots=True)
class DraftTask:
    description: str
    assignee: str
    priority: Priority
    department: str
    deadline: str


@dataclass(frozen=True, slots=True)
class DraftResult:
    """Unreviewed analyzer output. Never persisted directly."""

    summary: str
    decisions: tuple[str, ...] = ()
    tasks: tuple[DraftTask, ...] = ()


@dataclass(frozen=True, slots=True)
class TaskFilter:
    """Equality filter for list/subscribe. None means "any"."""

    source: TaskSource | None = None
    team_id: str | None = None
    completed: bool | None = None
    ids: frozenset[str] | None = field(default=None)

    def matches(self, task: Task) -> bool:
        if self.source is not None and task.source is not self.source:
            return False
        if self.team_id is not None and task.team_id != self.team_id:
            return False
        if self.completed is not None and task.completed != self.completed:
            return False
        if self.ids is not None and task.id not in self.ids:
            return False
        return True
