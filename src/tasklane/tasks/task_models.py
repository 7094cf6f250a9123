# src/tasklane/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any, Final


class TaskStatus(StrEnum):
    """Task lifecycle status. Wire values match the `tasks.status` column."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: Any) -> TaskStatus:
        """Absent or unknown values read as TODO."""
        if isinstance(raw, str):
            try:
                return cls(raw)
            except ValueError:
                pass
        return cls.TODO

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    def next(self) -> TaskStatus:
        """Cyclic successor: todo -> in_progress -> completed -> todo."""
        return _STATUS_CYCLE[self]


_STATUS_LABELS: Final = {
    TaskStatus.TODO: "Not Started",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.COMPLETED: "Completed",
}

_STATUS_CYCLE: Final = {
    TaskStatus.TODO: TaskStatus.IN_PROGRESS,
    TaskStatus.IN_PROGRESS: TaskStatus.COMPLETED,
    TaskStatus.COMPLETED: TaskStatus.TODO,
}


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: Any) -> TaskPriority:
        """Absent or unknown values read as MEDIUM."""
        if isinstance(raw, str):
            try:
                return cls(raw)
            except ValueError:
                pass
        return cls.MEDIUM


class SortField(StrEnum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    DUE_DATE = "due_date"
    TITLE = "title"
    PRIORITY = "priority"
    STATUS = "status"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> SortDirection:
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


ALL: Final = "all"
# Filter value meaning "no predicate on this column".


@dataclass(slots=True)
class Task:
    id: str
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    due_date: date | None

    user_id: str | None = None
    team_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class TaskDraft:
    """Editable subset of a task, owned by the form until submit."""

    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None
    team_id: str | None = None


@dataclass(slots=True)
class FilterState:
    status: TaskStatus | str = ALL
    priority: TaskPriority | str = ALL
    sort_field: SortField = SortField.CREATED_AT
    sort_direction: SortDirection = SortDirection.DESC

    def predicates(self) -> list[tuple[str, str]]:
        out: list[tuple[str, str]] = []
        if self.status != ALL:
            out.append(("status", str(self.status)))
        if self.priority != ALL:
            out.append(("priority", str(self.priority)))
        return out


@dataclass(slots=True)
class CurrentUser:
    id: str
    email: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def _parse_date(raw: Any) -> date | None:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    s = raw.strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def _parse_datetime(raw: Any) -> datetime | None:
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        # PostgREST emits "Z" suffixes on some deployments.
        return datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def task_from_row(row: dict[str, Any]) -> Task:
    """
    Normalize a raw store row into a Task.

    Columns may be missing entirely on a partially-migrated store; status and
    priority always get a valid enum member, due_date becomes None.
    """
    description = row.get("description")
    return Task(
        id=str(row["id"]),
        title=str(row.get("title") or ""),
        description=None if description is None else str(description),
        status=TaskStatus.from_db(row.get("status")),
        priority=TaskPriority.from_db(row.get("priority")),
        due_date=_parse_date(row.get("due_date")),
        user_id=row.get("user_id"),
        team_id=row.get("team_id"),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def draft_from_task(task: Task) -> TaskDraft:
    """Initial form values for editing an existing task."""
    return TaskDraft(
        title=task.title,
        description=task.description or "",
        status=task.status,
        priority=task.priority,
        due_date=task.due_date,
        team_id=task.team_id,
    )
