# src/tasklane/cli/render.py

"""Plain-text views of tasks and profiles for the console front-end."""

from __future__ import annotations

from datetime import datetime

from ..profiles.profile_models import Profile
from ..tasks.task_models import ALL, FilterState, Task

SHORT_ID_LEN = 8


def _ts(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def describe_filter(f: FilterState) -> str:
    status = "All Status" if f.status == ALL else str(f.status)
    priority = "All Priorities" if f.priority == ALL else str(f.priority)
    return f"status={status} priority={priority} sort={f.sort_field} {f.sort_direction}"


def format_task_line(task: Task, *, not_synced: bool = False) -> str:
    due = f"  due {task.due_date.isoformat()}" if task.due_date else ""
    mark = "  [not synced]" if not_synced else ""
    return (
        f"{task.id[:SHORT_ID_LEN]}  [{task.status.label}] ({task.priority}) "
        f"{task.title}{due}{mark}"
    )


def render_task_list(
    tasks: list[Task],
    *,
    filter_state: FilterState,
    error: str | None,
    divergent: dict[str, str],
) -> str:
    if error:
        return error
    if not tasks:
        return "You don't have any tasks yet.\nCreate a new task to get started: /new title=..."

    lines = [f"Tasks ({describe_filter(filter_state)}):"]
    for t in tasks:
        lines.append("  " + format_task_line(t, not_synced=t.id in divergent))
        lines.append("      " + (t.description or "No description provided"))
    return "\n".join(lines)


def render_task_detail(task: Task, *, divergent_reason: str | None = None) -> str:
    lines = [
        f"{task.title}",
        f"  id:          {task.id}",
        f"  status:      {task.status.label}",
        f"  priority:    {task.priority}",
        f"  description: {task.description or 'No description provided'}",
    ]
    if task.due_date:
        lines.append(f"  due date:    {task.due_date.isoformat()}")
    lines.append(f"  created:     {_ts(task.created_at)}")
    lines.append(f"  updated:     {_ts(task.updated_at)}")
    if divergent_reason:
        lines.append(f"  [not synced: {divergent_reason}]")
    return "\n".join(lines)


def render_profile(profile: Profile, *, email: str | None) -> str:
    return "\n".join(
        [
            "Profile:",
            f"  email:      {email or 'unknown'} (cannot be changed)",
            f"  full name:  {profile.full_name or '-'}",
            f"  avatar url: {profile.avatar_url or '-'}",
        ]
    )
