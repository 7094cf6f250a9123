# src/tasklane/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import date

from ..core.errors import AuthRequiredError, MutationError, QueryError, StoreError
from ..core.state import AppState
from ..profiles.profile_models import ProfileFormValues
from ..tasks.task_models import (
    ALL,
    CurrentUser,
    Task,
    TaskDraft,
    TaskPriority,
    TaskStatus,
    draft_from_task,
)
from ..tasks.task_mutations import AUTH_REQUIRED_MESSAGE
from .render import render_profile, render_task_detail, render_task_list

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as exc:
            return f"Could not parse command: {exc}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----

def parse_draft_args(args: list[str], base: TaskDraft | None = None) -> TaskDraft:
    """
    Apply key=value arguments to a draft.

    Keys: title, description (desc), status, priority, due (YYYY-MM-DD or "none"), team.
    Raises ValueError with a user-facing message on bad input.
    """
    draft = replace(base) if base is not None else TaskDraft(title="")
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value, got {arg!r}.")
        key = key.strip().lower()
        if key == "title":
            draft.title = value
        elif key in ("description", "desc"):
            draft.description = value
        elif key == "status":
            try:
                draft.status = TaskStatus(value)
            except ValueError:
                raise ValueError(f"Unknown status {value!r}; use todo, in_progress or completed.") from None
        elif key == "priority":
            try:
                draft.priority = TaskPriority(value)
            except ValueError:
                raise ValueError(f"Unknown priority {value!r}; use low, medium or high.") from None
        elif key == "due":
            if value.lower() in ("", "none"):
                draft.due_date = None
            else:
                try:
                    draft.due_date = date.fromisoformat(value)
                except ValueError:
                    raise ValueError(f"Bad due date {value!r}; use YYYY-MM-DD.") from None
        elif key == "team":
            draft.team_id = value or None
        else:
            raise ValueError(f"Unknown field {key!r}.")
    return draft


def resolve_task_id(state: AppState, token: str) -> str:
    """Full id for an exact id or a unique prefix of a listed task's id."""
    matches = [t.id for t in state.query.tasks if t.id.startswith(token)]
    if token in matches:
        return token
    if len(matches) == 1:
        return matches[0]
    return token


async def _current_user(state: AppState) -> CurrentUser | None:
    try:
        return await state.store.get_current_user()
    except StoreError:
        logger.exception("Could not resolve the signed-in user")
        return None


async def _load_task(state: AppState, task_id: str) -> Task | None:
    local = state.query.get_local(task_id)
    if local is not None:
        return local
    return await state.query.fetch_task(task_id)


def _list_view(state: AppState) -> str:
    return render_task_list(
        state.query.tasks,
        filter_state=state.query.filter,
        error=state.query.error,
        divergent=state.mutations.divergent,
    )


def _drain_outbox(state: AppState) -> list[str]:
    out = list(state.outbox)
    state.outbox.clear()
    return out


async def _submit(state: AppState, draft: TaskDraft, task_id: str | None) -> str:
    """Shared save path for /new, /edit and /retry. The draft is kept on failure."""
    if not draft.title.strip():
        return "Error: Title is required."

    state.last_draft = draft
    state.last_draft_task_id = task_id

    user = await _current_user(state)

    try:
        if task_id is None:
            await state.mutations.create(draft, user.id if user else None)
        else:
            if user is None:
                raise AuthRequiredError(AUTH_REQUIRED_MESSAGE)
            await state.mutations.update(task_id, draft)
    except MutationError as exc:
        return f"Error: {exc}\n(Your input was kept; fix it with /edit or resend with /retry.)"

    state.last_draft = None
    state.last_draft_task_id = None
    verb = "created" if task_id is None else "updated"
    return "\n".join([f"Task {verb}.", *_drain_outbox(state)])


# ---- handlers ----

async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_list(state: AppState, args: list[str]) -> str:
    state.navigator.go_to_task_list()
    try:
        await state.query.refresh()
    except QueryError:
        pass  # rendered from state.query.error
    return _list_view(state)


async def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter status <todo|in_progress|completed|all>
    /filter priority <low|medium|high|all>
    """
    if len(args) != 2 or args[0] not in ("status", "priority"):
        return "Usage: /filter status <todo|in_progress|completed|all> | /filter priority <low|medium|high|all>"

    kind, value = args[0], args[1].lower()
    try:
        if kind == "status":
            await state.query.set_status_filter(ALL if value == ALL else TaskStatus(value))
        else:
            await state.query.set_priority_filter(ALL if value == ALL else TaskPriority(value))
    except ValueError:
        return f"Unknown {kind} {value!r}."
    except QueryError:
        pass
    return _list_view(state)


async def cmd_sort(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /sort <created_at|updated_at|due_date|title|priority|status>"
    try:
        await state.query.select_sort_field(args[0].lower())
    except ValueError:
        return f"Cannot sort by {args[0]!r}."
    except QueryError:
        pass
    return _list_view(state)


async def cmd_dir(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /dir asc|desc"
    try:
        await state.query.set_sort_direction(args[0].lower())
    except ValueError:
        return "Usage: /dir asc|desc"
    except QueryError:
        pass
    return _list_view(state)


async def cmd_show(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /show <id>"
    task_id = resolve_task_id(state, args[0])
    try:
        task = await state.query.fetch_task(task_id)
    except QueryError as exc:
        return str(exc)
    if task is None:
        return "Task not found."
    state.navigator.go_to_task_detail(task.id)
    return render_task_detail(task, divergent_reason=state.mutations.divergent.get(task.id))


async def cmd_new(state: AppState, args: list[str]) -> str:
    """/new title="..." [description=...] [status=...] [priority=...] [due=YYYY-MM-DD]"""
    try:
        draft = parse_draft_args(args)
    except ValueError as exc:
        return f"Error: {exc}"
    return await _submit(state, draft, None)


async def cmd_edit(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /edit <id> key=value ..."
    task_id = resolve_task_id(state, args[0])
    try:
        task = await _load_task(state, task_id)
    except QueryError as exc:
        return str(exc)
    if task is None:
        return "Task not found."
    try:
        draft = parse_draft_args(args[1:], draft_from_task(task))
    except ValueError as exc:
        return f"Error: {exc}"
    return await _submit(state, draft, task.id)


async def cmd_retry(state: AppState, args: list[str]) -> str:
    if state.last_draft is None:
        return "Nothing to retry."
    return await _submit(state, state.last_draft, state.last_draft_task_id)


async def cmd_delete(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /delete <id>"
    task_id = resolve_task_id(state, args[0])
    try:
        await state.mutations.delete(task_id)
    except MutationError:
        logger.warning("Delete failed id=%s", task_id, exc_info=True)

    if state.query.get_local(task_id) is not None:
        return "Task was not deleted (see log for details)."
    reason = state.mutations.divergent.get(task_id)
    if reason:
        return f"Task removed. [not synced: {reason}]"
    return "Task deleted."


async def cmd_toggle(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /toggle <id>"
    task_id = resolve_task_id(state, args[0])
    try:
        task = await _load_task(state, task_id)
    except QueryError as exc:
        return str(exc)
    if task is None:
        return "Task not found."

    try:
        updated = await state.mutations.cycle_status(task)
    except MutationError:
        logger.warning("Status toggle failed id=%s", task.id, exc_info=True)
        return f"{task.title}: status unchanged ({task.status.label})."

    line = f"{updated.title}: {task.status.label} -> {updated.status.label}"
    reason = state.mutations.divergent.get(updated.id)
    return f"{line} [not synced: {reason}]" if reason else line


async def cmd_whoami(state: AppState, args: list[str]) -> str:
    user = await _current_user(state)
    if user is None:
        return "Not signed in."
    return f"Signed in as {user.email or '(no email)'} id={user.id}"


async def cmd_profile(state: AppState, args: list[str]) -> str:
    """
    /profile                      -> show profile (created on first visit)
    /profile name=... avatar=...  -> update full name / avatar URL
    """
    user = await _current_user(state)
    if user is None:
        return "You must be signed in to view your profile."

    profile = await state.profiles.load_or_create(user)

    if args:
        values = ProfileFormValues.from_profile(profile)
        for arg in args:
            key, sep, value = arg.partition("=")
            if not sep or key not in ("name", "avatar"):
                return "Usage: /profile [name=...] [avatar=...]"
            if key == "name":
                values.full_name = value
            else:
                values.avatar_url = value or None
        try:
            profile = await state.profiles.update(profile, values)
        except MutationError as exc:
            return f"Error: {exc}"

    email = await state.profiles.display_email(profile)
    prefix = "Profile updated.\n" if args else ""
    return prefix + render_profile(profile, email=email)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="Show your tasks with the current filter.", aliases=["ls"])
registry.register("filter", cmd_filter, help_text="Filter: /filter status|priority <value|all>.")
registry.register("sort", cmd_sort, help_text="Sort by a field (again to flip direction).")
registry.register("dir", cmd_dir, help_text="Sort direction: /dir asc|desc.")
registry.register("show", cmd_show, help_text="Task details: /show <id>.")
registry.register("new", cmd_new, help_text='Create: /new title="..." [priority=high due=YYYY-MM-DD].')
registry.register("edit", cmd_edit, help_text="Edit: /edit <id> key=value ...")
registry.register("retry", cmd_retry, help_text="Resubmit the last form that failed to save.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("toggle", cmd_toggle, help_text="Advance status: todo -> in_progress -> completed.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in user.")
registry.register("profile", cmd_profile, help_text="Show or update your profile.")
