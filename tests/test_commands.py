# tests/test_commands.py

from __future__ import annotations

import pytest

from tasklane.cli.bootstrap import create_initial_state
from tasklane.cli.commands import CommandRegistry, parse_draft_args, registry
from tasklane.stores.sqlite_store import SqliteDataStore
from tasklane.tasks.task_models import CurrentUser, TaskPriority, TaskStatus


@pytest.mark.asyncio
async def test_command_registry_routes_and_aliases(state) -> None:
    reg = CommandRegistry()
    called: list[list[str]] = []

    async def handler(state, args):
        called.append(args)
        return "ok"

    reg.register("a", handler, "a", aliases=["alpha"])

    assert await reg.handle(state, '/a x "y z"') == "ok"
    assert await reg.handle(state, "/ALPHA") == "ok"
    assert called == [["x", "y z"], []]
    assert await reg.handle(state, "not a command") is None
    assert (await reg.handle(state, "/nope")).startswith("Unknown command: /nope")


def test_parse_draft_args() -> None:
    draft = parse_draft_args(["title=Ship it", "priority=high", "status=in_progress", "due=2025-05-01"])
    assert draft.title == "Ship it"
    assert draft.priority is TaskPriority.HIGH
    assert draft.status is TaskStatus.IN_PROGRESS
    assert draft.due_date is not None and draft.due_date.isoformat() == "2025-05-01"

    with pytest.raises(ValueError):
        parse_draft_args(["priority=urgent"])
    with pytest.raises(ValueError):
        parse_draft_args(["title"])


@pytest.mark.asyncio
async def test_new_then_list(state) -> None:
    reply = await registry.handle(state, '/new title="Buy milk" priority=high')

    assert reply.startswith("Task created.")
    assert "Buy milk" in reply
    assert state.last_draft is None
    assert state.route == "tasks"

    listing = await registry.handle(state, "/list")
    assert "Buy milk" in listing
    assert "(high)" in listing


@pytest.mark.asyncio
async def test_new_requires_title(state) -> None:
    assert await registry.handle(state, "/new description=nothing") == "Error: Title is required."
    assert state.query.tasks == []


@pytest.mark.asyncio
async def test_empty_list_message(state) -> None:
    reply = await registry.handle(state, "/list")
    assert reply.startswith("You don't have any tasks yet.")


@pytest.mark.asyncio
async def test_toggle_by_id_prefix(state) -> None:
    await registry.handle(state, "/new title=Report")
    task = state.query.tasks[0]

    reply = await registry.handle(state, f"/toggle {task.id[:8]}")

    assert reply == "Report: Not Started -> In Progress"
    assert state.query.get_local(task.id).status is TaskStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_edit_and_show(state) -> None:
    await registry.handle(state, "/new title=Draft")
    task_id = state.query.tasks[0].id

    reply = await registry.handle(state, f"/edit {task_id} title=Final priority=low")
    assert reply.startswith("Task updated.")
    assert state.route == f"tasks/{task_id}"

    detail = await registry.handle(state, f"/show {task_id}")
    assert detail.splitlines()[0] == "Final"
    assert "priority:    low" in detail


@pytest.mark.asyncio
async def test_delete(state) -> None:
    await registry.handle(state, "/new title=Temp")
    task_id = state.query.tasks[0].id

    assert await registry.handle(state, f"/delete {task_id}") == "Task deleted."
    assert state.query.get_local(task_id) is None
    assert (await registry.handle(state, "/list")).startswith("You don't have any tasks yet.")


@pytest.mark.asyncio
async def test_signed_out_create_keeps_draft_for_retry(settings) -> None:
    store = SqliteDataStore(settings.db_path)
    state = create_initial_state(settings=settings, store=store)

    reply = await registry.handle(state, "/new title=Kept")

    assert reply.startswith("Error: You must be logged in")
    assert "Your input was kept" in reply
    assert state.last_draft is not None and state.last_draft.title == "Kept"

    store.user = CurrentUser(id="u1")
    assert (await registry.handle(state, "/retry")).startswith("Task created.")
    assert state.last_draft is None
    assert await registry.handle(state, "/retry") == "Nothing to retry."


@pytest.mark.asyncio
async def test_partially_migrated_store_still_creates_and_sorts(settings) -> None:
    store = SqliteDataStore(settings.db_path, omit_columns=["priority"], user=CurrentUser(id="u1"))
    state = create_initial_state(settings=settings, store=store)

    reply = await registry.handle(state, "/new title=Legacy priority=high")
    assert reply.startswith("Task created.")

    listing = await registry.handle(state, "/sort priority")
    assert "Legacy" in listing
    assert state.query.error is None


@pytest.mark.asyncio
async def test_profile_created_and_updated(state) -> None:
    shown = await registry.handle(state, "/profile")
    assert "u1@example.com" in shown

    updated = await registry.handle(state, "/profile name=Ada")
    assert updated.startswith("Profile updated.")
    assert "full name:  Ada" in updated
