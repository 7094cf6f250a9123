# tests/test_task_mutations.py

from __future__ import annotations

from datetime import date

import pytest

from tasklane.core.errors import AuthRequiredError, MutationError, StoreError
from tasklane.tasks.capabilities import FieldCapabilities
from tasklane.tasks.task_models import TaskDraft, TaskPriority, TaskStatus
from tasklane.tasks.task_mutations import PENDING_DELETION_PREFIX, TaskMutationController
from tasklane.tasks.task_query import TaskQueryController

from .fakes import FakeDataStore, FakeNavigator


def _controller(store: FakeDataStore) -> tuple[TaskMutationController, TaskQueryController, FakeNavigator]:
    query = TaskQueryController(store)
    nav = FakeNavigator(query=query)
    return TaskMutationController(store, query, nav, capabilities=FieldCapabilities()), query, nav


def _network_error() -> StoreError:
    return StoreError("network error: connection refused", code="network")


# ---- create ----

@pytest.mark.asyncio
async def test_create_drops_rejected_priority_and_succeeds() -> None:
    store = FakeDataStore(missing_columns=("priority",))
    mutations, query, nav = _controller(store)
    draft = TaskDraft(title="X", description="", status=TaskStatus.TODO, priority=TaskPriority.HIGH)

    task = await mutations.create(draft, "u1")

    stored = store.tables["tasks"]
    assert len(stored) == 1
    assert stored[0]["title"] == "X"
    assert "priority" not in stored[0]
    assert stored[0]["user_id"] == "u1"
    assert task is not None and task.priority is TaskPriority.MEDIUM

    inserts = store.calls_of("insert")
    assert len(inserts) == 2
    assert "priority" in inserts[0] and "priority" not in inserts[1]
    assert nav.routes == ["tasks"]
    assert nav.refreshes == 1


@pytest.mark.asyncio
async def test_rejected_field_is_remembered_for_later_writes() -> None:
    store = FakeDataStore(missing_columns=("priority",))
    mutations, _, _ = _controller(store)

    await mutations.create(TaskDraft(title="one"), "u1")
    await mutations.create(TaskDraft(title="two"), "u1")

    inserts = store.calls_of("insert")
    assert len(inserts) == 3
    assert "priority" not in inserts[2]
    assert not mutations.capabilities.supports("priority")


@pytest.mark.asyncio
async def test_ladder_checks_priority_before_status() -> None:
    store = FakeDataStore()
    store.fail("insert", StoreError("columns status and priority are not writable"))
    mutations, _, _ = _controller(store)

    await mutations.create(TaskDraft(title="t"), "u1")

    retry = store.calls_of("insert")[1]
    assert "priority" not in retry
    assert "status" in retry


@pytest.mark.asyncio
async def test_create_falls_back_to_minimal_payload() -> None:
    store = FakeDataStore(missing_columns=("priority", "status"))
    mutations, _, _ = _controller(store)

    await mutations.create(TaskDraft(title="min", description="d", due_date=date(2025, 1, 1)), "u1")

    inserts = store.calls_of("insert")
    assert len(inserts) == 3
    assert inserts[-1] == {"title": "min", "description": "d", "user_id": "u1"}
    assert set(store.tables["tasks"][0]) == {"id", "title", "description", "user_id"}


@pytest.mark.asyncio
async def test_create_fails_when_minimal_payload_fails() -> None:
    store = FakeDataStore(missing_columns=("priority",))
    store.fail(
        "insert",
        None,  # full payload -> rejected by the missing column
        StoreError('null value in column "title" violates not-null constraint'),
        StoreError('null value in column "title" violates not-null constraint'),
    )
    mutations, _, nav = _controller(store)

    with pytest.raises(MutationError):
        await mutations.create(TaskDraft(title="t"), "u1")

    assert len(store.calls_of("insert")) == 3
    assert nav.routes == []
    assert mutations.loading is False


@pytest.mark.asyncio
async def test_create_requires_owner() -> None:
    store = FakeDataStore()
    mutations, _, _ = _controller(store)

    with pytest.raises(AuthRequiredError):
        await mutations.create(TaskDraft(title="t"), None)
    assert store.calls == []


@pytest.mark.asyncio
async def test_create_non_schema_failure_is_not_retried() -> None:
    store = FakeDataStore()
    store.fail("insert", _network_error())
    mutations, _, _ = _controller(store)

    with pytest.raises(MutationError):
        await mutations.create(TaskDraft(title="t"), "u1")
    assert len(store.calls_of("insert")) == 1


# ---- update ----

@pytest.mark.asyncio
async def test_update_network_failure_has_no_retry(fake_store: FakeDataStore, mutations, navigator) -> None:
    fake_store.fail("update", _network_error())

    with pytest.raises(MutationError):
        await mutations.update("t-a", TaskDraft(title="A2"))

    assert len(fake_store.calls_of("update")) == 1
    assert navigator.routes == []


@pytest.mark.asyncio
async def test_update_retries_without_rejected_status() -> None:
    store = FakeDataStore([{"id": "1", "title": "old", "priority": "low"}], missing_columns=("status",))
    mutations, query, nav = _controller(store)
    await query.refresh()

    await mutations.update("1", TaskDraft(title="new", priority=TaskPriority.HIGH, status=TaskStatus.COMPLETED))

    updates = store.calls_of("update")
    assert len(updates) == 2
    assert "status" not in updates[1]
    assert "user_id" not in updates[1]
    assert store.tables["tasks"][0]["title"] == "new"
    assert store.tables["tasks"][0]["priority"] == "high"
    assert nav.routes == ["tasks/1"]
    assert nav.refreshes == 1


@pytest.mark.asyncio
async def test_update_propagates_when_retry_also_fails() -> None:
    store = FakeDataStore([{"id": "1", "title": "old"}], missing_columns=("priority", "due_date"))
    mutations, _, nav = _controller(store)

    with pytest.raises(MutationError) as exc_info:
        await mutations.update("1", TaskDraft(title="x"))

    # only one field is stripped per ladder; no minimal tier for updates
    assert len(store.calls_of("update")) == 2
    assert isinstance(exc_info.value.__cause__, StoreError)
    assert nav.routes == []


# ---- delete ----

@pytest.mark.asyncio
async def test_delete_removes_task_locally(fake_store: FakeDataStore, query, mutations) -> None:
    await query.refresh()

    await mutations.delete("t-a")

    assert query.get_local("t-a") is None
    assert all(r["id"] != "t-a" for r in fake_store.tables["tasks"])
    assert "t-a" not in mutations.divergent


@pytest.mark.asyncio
async def test_delete_schema_failure_hides_and_marks_completed(fake_store, query, mutations) -> None:
    await query.refresh()
    fake_store.fail("delete", StoreError('record "old" has no field "status"', code="42703"))

    await mutations.delete("t-c")

    assert query.get_local("t-c") is None
    row = next(r for r in fake_store.tables["tasks"] if r["id"] == "t-c")
    assert row["status"] == "completed"
    assert row["description"].startswith(PENDING_DELETION_PREFIX)
    assert "t-c" in mutations.divergent


@pytest.mark.asyncio
async def test_delete_keeps_local_removal_when_compensation_fails(fake_store, query, mutations) -> None:
    await query.refresh()
    fake_store.fail("delete", StoreError('record "old" has no field "status"', code="42703"))
    fake_store.fail("update", _network_error())

    with pytest.raises(MutationError):
        await mutations.delete("t-b")

    assert query.get_local("t-b") is None
    assert "t-b" in mutations.divergent


@pytest.mark.asyncio
async def test_delete_non_schema_failure_changes_nothing(fake_store, query, mutations) -> None:
    await query.refresh()
    fake_store.fail("delete", _network_error())

    with pytest.raises(MutationError):
        await mutations.delete("t-b")

    assert query.get_local("t-b") is not None
    assert fake_store.calls_of("update") == []


# ---- cycle_status ----

@pytest.mark.asyncio
async def test_cycle_status_persists_only_status(fake_store, query, mutations) -> None:
    await query.refresh()
    task = query.get_local("t-c")

    updated = await mutations.cycle_status(task)

    assert updated.status is TaskStatus.COMPLETED
    assert fake_store.calls_of("update") == [{"status": "completed"}]
    assert query.get_local("t-c").status is TaskStatus.COMPLETED
    assert "t-c" not in mutations.divergent


@pytest.mark.asyncio
async def test_cycle_status_three_times_returns_to_start(query, mutations) -> None:
    await query.refresh()
    task = query.get_local("t-a")
    start = task.status

    for _ in range(3):
        task = await mutations.cycle_status(task)

    assert task.status is start


@pytest.mark.asyncio
async def test_cycle_status_without_status_column_applies_locally() -> None:
    store = FakeDataStore([{"id": "1", "title": "legacy", "description": "d"}], missing_columns=("status",))
    mutations, query, _ = _controller(store)
    await query.refresh()

    updated = await mutations.cycle_status(query.get_local("1"))

    assert updated.status is TaskStatus.IN_PROGRESS
    assert query.get_local("1").status is TaskStatus.IN_PROGRESS
    assert store.calls_of("update") == [{"status": "in_progress"}, {"title": "legacy", "description": "d"}]
    assert "1" in mutations.divergent

    # status is now known to be unsupported: go straight to the fallback
    await mutations.cycle_status(updated)
    assert store.calls_of("update")[-1] == {"title": "legacy", "description": "d"}
    assert len(store.calls_of("update")) == 3


@pytest.mark.asyncio
async def test_cycle_status_network_failure_leaves_local_state(fake_store, query, mutations) -> None:
    await query.refresh()
    fake_store.fail("update", _network_error())
    task = query.get_local("t-a")

    with pytest.raises(MutationError):
        await mutations.cycle_status(task)

    assert query.get_local("t-a").status is TaskStatus.COMPLETED
    assert len(fake_store.calls_of("update")) == 1


# ---- capabilities ----

@pytest.mark.asyncio
async def test_probe_learns_missing_columns() -> None:
    store = FakeDataStore([{"id": "1", "title": "t", "status": "todo"}])
    caps = FieldCapabilities()

    assert await caps.probe(store) is True
    assert caps.unsupported == {"priority", "due_date"}
    assert caps.strip({"title": "t", "priority": "high", "status": "todo"}) == {"title": "t", "status": "todo"}


@pytest.mark.asyncio
async def test_probe_on_empty_table_learns_nothing() -> None:
    caps = FieldCapabilities()
    assert await caps.probe(FakeDataStore()) is False
    assert caps.unsupported == frozenset()


# ---- rejections named inside constraint names / unlisted tasks ----

@pytest.mark.asyncio
async def test_create_retries_when_check_constraint_names_priority() -> None:
    store = FakeDataStore()
    store.fail(
        "insert",
        StoreError(
            'new row for relation "tasks" violates check constraint "tasks_priority_check"',
            code="23514",
        ),
    )
    mutations, _, _ = _controller(store)

    task = await mutations.create(TaskDraft(title="X", priority=TaskPriority.HIGH), "u1")

    inserts = store.calls_of("insert")
    assert len(inserts) == 2
    assert "priority" not in inserts[1]
    assert task is not None and task.title == "X"


@pytest.mark.asyncio
async def test_delete_of_unlisted_task_keeps_its_description() -> None:
    store = FakeDataStore([{"id": "t1", "title": "t", "description": "important notes"}])
    store.fail("delete", StoreError("Could not find the 'status' column of 'tasks' in the schema cache"))
    mutations, query, _ = _controller(store)
    assert query.get_local("t1") is None

    await mutations.delete("t1")

    row = store.tables["tasks"][0]
    assert row["description"] == f"{PENDING_DELETION_PREFIX} important notes"
    assert row["status"] == "completed"
    assert "t1" in mutations.divergent


@pytest.mark.asyncio
async def test_delete_of_unreadable_task_only_marks_status() -> None:
    store = FakeDataStore([{"id": "t1", "title": "t", "description": "important notes"}])
    store.fail("delete", StoreError("Could not find the 'status' column of 'tasks' in the schema cache"))
    store.fail("select", _network_error())
    mutations, _, _ = _controller(store)

    await mutations.delete("t1")

    update = store.calls_of("update")[0]
    assert "description" not in update
    assert update["status"] == "completed"
    assert store.tables["tasks"][0]["description"] == "important notes"


@pytest.mark.asyncio
async def test_update_local_copy_keeps_values_the_store_did_not_take() -> None:
    store = FakeDataStore([{"id": "1", "title": "old", "status": "todo"}], missing_columns=("priority",))
    mutations, query, nav = _controller(store)
    await query.refresh()
    nav.query = None  # keep the patched local copy visible

    await mutations.update("1", TaskDraft(title="new", priority=TaskPriority.HIGH, status=TaskStatus.COMPLETED))

    local = query.get_local("1")
    assert local.title == "new"
    assert local.status is TaskStatus.COMPLETED
    assert local.priority is TaskPriority.MEDIUM
