# src/tasklane/tasks/task_mutations.py

"""
Task mutation controller.

Create / update / delete / status-cycle against the tasks table, tolerant of a
store that lacks some optional columns.

Write fallback ladder (create and update):
- send the full payload (minus columns already known to be unsupported)
- on a rejection naming priority, status or due_date (checked in that order),
  drop that one column, remember it, and retry once
- create only: if that still fails, try {title, description, user_id}

Non-schema failures (network, auth, constraint on another column) are raised
as MutationError without any retry.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, TypeVar

from ..core.errors import AuthRequiredError, MutationError, QueryError, StoreError, named_field
from ..core.ports import DataStore, Navigator, Row
from .capabilities import OPTIONAL_FIELDS, TASKS_TABLE, FieldCapabilities
from .task_models import Task, TaskDraft, TaskStatus, task_from_row
from .task_query import TaskQueryController

logger = logging.getLogger(__name__)

T = TypeVar("T")

TASK_COLUMNS: tuple[str, ...] = (
    *OPTIONAL_FIELDS,
    "title",
    "description",
    "team_id",
    "user_id",
    "created_at",
    "updated_at",
)

PENDING_DELETION_PREFIX = "[PENDING DELETION]"
SAVE_ERROR_MESSAGE = "Failed to save task. Please try again."
AUTH_REQUIRED_MESSAGE = "You must be logged in to create or edit tasks."


def is_schema_shaped(exc: BaseException | None) -> bool:
    return exc is not None and named_field(exc, TASK_COLUMNS) is not None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TaskMutationController:
    def __init__(
        self,
        store: DataStore,
        query: TaskQueryController,
        navigator: Navigator,
        *,
        capabilities: FieldCapabilities | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._query = query
        self._navigator = navigator
        self.capabilities = capabilities or FieldCapabilities()
        self._clock = clock
        self.loading = False

        # task_id -> why local state is ahead of the store
        self.divergent: dict[str, str] = {}

    # ---- helpers ----

    def _now(self) -> str:
        return self._clock().isoformat()

    @staticmethod
    def _draft_payload(draft: TaskDraft) -> Row:
        return {
            "title": draft.title,
            "description": draft.description,
            "status": str(draft.status),
            "priority": str(draft.priority),
            "due_date": draft.due_date.isoformat() if draft.due_date else None,
            "team_id": draft.team_id,
        }

    async def _write_with_fallback(self, write: Callable[[Row], Awaitable[T]], payload: Row) -> T:
        """
        Run one write through the ladder.

        Raises the original StoreError when it names no ladder column, or the
        retry's StoreError (chained from the original) when the retry fails too.
        """
        attempt = self.capabilities.strip(payload)
        try:
            return await write(attempt)
        except StoreError as exc:
            field = named_field(exc, [f for f in OPTIONAL_FIELDS if f in attempt])
            if field is None:
                raise
            first = exc

        logger.warning("Store rejected %r (%s); retrying without it", field, first)
        self.capabilities.mark_unsupported(field)
        reduced = {k: v for k, v in attempt.items() if k != field}
        try:
            return await write(reduced)
        except StoreError as retry_exc:
            raise retry_exc from first

    async def _refresh_view(self) -> None:
        try:
            await self._navigator.refresh()
        except QueryError:
            # The query controller already holds the error state for rendering.
            logger.warning("Refresh after write failed")

    # ---- operations ----

    async def create(self, draft: TaskDraft, owner: str | None) -> Task | None:
        """
        Insert a new task owned by `owner`, then go to the task list.

        Returns the stored task when the store echoes the inserted row.
        """
        if not owner:
            raise AuthRequiredError(AUTH_REQUIRED_MESSAGE)

        now = self._now()
        payload = {
            **self._draft_payload(draft),
            "user_id": owner,
            "created_at": now,
            "updated_at": now,
        }

        async def insert(record: Row) -> Row | None:
            return await self._store.insert(TASKS_TABLE, record)

        self.loading = True
        try:
            try:
                row = await self._write_with_fallback(insert, payload)
            except StoreError as exc:
                first = exc.__cause__ if isinstance(exc.__cause__, StoreError) else exc
                if not is_schema_shaped(first):
                    logger.error("Error saving task: %s", exc)
                    raise MutationError(str(exc) or SAVE_ERROR_MESSAGE) from exc

                logger.warning("Insert ladder exhausted (%s); trying minimal payload", exc)
                minimal = {"title": draft.title, "description": draft.description, "user_id": owner}
                try:
                    row = await insert(minimal)
                except StoreError as minimal_exc:
                    logger.error("Error saving task: %s", minimal_exc)
                    raise MutationError(str(minimal_exc) or SAVE_ERROR_MESSAGE) from minimal_exc
        finally:
            self.loading = False

        task = task_from_row(row) if row and row.get("id") is not None else None
        if task is not None:
            self._query.append_local(task)
            logger.info("Task created id=%s", task.id)
        else:
            logger.info("Task created (store returned no row)")

        self._navigator.go_to_task_list()
        await self._refresh_view()
        return task

    async def update(self, task_id: str, draft: TaskDraft) -> None:
        """Save the draft over task `task_id`, then go to its detail view."""
        payload = {**self._draft_payload(draft), "updated_at": self._now()}

        async def write(patch: Row) -> None:
            await self._store.update(TASKS_TABLE, patch, filters=[("id", task_id)])

        self.loading = True
        try:
            await self._write_with_fallback(write, payload)
        except StoreError as exc:
            logger.error("Error saving task id=%s: %s", task_id, exc)
            raise MutationError(str(exc) or SAVE_ERROR_MESSAGE) from exc
        finally:
            self.loading = False

        # Only columns the store accepted reach the local copy.
        written = self.capabilities.strip(payload)
        skipped = sorted(f for f in OPTIONAL_FIELDS if f in payload and f not in written)
        if skipped:
            logger.warning("Task id=%s saved without %s", task_id, ", ".join(skipped))

        self.divergent.pop(task_id, None)
        local = self._query.get_local(task_id)
        if local is not None:
            changes: dict[str, Any] = {
                "title": draft.title,
                "description": draft.description,
                "team_id": draft.team_id,
                "updated_at": self._clock(),
            }
            if "status" in written:
                changes["status"] = draft.status
            if "priority" in written:
                changes["priority"] = draft.priority
            if "due_date" in written:
                changes["due_date"] = draft.due_date
            self._query.replace_local(replace(local, **changes))
        logger.info("Task updated id=%s", task_id)

        self._navigator.go_to_task_detail(task_id)
        await self._refresh_view()

    async def delete(self, task_id: str) -> None:
        """
        Hard-delete a task.

        When the store refuses for a schema-shaped reason the task is hidden
        locally right away and, as a substitute, marked completed with a
        pending-deletion note. The local removal stays even if that fails.
        """
        self.loading = True
        try:
            await self._store.delete(TASKS_TABLE, filters=[("id", task_id)])
        except StoreError as exc:
            if not is_schema_shaped(exc):
                logger.error("Error deleting task id=%s: %s", task_id, exc)
                raise MutationError(f"Failed to delete task: {exc}") from exc

            logger.warning("Delete rejected id=%s (%s); hiding and marking completed", task_id, exc)
            removed = self._query.remove_local(task_id)
            try:
                await self._mark_pending_deletion(task_id, removed)
            except StoreError:
                logger.exception("Compensating update failed id=%s", task_id)
                self.divergent[task_id] = "deleted locally only"
                raise MutationError(f"Failed to delete task: {exc}") from exc
            self.divergent[task_id] = "delete pending, marked completed"
            return
        finally:
            self.loading = False

        self._query.remove_local(task_id)
        self.divergent.pop(task_id, None)
        logger.info("Task deleted id=%s", task_id)

    async def _mark_pending_deletion(self, task_id: str, task: Task | None) -> None:
        if task is None:
            try:
                task = await self._query.fetch_task(task_id)
            except QueryError:
                logger.warning("Could not read task id=%s before marking it", task_id)

        patch: dict[str, Any] = {
            "status": str(TaskStatus.COMPLETED),
            "updated_at": self._now(),
        }
        # Without the current description, leave it alone rather than overwrite it.
        if task is not None:
            description = task.description or ""
            if not description.startswith(PENDING_DELETION_PREFIX):
                description = f"{PENDING_DELETION_PREFIX} {description}".rstrip()
            patch["description"] = description

        await self._store.update(
            TASKS_TABLE, self.capabilities.strip(patch), filters=[("id", task_id)]
        )

    async def cycle_status(self, task: Task) -> Task:
        """
        Advance todo -> in_progress -> completed -> todo.

        Persists only the status column. If the store has no usable status
        column the new status is still applied locally and the task is flagged
        as divergent.
        """
        new_status = task.status.next()
        filters = [("id", task.id)]
        persisted = False

        self.loading = True
        try:
            if self.capabilities.supports("status"):
                try:
                    await self._store.update(TASKS_TABLE, {"status": str(new_status)}, filters=filters)
                    persisted = True
                except StoreError as exc:
                    if not is_schema_shaped(exc):
                        logger.error("Error updating status id=%s: %s", task.id, exc)
                        raise MutationError(f"Failed to update status: {exc}") from exc
                    if named_field(exc, ("status",)):
                        self.capabilities.mark_unsupported("status")
                    logger.warning("Status update rejected id=%s (%s)", task.id, exc)

            if not persisted:
                try:
                    await self._store.update(
                        TASKS_TABLE,
                        {"title": task.title, "description": task.description},
                        filters=filters,
                    )
                except StoreError:
                    logger.exception("Fallback update failed id=%s", task.id)
        finally:
            self.loading = False

        updated = replace(task, status=new_status, updated_at=self._clock())
        self._query.replace_local(updated)

        if persisted:
            self.divergent.pop(task.id, None)
        else:
            self.divergent[task.id] = "status not saved"
            logger.info("Status of task %s changed locally only -> %s", task.id, new_status)
        return updated
