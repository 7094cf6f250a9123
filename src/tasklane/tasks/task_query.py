# src/tasklane/tasks/task_query.py

"""
Task list query controller.

Owns the filter/sort selection and the in-memory task list shown to the user.
Every selection change re-runs the read; nothing is cached across filters.
"""

from __future__ import annotations

import logging

from ..core.errors import QueryError, StoreError, named_field
from ..core.ports import DataStore, Row
from .capabilities import TASKS_TABLE
from .task_models import (
    ALL,
    FilterState,
    SortDirection,
    SortField,
    Task,
    TaskPriority,
    TaskStatus,
    task_from_row,
)

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load tasks. Please try again later."


class TaskQueryController:
    def __init__(self, store: DataStore, *, filter_state: FilterState | None = None) -> None:
        self._store = store
        self.filter = filter_state or FilterState()
        self.tasks: list[Task] = []
        self.error: str | None = None
        self.loading = False
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    # ---- reads ----

    async def refresh(self, filter_state: FilterState | None = None) -> list[Task]:
        """
        Re-run the list query for the given (or current) filter.

        Concurrent refreshes are ordered by generation: only the most recently
        issued one may replace `tasks` / `error`; older results are dropped.
        Raises QueryError when the read fails.
        """
        if filter_state is not None:
            self.filter = filter_state
        current = FilterState(
            status=self.filter.status,
            priority=self.filter.priority,
            sort_field=self.filter.sort_field,
            sort_direction=self.filter.sort_direction,
        )

        self._generation += 1
        generation = self._generation
        self.loading = True

        try:
            try:
                rows = await self._select_sorted(current)
            except StoreError as exc:
                logger.error("Error fetching tasks generation=%s: %s", generation, exc)
                if generation == self._generation:
                    self.tasks = []
                    self.error = LOAD_ERROR_MESSAGE
                raise QueryError(LOAD_ERROR_MESSAGE) from exc

            tasks = [task_from_row(r) for r in rows]

            if generation != self._generation:
                logger.debug(
                    "Discarding stale task list generation=%s latest=%s", generation, self._generation
                )
                return tasks

            self.tasks = tasks
            self.error = None
            logger.debug("Loaded %d tasks filter=%s", len(tasks), current)
            return tasks
        finally:
            # A newer refresh still in flight owns the flag.
            if generation == self._generation:
                self.loading = False

    async def _select_sorted(self, f: FilterState) -> list[Row]:
        ascending = f.sort_direction is SortDirection.ASC
        sort_column = str(f.sort_field)
        try:
            return await self._store.select(
                TASKS_TABLE, filters=f.predicates(), order=(sort_column, ascending)
            )
        except StoreError as exc:
            if named_field(exc, (sort_column,)) is None:
                raise
            logger.warning("Sort column %s rejected by store; ordering by id instead", sort_column)

        return await self._store.select(TASKS_TABLE, filters=f.predicates(), order=("id", ascending))

    async def fetch_task(self, task_id: str) -> Task | None:
        """Single task for the detail / edit views. None when it does not exist."""
        try:
            rows = await self._store.select(TASKS_TABLE, filters=[("id", task_id)], limit=1)
        except StoreError as exc:
            logger.error("Error fetching task id=%s: %s", task_id, exc)
            raise QueryError(f"Failed to load task {task_id}.") from exc
        return task_from_row(rows[0]) if rows else None

    # ---- selection changes (each one triggers a refresh) ----

    async def set_status_filter(self, value: TaskStatus | str) -> list[Task]:
        self.filter.status = ALL if value == ALL else TaskStatus(value)
        return await self.refresh()

    async def set_priority_filter(self, value: TaskPriority | str) -> list[Task]:
        self.filter.priority = ALL if value == ALL else TaskPriority(value)
        return await self.refresh()

    async def select_sort_field(self, value: SortField | str) -> list[Task]:
        """Re-selecting the current field flips the direction; a new field starts ascending."""
        field = SortField(value)
        if field == self.filter.sort_field:
            self.filter.sort_direction = self.filter.sort_direction.flipped()
        else:
            self.filter.sort_field = field
            self.filter.sort_direction = SortDirection.ASC
        return await self.refresh()

    async def set_sort_direction(self, value: SortDirection | str) -> list[Task]:
        self.filter.sort_direction = SortDirection(value)
        return await self.refresh()

    # ---- local patches (used by the mutation controller) ----

    def get_local(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def append_local(self, task: Task) -> None:
        self.tasks.append(task)

    def replace_local(self, task: Task) -> bool:
        for i, t in enumerate(self.tasks):
            if t.id == task.id:
                self.tasks[i] = task
                return True
        return False

    def remove_local(self, task_id: str) -> Task | None:
        for i, t in enumerate(self.tasks):
            if t.id == task_id:
                return self.tasks.pop(i)
        return None
