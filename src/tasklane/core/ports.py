# src/tasklane/core/ports.py

"""
Ports (interfaces) used by the core.

The controllers depend on Protocols instead of concrete implementations.
This keeps the backend (local SQLite, hosted REST) and the front-end swappable
and makes testing easier.
"""

from __future__ import annotations

from typing import Any, Protocol

from ..tasks.task_models import CurrentUser

Row = dict[str, Any]
# One record as returned by the store: column name -> JSON-compatible value.

Filters = list[tuple[str, Any]]
# Equality predicates, AND-ed together: [("status", "todo"), ("id", "...")].

Order = tuple[str, bool]
# (column, ascending)


class DataStore(Protocol):
    """
    Data-access contract of the remote store.

    Every method raises StoreError on failure. The error message may name the
    offending column; that is the only structured information callers rely on.
    """

    async def select(
            self,
            table: str,
            *,
            filters: Filters | None = None,
            order: Order | None = None,
            limit: int | None = None,
    ) -> list[Row]: ...

    async def insert(self, table: str, record: Row) -> Row | None: ...

    async def update(self, table: str, patch: Row, *, filters: Filters) -> None: ...

    async def delete(self, table: str, *, filters: Filters) -> None: ...

    async def get_current_user(self) -> CurrentUser | None: ...

    async def close(self) -> None: ...


class Navigator(Protocol):
    """
    Front-end side port: where to go after a successful write.

    Routes are abstract; the front-end decides how to render them.
    """

    def go_to_task_list(self) -> None: ...

    def go_to_task_detail(self, task_id: str) -> None: ...

    async def refresh(self) -> None: ...
