# src/tasklane/stores/sqlite_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
import sqlite3
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..core.errors import StoreError
from ..core.ports import Filters, Order, Row
from ..tasks.task_models import CurrentUser

logger = logging.getLogger(__name__)

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Optional task columns: created unless listed in omit_columns.
OPTIONAL_TASK_COLUMNS: dict[str, str] = {
    "status": "TEXT NOT NULL DEFAULT 'todo'",
    "priority": "TEXT NOT NULL DEFAULT 'medium'",
    "due_date": "TEXT",
}


def _ident(name: str) -> str:
    # Identifiers are interpolated unquoted: SQLite treats an unknown
    # double-quoted identifier as a string literal instead of failing.
    if not _IDENT.match(name):
        raise StoreError(f"invalid identifier: {name!r}", code="invalid_identifier")
    return name


class SqliteDataStore:
    """
    Local SQLite implementation of the DataStore port.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    `omit_columns` leaves optional task columns out on purpose, which mimics a
    deployment whose migrations were never fully applied.

    Thread-safety:
    - each call opens its own SQLite connection inside a worker thread
    """

    def __init__(
        self,
        db_path: str | Path = "tasks.sqlite3",
        *,
        omit_columns: Iterable[str] = (),
        user: CurrentUser | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._omit = {c for c in omit_columns if c in OPTIONAL_TASK_COLUMNS}
        self.user = user
        self._ensure_schema()
        logger.info("SqliteDataStore ready db=%s omit=%s", self._db_path, sorted(self._omit))

    async def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT,
                    user_id TEXT,
                    team_id TEXT,
                    created_at TEXT,
                    updated_at TEXT
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    id TEXT PRIMARY KEY,
                    email TEXT,
                    full_name TEXT,
                    avatar_url TEXT,
                    created_at TEXT,
                    updated_at TEXT
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            for name, decl in OPTIONAL_TASK_COLUMNS.items():
                if name in cols or name in self._omit:
                    continue
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("SqliteDataStore migration: added column tasks.%s", name)

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id)")
            conn.commit()
        finally:
            conn.close()

    def _columns(self, conn: sqlite3.Connection, table: str) -> set[str]:
        cur = conn.execute(f"PRAGMA table_info({_ident(table)})")
        return {row["name"] for row in cur.fetchall()}

    @staticmethod
    def _where(filters: Filters | None) -> tuple[str, list[Any]]:
        if not filters:
            return "", []
        clauses = [f"{_ident(col)} = ?" for col, _ in filters]
        return " WHERE " + " AND ".join(clauses), [v for _, v in filters]

    async def _run(self, fn, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as exc:
            raise StoreError(str(exc), code=type(exc).__name__) from exc

    # ---- sync implementations ----

    def _select_sync(
        self, table: str, filters: Filters | None, order: Order | None, limit: int | None
    ) -> list[Row]:
        where, params = self._where(filters)
        sql = f"SELECT * FROM {_ident(table)}{where}"
        if order is not None:
            column, ascending = order
            sql += f" ORDER BY {_ident(column)} {'ASC' if ascending else 'DESC'}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        conn = self._get_conn()
        try:
            return [dict(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def _insert_sync(self, table: str, record: Row) -> Row | None:
        conn = self._get_conn()
        try:
            cols = self._columns(conn, table)
            values = dict(record)
            if "id" not in values or values["id"] is None:
                values["id"] = str(uuid.uuid4())
            # Server-side defaults, like a hosted Postgres table would have.
            now = datetime.now(UTC).isoformat()
            for ts in ("created_at", "updated_at"):
                if ts in cols and ts not in values:
                    values[ts] = now

            names = [_ident(k) for k in values]
            placeholders = ", ".join("?" for _ in names)
            conn.execute(
                f"INSERT INTO {_ident(table)} ({', '.join(names)}) VALUES ({placeholders})",
                list(values.values()),
            )
            conn.commit()

            row = conn.execute(
                f"SELECT * FROM {_ident(table)} WHERE id = ?", (values["id"],)
            ).fetchone()
            logger.debug("Inserted into %s id=%s", table, values["id"])
            return dict(row) if row else None
        finally:
            conn.close()

    def _update_sync(self, table: str, patch: Row, filters: Filters) -> None:
        if not patch:
            return
        sets = ", ".join(f"{_ident(k)} = ?" for k in patch)
        where, params = self._where(filters)
        conn = self._get_conn()
        try:
            conn.execute(f"UPDATE {_ident(table)} SET {sets}{where}", [*patch.values(), *params])
            conn.commit()
        finally:
            conn.close()

    def _delete_sync(self, table: str, filters: Filters) -> None:
        where, params = self._where(filters)
        conn = self._get_conn()
        try:
            conn.execute(f"DELETE FROM {_ident(table)}{where}", params)
            conn.commit()
        finally:
            conn.close()

    # ---- public API (DataStore port) ----

    async def select(
        self,
        table: str,
        *,
        filters: Filters | None = None,
        order: Order | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        return await self._run(self._select_sync, table, filters, order, limit)

    async def insert(self, table: str, record: Row) -> Row | None:
        return await self._run(self._insert_sync, table, record)

    async def update(self, table: str, patch: Row, *, filters: Filters) -> None:
        if not filters:
            raise StoreError("refusing to update without filters", code="missing_filter")
        await self._run(self._update_sync, table, patch, filters)

    async def delete(self, table: str, *, filters: Filters) -> None:
        if not filters:
            raise StoreError("refusing to delete without filters", code="missing_filter")
        await self._run(self._delete_sync, table, filters)

    async def get_current_user(self) -> CurrentUser | None:
        return self.user
