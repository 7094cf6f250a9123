# src/tasklane/tasks/capabilities.py

"""
Schema capability memo for the tasks table.

Some deployments run without the optional columns (status, priority, due_date).
Instead of rediscovering that on every write, the first schema-shaped rejection
(or an explicit probe) records the column here and later payloads omit it.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.errors import StoreError
from ..core.ports import DataStore

logger = logging.getLogger(__name__)

TASKS_TABLE = "tasks"

OPTIONAL_FIELDS: tuple[str, ...] = ("priority", "status", "due_date")
# Also the fixed order in which the write fallback ladder looks for a rejected field.


class FieldCapabilities:
    def __init__(self) -> None:
        self._unsupported: set[str] = set()
        self.probed = False

    @property
    def unsupported(self) -> frozenset[str]:
        return frozenset(self._unsupported)

    def supports(self, field: str) -> bool:
        return field not in self._unsupported

    def mark_unsupported(self, field: str) -> None:
        if field not in self._unsupported:
            logger.info("Store rejected column %r; omitting it from later writes", field)
            self._unsupported.add(field)

    def strip(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Copy of payload without the fields known to be unsupported."""
        return {k: v for k, v in payload.items() if k not in self._unsupported}

    async def probe(self, store: DataStore) -> bool:
        """
        Learn which optional columns exist from one sample row.

        Returns False (and learns nothing) when the table is empty or the read
        fails; an empty table carries no column information over PostgREST.
        """
        try:
            rows = await store.select(TASKS_TABLE, limit=1)
        except StoreError:
            logger.warning("Schema probe failed; falling back to learning from rejections", exc_info=True)
            return False
        if not rows:
            logger.debug("Schema probe skipped: tasks table is empty")
            return False

        sample = rows[0]
        for field in OPTIONAL_FIELDS:
            if field not in sample:
                self.mark_unsupported(field)
        self.probed = True
        logger.info("Schema probe done unsupported=%s", sorted(self._unsupported))
        return True
