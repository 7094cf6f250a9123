# src/tasklane/core/errors.py

"""Error taxonomy shared by stores, controllers and connectors."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any


class StoreError(Exception):
    """
    Failure reported by a data store.

    Only `message` is relied upon by the controllers: when it names a column,
    the failure is treated as schema-shaped (see `named_field`).
    """

    def __init__(self, message: str, *, code: str | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} (code={self.code})"
        return self.message


class TasklaneError(Exception):
    """Base class for errors surfaced by the task controllers."""


class QueryError(TasklaneError):
    """A read against the task collection failed outright."""


class MutationError(TasklaneError):
    """A write failed (non-schema reason, or every fallback tier failed)."""


class AuthRequiredError(MutationError):
    """A mutation was attempted without an authenticated owner."""


def named_field(exc: BaseException, fields: Iterable[str]) -> str | None:
    """
    Return the first of `fields` (in the given order) named in the error message.

    A field counts when it appears in the message without letters or digits
    glued to it, so "tasks_priority_check" and "task_status" name priority and
    status while "prioritys" does not. Transport errors (code="network") never
    name a field.
    """
    if isinstance(exc, StoreError):
        if exc.code == "network":
            return None
        text = exc.message
    else:
        text = str(exc)
    if not text:
        return None
    for field in fields:
        if re.search(rf"(?<![A-Za-z0-9]){re.escape(field)}(?![A-Za-z0-9])", text):
            return field
    return None
