# src/tasklane/stores/rest_store.py

"""Hosted backend client (Supabase-compatible PostgREST + GoTrue auth).

Implements the DataStore port over HTTP:
- tables:  {base_url}/rest/v1/{table}
- filters: ?col=eq.value
- order:   ?order=col.asc | col.desc
- auth:    GET {base_url}/auth/v1/user with the user's access token

PostgREST error bodies look like {"message", "code", "details", "hint"}; the
message names the offending column for schema errors, e.g.
'Could not find the 'priority' column of 'tasks' in the schema cache'.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import StoreError
from ..core.ports import Filters, Order, Row
from ..tasks.task_models import CurrentUser

logger = logging.getLogger(__name__)

_TIMEOUT = 15.0


def _filter_value(value: Any) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


class RestDataStore:
    """Async client for a PostgREST/Supabase project.

    Usage:
        store = RestDataStore(url, anon_key, access_token=token)
        rows = await store.select("tasks", filters=[("status", "todo")], order=("title", True))
        await store.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: str | None = None,
        timeout: float = _TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        if not api_key:
            raise ValueError("api_key is required")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._access_token = access_token
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token or self._api_key}",
            "Accept": "application/json",
        }
        headers.update(extra)
        return headers

    def _table_url(self, table: str) -> str:
        return f"{self._base_url}/rest/v1/{table}"

    @staticmethod
    def _params(filters: Filters | None) -> list[tuple[str, str]]:
        return [(col, _filter_value(v)) for col, v in (filters or [])]

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.debug("%s %s transport failure: %s", method, url, exc)
            raise StoreError(f"network error: {exc}", code="network") from exc

        if resp.is_error:
            raise self._error_from(resp)
        return resp

    @staticmethod
    def _error_from(resp: httpx.Response) -> StoreError:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = str(body.get("message") or body.get("msg") or body.get("error") or resp.reason_phrase)
            code = body.get("code")
            details = {k: body.get(k) for k in ("details", "hint") if body.get(k)}
        else:
            message = resp.text or resp.reason_phrase
            code = None
            details = None
        return StoreError(message, code=str(code) if code else str(resp.status_code), details=details)

    # ---- DataStore port ----

    async def select(
        self,
        table: str,
        *,
        filters: Filters | None = None,
        order: Order | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        params = [("select", "*"), *self._params(filters)]
        if order is not None:
            column, ascending = order
            params.append(("order", f"{column}.{'asc' if ascending else 'desc'}"))
        if limit is not None:
            params.append(("limit", str(int(limit))))

        resp = await self._request("GET", self._table_url(table), params=params, headers=self._headers())
        data = resp.json()
        return data if isinstance(data, list) else []

    async def insert(self, table: str, record: Row) -> Row | None:
        resp = await self._request(
            "POST",
            self._table_url(table),
            json=record,
            headers=self._headers(Prefer="return=representation"),
        )
        if not resp.content:
            return None
        data = resp.json()
        if isinstance(data, list):
            return data[0] if data else None
        return data if isinstance(data, dict) else None

    async def update(self, table: str, patch: Row, *, filters: Filters) -> None:
        if not filters:
            raise StoreError("refusing to update without filters", code="missing_filter")
        await self._request(
            "PATCH",
            self._table_url(table),
            params=self._params(filters),
            json=patch,
            headers=self._headers(Prefer="return=minimal"),
        )

    async def delete(self, table: str, *, filters: Filters) -> None:
        if not filters:
            raise StoreError("refusing to delete without filters", code="missing_filter")
        await self._request(
            "DELETE",
            self._table_url(table),
            params=self._params(filters),
            headers=self._headers(Prefer="return=minimal"),
        )

    async def get_current_user(self) -> CurrentUser | None:
        if not self._access_token:
            return None
        try:
            resp = await self._request("GET", f"{self._base_url}/auth/v1/user", headers=self._headers())
        except StoreError as exc:
            if exc.code in {"401", "403"}:
                logger.info("Access token rejected; treating as signed out")
                return None
            raise
        data = resp.json()
        if not isinstance(data, dict) or not data.get("id"):
            return None
        return CurrentUser(
            id=str(data["id"]),
            email=data.get("email"),
            metadata=dict(data.get("user_metadata") or {}),
        )
