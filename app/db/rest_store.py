"""DataStore for a hosted PostgREST backend (Supabase-style REST API)."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic_core import to_jsonable_python

from app.db.store import DataStore, DataStoreError, Query, Row, UniqueViolationError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_CODE: str = "23505"


def _eq(value: Any) -> str:
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


class RestStore(DataStore):
    """Talks to `<base_url>/rest/v1/<table>` with the project API key.

    A fresh `httpx.AsyncClient` is opened per call (on `transport` when given),
    which keeps concurrent item fetches independent of each other.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("REST_URL is required for the rest data backend")
        self._base_url = base_url.rstrip("/") + "/rest/v1"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> list[Row]:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, f"/{table}", params=params, json=to_jsonable_python(json) if json is not None else None
                )
        except httpx.HTTPError as exc:
            raise DataStoreError(f"{method} {table} failed: {exc}", table=table) from exc

        if response.is_error:
            detail = _error_payload(response)
            logger.debug("REST %s %s -> %s %s", method, table, response.status_code, detail)
            if detail.get("code") == UNIQUE_VIOLATION_CODE:
                raise UniqueViolationError(str(detail.get("message") or response.text), table=table)
            raise DataStoreError(
                f"{method} {table} returned {response.status_code}: {detail.get('message') or response.text}",
                table=table,
            )
        if not response.content:
            return []
        payload = response.json()
        return payload if isinstance(payload, list) else [payload]

    async def select(self, query: Query) -> list[Row]:
        params: dict[str, str] = {"select": ",".join(query.columns)}
        for column, value in query.filters:
            params[column] = _eq(value)
        if query.order_by is not None:
            column, descending = query.order_by
            params["order"] = f"{column}.{'desc' if descending else 'asc'}"
        return await self._request("GET", query.table, params=params)

    async def insert(self, table: str, records: Iterable[Row]) -> list[Row]:
        return await self._request("POST", table, json=list(records), prefer="return=representation")

    async def update(self, table: str, patch: Row, filters: Row) -> list[Row]:
        params = {column: _eq(value) for column, value in filters.items()}
        return await self._request("PATCH", table, params=params, json=patch, prefer="return=representation")

    async def upsert(
        self,
        table: str,
        record: Row,
        *,
        on_conflict: str,
        update_columns: Iterable[str] | None = None,
    ) -> Row:
        # PostgREST merges every column present in the payload on conflict, so
        # update_columns cannot narrow the update here.
        rows = await self._request(
            "POST",
            table,
            params={"on_conflict": on_conflict},
            json=[record],
            prefer="resolution=merge-duplicates,return=representation",
        )
        if not rows:
            raise DataStoreError(f"Upsert into {table} returned no rows", table=table)
        return rows[0]


def _error_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
