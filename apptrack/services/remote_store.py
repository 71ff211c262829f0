"""Remote store: PostgREST (Supabase) table client over httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from apptrack.config import settings
from apptrack.errors import RemoteUnavailableError

logger = logging.getLogger(__name__)


def create_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Build the shared HTTP client for the REST endpoint.

    The anon key travels as ``apikey`` on every request; the per-user bearer
    token is attached by RemoteStore.
    """
    return httpx.AsyncClient(
        base_url=settings.rest_url,
        headers={"apikey": settings.supabase_anon_key},
        timeout=settings.remote_timeout,
        transport=transport,
    )


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _filter_params(filters: dict[str, Any] | None) -> dict[str, str]:
    params: dict[str, str] = {}
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set)):
            joined = ",".join(_format_value(v) for v in value)
            params[column] = f"in.({joined})"
        elif value is None:
            params[column] = "is.null"
        else:
            params[column] = f"eq.{_format_value(value)}"
    return params


class RemoteStore:
    """Row-level CRUD against one PostgREST endpoint.

    Every failure (transport error or HTTP status >= 400) surfaces as
    RemoteUnavailableError; callers decide whether to degrade.
    """

    def __init__(self, client: httpx.AsyncClient, access_token: str | None = None) -> None:
        self._client = client
        self._access_token = access_token

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        token = self._access_token or settings.supabase_anon_key
        headers = {"Authorization": f"Bearer {token}"}
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        try:
            response = await self._client.request(
                method,
                f"/{table}",
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        except httpx.HTTPError as e:
            logger.warning("Remote %s /%s failed: %s", method, table, e)
            raise RemoteUnavailableError(f"{method} /{table} failed: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                "Remote %s /%s returned %d: %s",
                method, table, response.status_code, response.text[:200],
            )
            raise RemoteUnavailableError(
                f"{method} /{table} returned {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as e:
            raise RemoteUnavailableError(f"{method} /{table} returned invalid JSON") from e

    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        """Fetch rows. ``order`` uses PostgREST syntax, e.g. ``created_at.desc``."""
        params = {"select": columns, **_filter_params(filters)}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        return await self._request("GET", table, params=params)

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", table, json=row, prefer="return=representation")
        return data[0] if data else row

    async def update(
        self, table: str, row: dict[str, Any], filters: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Patch matching rows, returning the updated representations."""
        return await self._request(
            "PATCH",
            table,
            params=_filter_params(filters),
            json=row,
            prefer="return=representation",
        )

    async def delete(self, table: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        return await self._request(
            "DELETE",
            table,
            params=_filter_params(filters),
            prefer="return=representation",
        )
