# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Async client for the hosted store's REST (PostgREST) surface.

Tables are addressed as ``{rest_url}/{table}``; equality filters are sent
as ``column=eq.value`` query parameters and ordering as
``order=column.desc``. Every failure, transport or HTTP, is raised as
StoreError so callers handle a single exception type.

Example:
    client = PostgrestClient(
        rest_url="https://abc.supabase.co/rest/v1",
        api_key="anon-key",
    )
    rows = await client.select(
        "notifications",
        filters={"coach_id": coach_id, "is_read": False},
        order="created_at",
        descending=True,
    )
"""

import logging
from typing import TYPE_CHECKING, Any

import httpx

from lgscoach.core.exceptions import StoreError

if TYPE_CHECKING:
    from lgscoach.core.config.settings import Settings

logger = logging.getLogger(__name__)


def encode_filter(value: Any) -> str:
    """Encode a Python value as a PostgREST equality filter.

    Args:
        value: Filter value. None maps to ``is.null``.

    Returns:
        Filter expression string.
    """
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{'true' if value else 'false'}"
    if hasattr(value, "isoformat"):
        return f"eq.{value.isoformat()}"
    if hasattr(value, "value"):
        return f"eq.{value.value}"
    return f"eq.{value}"


class PostgrestClient:
    """Minimal async PostgREST client.

    Attributes:
        rest_url: Base REST URL, e.g. https://abc.supabase.co/rest/v1.
        schema: Database schema sent as the profile header.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        rest_url: str,
        api_key: str,
        schema: str = "public",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            rest_url: Base REST URL.
            api_key: API key sent as ``apikey`` and bearer token.
            schema: Database schema.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.rest_url = rest_url.rstrip("/")
        self.schema = schema
        self.timeout = timeout
        self._api_key = api_key
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "PostgrestClient":
        """Create a client from application settings.

        Args:
            settings: Application settings.
            transport: Optional httpx transport.

        Returns:
            Configured client.
        """
        return cls(
            rest_url=settings.supabase.rest_url,
            api_key=settings.supabase.anon_key.get_secret_value(),
            schema=settings.supabase.schema_name,
            timeout=settings.supabase.timeout,
            transport=transport,
        )

    def _get_headers(self, write: bool = False) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
            "Accept-Profile": self.schema,
        }
        if write:
            headers["Content-Type"] = "application/json"
            headers["Content-Profile"] = self.schema
            headers["Prefer"] = "return=representation"
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> list[dict[str, Any]]:
        url = f"{self.rest_url}/{table}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._get_headers(write=method != "GET"),
                )
        except httpx.HTTPError as e:
            raise StoreError(
                f"{method} {table} failed: {e}",
                details={"table": table},
            ) from e

        if response.status_code >= 400:
            logger.warning(
                "Store request %s %s failed (%d): %s",
                method,
                table,
                response.status_code,
                response.text,
            )
            raise StoreError(
                f"{method} {table} rejected",
                status_code=response.status_code,
                response_body=response.text,
            )

        if not response.content:
            return []
        data = response.json()
        if isinstance(data, dict):
            return [data]
        return data

    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        """Fetch rows matching equality filters.

        Args:
            table: Table name.
            filters: Column to value mapping, combined with AND.
            order: Column to order by.
            descending: Order direction.
            limit: Maximum number of rows.
            columns: Column selection expression.

        Returns:
            List of row dictionaries (possibly empty).

        Raises:
            StoreError: If the request fails.
        """
        params: dict[str, str] = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = encode_filter(value)
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)
        return await self._request("GET", table, params=params)

    async def select_one(
        self,
        table: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Fetch the first row matching filters, or None.

        Raises:
            StoreError: If the request fails.
        """
        rows = await self.select(table, filters=filters, limit=1)
        return rows[0] if rows else None

    async def insert(
        self,
        table: str,
        rows: dict[str, Any] | list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Insert one or more rows and return them as stored.

        Raises:
            StoreError: If the insert is rejected.
        """
        return await self._request("POST", table, json=rows)

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        filters: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Update rows matching filters and return the updated rows.

        Raises:
            StoreError: If the update is rejected.
        """
        params = {column: encode_filter(value) for column, value in filters.items()}
        return await self._request("PATCH", table, params=params, json=values)
