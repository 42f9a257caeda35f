from __future__ import annotations

import logging
from typing import Any

import httpx

from lesson_booking.application.exceptions import RemoteWriteError


def in_filter(values: list[str]) -> str:
    return "in.(" + ",".join(values) + ")"


class PostgrestClient:
    """Thin Supabase REST (PostgREST) client. Filters use PostgREST syntax, e.g. {"id": "eq.42"}."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not service_key:
            raise ValueError("SUPABASE_SERVICE_KEY is required for the Supabase store")
        self._base_url = base_url.rstrip("/") + "/rest/v1"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self._client = client or httpx.Client(timeout=timeout)
        self._logger = logging.getLogger(__name__)

    def select(
        self,
        table: str,
        filters: dict[str, str] | None = None,
        columns: str = "*",
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, str] = {"select": columns, **(filters or {})}
        if order:
            params["order"] = order
        return self._request("GET", table, params=params)

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        rows = self._request("POST", table, json=row, prefer="return=representation")
        if not rows:
            raise RemoteWriteError(f"Insert into {table} returned no row")
        return rows[0]

    def update(self, table: str, filters: dict[str, str], values: dict[str, Any]) -> list[dict[str, Any]]:
        """PATCH matching rows. An empty list means no row matched the filters."""
        return self._request("PATCH", table, params=filters, json=values, prefer="return=representation")

    def delete(self, table: str, filters: dict[str, str]) -> list[dict[str, Any]]:
        return self._request("DELETE", table, params=filters, prefer="return=representation")

    def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        prefer: str | None = None,
    ) -> list[dict[str, Any]]:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        url = f"{self._base_url}/{table}"
        try:
            resp = self._client.request(method, url, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            self._logger.error(
                "Supabase request failed",
                extra={"method": method, "table": table, "error": str(e)},
            )
            raise RemoteWriteError(f"{method} {table} failed: {e}") from e

        if resp.status_code >= 400:
            try:
                data = resp.json()
                error_message = data.get("message") if isinstance(data, dict) else resp.text
            except ValueError:
                error_message = resp.text
            self._logger.error(
                "Supabase request rejected",
                extra={
                    "method": method,
                    "table": table,
                    "status": resp.status_code,
                    "error_message": error_message,
                },
            )
            raise RemoteWriteError(f"{method} {table} failed with {resp.status_code}: {error_message}")

        if resp.status_code == 204 or not resp.content:
            return []
        data = resp.json()
        if isinstance(data, dict):
            return [data]
        return list(data)
