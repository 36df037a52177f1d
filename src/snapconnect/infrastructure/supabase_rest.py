"""Async adapter for the hosted relational API (PostgREST) and RPC calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

import httpx

from ..exceptions import RestError

logger = logging.getLogger(__name__)

# (column, operator, value), rendered as ``column=operator.value``.
Filter = tuple[str, str, str]


def eq(column: str, value: object) -> Filter:
    return (column, "eq", str(value))


def like(column: str, pattern: str) -> Filter:
    return (column, "like", pattern)


def gt(column: str, value: object) -> Filter:
    return (column, "gt", str(value))


def is_not_null(column: str) -> Filter:
    return (column, "not.is", "null")


def in_list(column: str, values: Iterable[object]) -> Filter:
    joined = ",".join(str(value) for value in values)
    return (column, "in", f"({joined})")


@dataclass(slots=True)
class SupabaseRest:
    """Thin PostgREST client returning plain row dictionaries."""

    http: httpx.AsyncClient
    base_url: str
    api_key: str
    log: logging.Logger = field(default_factory=lambda: logger)

    @property
    def _rest_root(self) -> str:
        return f"{self.base_url.rstrip('/')}/rest/v1"

    def _headers(self, *, representation: bool = False) -> dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if representation:
            headers["Prefer"] = "return=representation"
        return headers

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params = [("select", columns), *_render_filters(filters)]
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))
        response = await self._send("GET", table, params=params)
        return list(response or [])

    async def insert(
        self, table: str, rows: Mapping[str, Any] | Sequence[Mapping[str, Any]]
    ) -> list[dict[str, Any]]:
        payload = [dict(rows)] if isinstance(rows, Mapping) else [dict(row) for row in rows]
        response = await self._send("POST", table, json=payload, representation=True)
        return list(response or [])

    async def update(
        self, table: str, values: Mapping[str, Any], *, filters: Sequence[Filter]
    ) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("update requires at least one filter")
        response = await self._send(
            "PATCH",
            table,
            params=_render_filters(filters),
            json=dict(values),
            representation=True,
        )
        return list(response or [])

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("delete requires at least one filter")
        response = await self._send(
            "DELETE", table, params=_render_filters(filters), representation=True
        )
        return list(response or [])

    async def rpc(self, function: str, params: Mapping[str, Any] | None = None) -> Any:
        url = f"{self._rest_root}/rpc/{function}"
        try:
            response = await self.http.post(url, headers=self._headers(), json=dict(params or {}))
        except httpx.HTTPError as exc:
            raise RestError(f"RPC {function} failed: {exc}") from exc
        return _json_or_raise(response, operation=f"rpc {function}")

    async def _send(
        self,
        method: str,
        table: str,
        *,
        params: Sequence[tuple[str, str]] = (),
        json: Any = None,
        representation: bool = False,
    ) -> Any:
        url = f"{self._rest_root}/{table}"
        try:
            response = await self.http.request(
                method,
                url,
                params=list(params),
                headers=self._headers(representation=representation),
                json=json,
            )
        except httpx.HTTPError as exc:
            raise RestError(f"{method} {table} failed: {exc}") from exc
        return _json_or_raise(response, operation=f"{method} {table}")


def _render_filters(filters: Sequence[Filter]) -> list[tuple[str, str]]:
    return [(column, f"{operator}.{value}") for column, operator, value in filters]


def _json_or_raise(response: httpx.Response, *, operation: str) -> Any:
    if response.status_code >= 400:
        try:
            data = response.json()
            detail = data.get("message") if isinstance(data, dict) else str(data)
        except ValueError:
            detail = response.text[:200]
        raise RestError(
            f"{operation} failed: {detail or response.status_code}",
            status_code=response.status_code,
        )
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise RestError(f"{operation} returned invalid JSON") from exc


__all__ = [
    "Filter",
    "SupabaseRest",
    "eq",
    "gt",
    "in_list",
    "is_not_null",
    "like",
]
