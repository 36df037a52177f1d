"""Async adapter for the hosted object store (Supabase Storage API)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence
from urllib.parse import quote

import httpx

from ..exceptions import StorageError
from .media_storage import DEFAULT_CACHE_CONTROL, MediaStorage, StorageObject

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SupabaseStorage(MediaStorage):
    """Upload, list, remove and build public URLs for one storage bucket."""

    http: httpx.AsyncClient
    base_url: str
    api_key: str
    bucket: str = "media"
    log: logging.Logger = field(default_factory=lambda: logger)

    @property
    def _storage_root(self) -> str:
        return f"{self.base_url.rstrip('/')}/storage/v1"

    def _headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def upload(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str = "image/jpeg",
        cache_control: str = DEFAULT_CACHE_CONTROL,
        upsert: bool = False,
        raw: bool = False,
    ) -> dict[str, Any]:
        """Upload ``data`` under ``path``.

        ``raw=False`` sends a structured multipart body the way the JS client
        sends a Blob; ``raw=True`` posts the bytes as the request body.
        """
        url = f"{self._storage_root}/object/{self.bucket}/{quote(path, safe='/')}"
        headers = self._headers({"x-upsert": "true" if upsert else "false"})
        try:
            if raw:
                headers["Content-Type"] = content_type
                headers["cache-control"] = f"max-age={cache_control}"
                response = await self.http.post(url, headers=headers, content=data)
            else:
                response = await self.http.post(
                    url,
                    headers=headers,
                    data={"cacheControl": cache_control},
                    files={"file": (path.rsplit("/", 1)[-1], data, content_type)},
                )
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage upload failed: {exc}") from exc
        payload = self._json_or_raise(response, operation="upload")
        self.log.debug(
            "storage.upload.done",
            extra={"path": path, "bytes": len(data), "raw": raw},
        )
        return payload if isinstance(payload, dict) else {"Key": f"{self.bucket}/{path}"}

    async def list(
        self,
        prefix: str = "",
        *,
        limit: int = 100,
        offset: int = 0,
        sort_by: Mapping[str, str] | None = None,
    ) -> list[StorageObject]:
        """List one level of objects and folders under ``prefix``."""
        url = f"{self._storage_root}/object/list/{self.bucket}"
        body = {
            "prefix": prefix,
            "limit": limit,
            "offset": offset,
            "sortBy": dict(sort_by or {"column": "name", "order": "asc"}),
        }
        try:
            response = await self.http.post(url, headers=self._headers(), json=body)
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage list failed: {exc}") from exc
        entries = self._json_or_raise(response, operation="list") or []
        return [StorageObject.from_listing(entry, prefix=prefix) for entry in entries]

    async def remove(self, paths: Sequence[str]) -> list[dict[str, Any]]:
        """Remove objects by full path; returns the deleted entries."""
        if not paths:
            return []
        url = f"{self._storage_root}/object/{self.bucket}"
        try:
            response = await self.http.request(
                "DELETE",
                url,
                headers=self._headers(),
                json={"prefixes": list(paths)},
            )
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage remove failed: {exc}") from exc
        removed = self._json_or_raise(response, operation="remove") or []
        self.log.info("storage.remove.done", extra={"requested": len(paths), "removed": len(removed)})
        return list(removed)

    def get_public_url(self, path: str) -> str:
        """Return the canonical public URL for ``path`` (no network call)."""
        clean = path.lstrip("/")
        return f"{self._storage_root}/object/public/{self.bucket}/{quote(clean, safe='/')}"

    @staticmethod
    def _json_or_raise(response: httpx.Response, *, operation: str) -> Any:
        if response.status_code >= 400:
            raise StorageError(
                f"Storage {operation} failed: {_error_message(response)}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StorageError(f"Storage {operation} returned invalid JSON") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data)
    return str(data)


__all__ = ["SupabaseStorage"]
