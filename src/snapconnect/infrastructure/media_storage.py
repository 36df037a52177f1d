"""Abstraction over the remote object store used by the media pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

DEFAULT_CACHE_CONTROL = "3600"


@dataclass(slots=True)
class StorageObject:
    """Single entry returned by a bucket listing."""

    name: str
    path: str
    size: int | None = None
    mime_type: str | None = None
    created_at: str | None = None
    is_folder: bool = False

    @classmethod
    def from_listing(cls, entry: Mapping[str, Any], *, prefix: str = "") -> "StorageObject":
        name = str(entry.get("name") or "")
        metadata = entry.get("metadata") or {}
        raw_size = metadata.get("size") if isinstance(metadata, Mapping) else None
        if raw_size is None:
            raw_size = entry.get("size")
        size = _parse_size(raw_size)
        path = f"{prefix.strip('/')}/{name}" if prefix.strip("/") else name
        return cls(
            name=name,
            path=path,
            size=size,
            mime_type=metadata.get("mimetype") if isinstance(metadata, Mapping) else None,
            created_at=entry.get("created_at"),
            is_folder=entry.get("id") is None and not metadata,
        )

    @property
    def extension(self) -> str:
        if "." not in self.name:
            return ""
        return self.name.rsplit(".", 1)[-1].lower()


def _parse_size(raw: Any) -> int | None:
    """Return the listed byte size, or ``None`` when the backend reports junk."""

    if raw is None or isinstance(raw, bool):
        return None
    try:
        size = int(raw)
    except (TypeError, ValueError):
        return None
    return size if size >= 0 else None


class MediaStorage:
    """Object store API consumed by uploaders, resolvers and repair tools.

    :class:`~snapconnect.infrastructure.supabase_storage.SupabaseStorage`
    satisfies this contract; tests substitute in-memory fakes.
    """

    bucket: str

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
        """Store ``data`` under ``path``; ``raw`` selects the byte-body encoding."""

        raise NotImplementedError

    async def list(
        self,
        prefix: str = "",
        *,
        limit: int = 100,
        offset: int = 0,
        sort_by: Mapping[str, str] | None = None,
    ) -> list[StorageObject]:
        """List one level below ``prefix``."""

        raise NotImplementedError

    async def remove(self, paths: Sequence[str]) -> list[dict[str, Any]]:
        """Delete objects and return the entries the store reports as removed."""

        raise NotImplementedError

    def get_public_url(self, path: str) -> str:
        """Return the canonical public URL for ``path``."""

        raise NotImplementedError
