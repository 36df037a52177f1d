"""In-memory test doubles for the object store, device files and repositories."""

from __future__ import annotations

import base64
from dataclasses import replace
from typing import Any, Mapping, Sequence
from urllib.parse import quote

from snapconnect.exceptions import StorageError
from snapconnect.infrastructure.media_storage import MediaStorage, StorageObject
from snapconnect.media.blob_materializer import LocalFileInfo
from snapconnect.media.media_models import (
    LOCAL_FILE_SCHEME,
    MemoryRecord,
    MessageRecord,
    StoryRecord,
)

SUPABASE_URL = "https://x.supabase.co"


class InMemoryStorage(MediaStorage):
    """Bucket keeping objects in a dict and recording every call."""

    def __init__(
        self,
        *,
        bucket: str = "media",
        base_url: str = SUPABASE_URL,
        zero_size_for_structured: bool = False,
    ) -> None:
        self.bucket = bucket
        self.base_url = base_url
        self.zero_size_for_structured = zero_size_for_structured
        self.objects: dict[str, bytes] = {}
        self.reported_sizes: dict[str, int | None] = {}
        self.upload_calls: list[dict[str, Any]] = []
        self.list_calls: list[str] = []
        self.remove_calls: list[list[str]] = []
        self.upload_error: StorageError | None = None
        self.list_error: StorageError | None = None
        self.failing_prefixes: set[str] = set()

    def put(self, path: str, data: bytes = b"", *, reported_size: int | None | str = "actual") -> None:
        self.objects[path] = data
        if reported_size != "actual":
            self.reported_sizes[path] = reported_size  # type: ignore[assignment]

    async def upload(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str = "image/jpeg",
        cache_control: str = "3600",
        upsert: bool = False,
        raw: bool = False,
    ) -> dict[str, Any]:
        self.upload_calls.append(
            {"path": path, "bytes": len(data), "raw": raw, "content_type": content_type, "upsert": upsert}
        )
        if self.upload_error is not None:
            raise self.upload_error
        if path in self.objects and not upsert:
            raise StorageError("The resource already exists", status_code=409)
        self.objects[path] = data
        if self.zero_size_for_structured and not raw:
            self.reported_sizes[path] = 0
        else:
            self.reported_sizes.pop(path, None)
        return {"Key": f"{self.bucket}/{path}"}

    async def list(
        self,
        prefix: str = "",
        *,
        limit: int = 100,
        offset: int = 0,
        sort_by: Mapping[str, str] | None = None,
    ) -> list[StorageObject]:
        self.list_calls.append(prefix)
        if self.list_error is not None:
            raise self.list_error
        if prefix in self.failing_prefixes:
            raise StorageError(f"cannot list {prefix}", status_code=500)
        base = prefix.strip("/")
        entries: list[StorageObject] = []
        folders: list[str] = []
        for path in self.objects:
            if base and not path.startswith(base + "/"):
                continue
            rest = path[len(base) + 1 :] if base else path
            if "/" in rest:
                folder = rest.split("/", 1)[0]
                if folder not in folders:
                    folders.append(folder)
                continue
            size = self.reported_sizes.get(path, len(self.objects[path]))
            entries.append(StorageObject(name=rest, path=path, size=size, mime_type="image/jpeg"))
        entries.extend(
            StorageObject(name=folder, path=f"{base}/{folder}" if base else folder, is_folder=True)
            for folder in folders
        )
        return entries[offset : offset + limit]

    async def remove(self, paths: Sequence[str]) -> list[dict[str, Any]]:
        self.remove_calls.append(list(paths))
        removed = []
        for path in paths:
            if path in self.objects:
                del self.objects[path]
                self.reported_sizes.pop(path, None)
                removed.append({"name": path})
        return removed

    def get_public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path, safe='/')}"


class FakeFileReader:
    """Device files addressed by URI.

    ``fetch_overrides`` replaces what the primary fetch returns, which lets
    tests reproduce the platform bug where fetch yields zero bytes.
    """

    def __init__(self, files: Mapping[str, bytes] | None = None) -> None:
        self.files: dict[str, bytes] = dict(files or {})
        self.fetch_overrides: dict[str, bytes] = {}
        self.calls: list[tuple[str, str]] = []

    async def stat(self, uri: str) -> LocalFileInfo:
        self.calls.append(("stat", uri))
        if uri not in self.files:
            return LocalFileInfo(exists=False)
        return LocalFileInfo(exists=True, size=len(self.files[uri]))

    async def fetch_bytes(self, uri: str) -> bytes:
        self.calls.append(("fetch", uri))
        if uri in self.fetch_overrides:
            return self.fetch_overrides[uri]
        return self.files[uri]

    async def read_base64(self, uri: str) -> str:
        self.calls.append(("base64", uri))
        return base64.b64encode(self.files[uri]).decode("ascii")

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]


class FakeMessageRepository:
    def __init__(self, records: Sequence[MessageRecord] = ()) -> None:
        self.records = [replace(record) for record in records]
        self.inserted: list[dict[str, Any]] = []
        self.update_calls = 0

    async def list_image_messages(self) -> list[MessageRecord]:
        return [
            replace(record)
            for record in self.records
            if record.message_type == "image" and record.media_url is not None
        ]

    async def null_local_file_references(self, marker: str) -> list[MessageRecord]:
        self.update_calls += 1
        updated = []
        for record in self.records:
            if record.media_url and record.media_url.startswith(LOCAL_FILE_SCHEME):
                record.media_url = None
                record.content = marker
                updated.append(replace(record))
        return updated

    async def insert_image_message(
        self, *, chat_id: str, sender_id: str, media_url: str, content: str | None = None
    ) -> MessageRecord:
        record = MessageRecord(
            id=f"msg-{len(self.records) + 1}",
            media_url=media_url,
            content=content,
            sender_id=sender_id,
            chat_id=chat_id,
        )
        self.records.append(record)
        self.inserted.append({"chat_id": chat_id, "sender_id": sender_id, "media_url": media_url})
        return record


class FakeStoryRepository:
    def __init__(self, records: Sequence[StoryRecord] = ()) -> None:
        self.records = [replace(record) for record in records]
        self.active_queries: list[list[str]] = []

    async def list_image_stories(self) -> list[StoryRecord]:
        return [
            replace(record)
            for record in self.records
            if record.media_type == "image" and record.media_url is not None
        ]

    async def list_active_for_users(self, user_ids: Sequence[str], *, now: Any) -> list[StoryRecord]:
        self.active_queries.append(list(user_ids))
        cutoff = now.isoformat()
        matches = [
            record
            for record in self.records
            if record.user_id in user_ids and (record.expires_at or "") > cutoff
        ]
        return sorted(matches, key=lambda record: record.created_at or "", reverse=True)

    async def insert(
        self, *, user_id: str, media_url: str, media_type: str = "image", caption: str = ""
    ) -> StoryRecord:
        record = StoryRecord(
            id=f"story-{len(self.records) + 1}",
            media_url=media_url,
            user_id=user_id,
            media_type=media_type,
            caption=caption,
        )
        self.records.append(record)
        return record

    async def get_views(self, story_id: str) -> list[str] | None:
        for record in self.records:
            if record.id == story_id:
                return list(record.views)
        return None

    async def set_views(self, story_id: str, views: Sequence[str]) -> None:
        for record in self.records:
            if record.id == story_id:
                record.views = list(views)

    async def delete_owned(self, *, story_id: str, user_id: str) -> int:
        before = len(self.records)
        self.records = [
            record for record in self.records if not (record.id == story_id and record.user_id == user_id)
        ]
        return before - len(self.records)


class FakeMemoryRepository:
    def __init__(self) -> None:
        self.inserted: list[dict[str, Any]] = []

    async def insert(self, *, user_id: str, media_url: str, caption: str | None = None) -> MemoryRecord:
        self.inserted.append({"user_id": user_id, "media_url": media_url, "caption": caption})
        return MemoryRecord(id=f"mem-{len(self.inserted)}", user_id=user_id, media_url=media_url, caption=caption)
