"""Media data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

LOCAL_FILE_SCHEME = "file://"
CONTENT_SCHEME = "content://"
REMOTE_SCHEMES = ("http://", "https://")


class ReferenceKind(str, Enum):
    """Forms a persisted media reference can take."""

    EMPTY = "empty"
    REMOTE = "remote"
    LOCAL_FILE = "local_file"
    STORAGE_PATH = "storage_path"


def classify_reference(reference: str | None) -> ReferenceKind:
    """Classify a stored media reference by its scheme."""
    if not reference:
        return ReferenceKind.EMPTY
    if reference.startswith(REMOTE_SCHEMES):
        return ReferenceKind.REMOTE
    if reference.startswith(LOCAL_FILE_SCHEME):
        return ReferenceKind.LOCAL_FILE
    return ReferenceKind.STORAGE_PATH


@dataclass(slots=True)
class MessageRecord:
    id: str
    media_url: str | None
    content: str | None = None
    created_at: str | None = None
    sender_id: str | None = None
    chat_id: str | None = None
    message_type: str = "image"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MessageRecord":
        return cls(
            id=str(row["id"]),
            media_url=row.get("media_url"),
            content=row.get("content"),
            created_at=row.get("created_at"),
            sender_id=row.get("sender_id"),
            chat_id=row.get("chat_id"),
            message_type=row.get("message_type") or "image",
        )


@dataclass(slots=True)
class StoryRecord:
    id: str
    media_url: str | None
    user_id: str | None = None
    media_type: str = "image"
    caption: str | None = None
    created_at: str | None = None
    expires_at: str | None = None
    views: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StoryRecord":
        return cls(
            id=str(row["id"]),
            media_url=row.get("media_url"),
            user_id=row.get("user_id"),
            media_type=row.get("media_type") or "image",
            caption=row.get("caption"),
            created_at=row.get("created_at"),
            expires_at=row.get("expires_at"),
            views=list(row.get("views") or []),
        )


@dataclass(slots=True)
class MemoryRecord:
    id: str
    user_id: str
    media_url: str
    caption: str | None = None
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MemoryRecord":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            media_url=row["media_url"],
            caption=row.get("caption"),
            created_at=row.get("created_at"),
        )


__all__ = [
    "CONTENT_SCHEME",
    "LOCAL_FILE_SCHEME",
    "REMOTE_SCHEMES",
    "MemoryRecord",
    "MessageRecord",
    "ReferenceKind",
    "StoryRecord",
    "classify_reference",
]
