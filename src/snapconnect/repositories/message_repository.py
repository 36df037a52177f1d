"""Persistence layer for chat message records."""

from __future__ import annotations

from typing import Any

from ..infrastructure.supabase_rest import SupabaseRest, eq, is_not_null, like
from ..media.media_models import LOCAL_FILE_SCHEME, MessageRecord

MESSAGES_TABLE = "messages"
_SCAN_COLUMNS = "id, media_url, content, created_at, sender_id, chat_id"


class MessageRepository:
    """Read and repair image messages stored in the ``messages`` table."""

    def __init__(self, rest: SupabaseRest) -> None:
        self._rest = rest

    async def list_image_messages(self) -> list[MessageRecord]:
        rows = await self._rest.select(
            MESSAGES_TABLE,
            columns=_SCAN_COLUMNS,
            filters=[eq("message_type", "image"), is_not_null("media_url")],
        )
        return [MessageRecord.from_row(row) for row in rows]

    async def null_local_file_references(self, marker: str) -> list[MessageRecord]:
        """Null every ``file://`` reference and replace content with ``marker``."""
        rows = await self._rest.update(
            MESSAGES_TABLE,
            {"media_url": None, "content": marker},
            filters=[like("media_url", f"{LOCAL_FILE_SCHEME}%")],
        )
        return [MessageRecord.from_row(row) for row in rows]

    async def insert_image_message(
        self,
        *,
        chat_id: str,
        sender_id: str,
        media_url: str,
        content: str | None = None,
    ) -> MessageRecord:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "sender_id": sender_id,
            "message_type": "image",
            "media_url": media_url,
            "content": content,
        }
        rows = await self._rest.insert(MESSAGES_TABLE, payload)
        return MessageRecord.from_row(rows[0] if rows else {"id": "", **payload})
