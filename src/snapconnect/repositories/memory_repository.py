"""Persistence layer for saved memories."""

from __future__ import annotations

from ..infrastructure.supabase_rest import SupabaseRest
from ..media.media_models import MemoryRecord

MEMORIES_TABLE = "memories"


class MemoryRepository:
    def __init__(self, rest: SupabaseRest) -> None:
        self._rest = rest

    async def insert(self, *, user_id: str, media_url: str, caption: str | None = None) -> MemoryRecord:
        rows = await self._rest.insert(
            MEMORIES_TABLE,
            {"user_id": user_id, "media_url": media_url, "caption": caption},
        )
        return MemoryRecord.from_row(rows[0])
