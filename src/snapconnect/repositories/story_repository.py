"""Persistence layer for story records."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from ..infrastructure.supabase_rest import SupabaseRest, eq, gt, in_list, is_not_null
from ..media.media_models import StoryRecord

STORIES_TABLE = "stories"
_FEED_COLUMNS = "id, user_id, media_url, media_type, caption, created_at, expires_at, views"
_SCAN_COLUMNS = "id, media_url, caption, created_at, user_id"


class StoryRepository:
    """Store and query stories in the ``stories`` table."""

    def __init__(self, rest: SupabaseRest) -> None:
        self._rest = rest

    async def list_image_stories(self) -> list[StoryRecord]:
        rows = await self._rest.select(
            STORIES_TABLE,
            columns=_SCAN_COLUMNS,
            filters=[eq("media_type", "image"), is_not_null("media_url")],
        )
        return [StoryRecord.from_row(row) for row in rows]

    async def list_active_for_users(
        self, user_ids: Sequence[str], *, now: datetime
    ) -> list[StoryRecord]:
        """Return unexpired stories of ``user_ids``, newest first."""
        if not user_ids:
            return []
        owner_filter = eq("user_id", user_ids[0]) if len(user_ids) == 1 else in_list("user_id", user_ids)
        rows = await self._rest.select(
            STORIES_TABLE,
            columns=_FEED_COLUMNS,
            filters=[owner_filter, gt("expires_at", now.isoformat())],
            order="created_at.desc",
        )
        return [StoryRecord.from_row(row) for row in rows]

    async def insert(
        self,
        *,
        user_id: str,
        media_url: str,
        media_type: str = "image",
        caption: str = "",
    ) -> StoryRecord:
        rows = await self._rest.insert(
            STORIES_TABLE,
            {
                "user_id": user_id,
                "media_url": media_url,
                "media_type": media_type,
                "caption": caption,
            },
        )
        return StoryRecord.from_row(rows[0])

    async def get_views(self, story_id: str) -> list[str] | None:
        rows = await self._rest.select(
            STORIES_TABLE, columns="views", filters=[eq("id", story_id)], limit=1
        )
        if not rows:
            return None
        return list(rows[0].get("views") or [])

    async def set_views(self, story_id: str, views: Sequence[str]) -> None:
        await self._rest.update(STORIES_TABLE, {"views": list(views)}, filters=[eq("id", story_id)])

    async def delete_owned(self, *, story_id: str, user_id: str) -> int:
        rows = await self._rest.delete(
            STORIES_TABLE, filters=[eq("id", story_id), eq("user_id", user_id)]
        )
        return len(rows)
