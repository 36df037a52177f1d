"""Story feed: active stories of a user and their friends."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from ..media.media_models import StoryRecord
from ..repositories import StoryRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class FriendStories:
    user_id: str
    stories: list[StoryRecord] = field(default_factory=list)


@dataclass(slots=True)
class StoryFeed:
    own: list[StoryRecord]
    friends: list[FriendStories]

    @property
    def has_own_story(self) -> bool:
        return bool(self.own)

    def to_dict(self) -> dict[str, Any]:
        return {
            "own": [_story_dict(story) for story in self.own],
            "friends": [
                {"user_id": group.user_id, "stories": [_story_dict(story) for story in group.stories]}
                for group in self.friends
            ],
        }


def _story_dict(story: StoryRecord) -> dict[str, Any]:
    return {
        "id": story.id,
        "user_id": story.user_id,
        "media_url": story.media_url,
        "media_type": story.media_type,
        "caption": story.caption,
        "created_at": story.created_at,
        "expires_at": story.expires_at,
        "views": list(story.views),
    }


@dataclass(slots=True)
class StoryService:
    """Load, create, view and delete stories."""

    repo: StoryRepository
    clock: Callable[[], datetime] = _utcnow
    log: logging.Logger = field(default_factory=lambda: logger)

    async def fetch_feed(self, user_id: str, friend_ids: Sequence[str] = ()) -> StoryFeed:
        """Own stories first, then friends' stories grouped per friend.

        Both queries run one after the other so that ordering stays stable.
        """
        now = self.clock()
        own = await self.repo.list_active_for_users([user_id], now=now)

        grouped: dict[str, FriendStories] = {}
        friends = [friend for friend in friend_ids if friend != user_id]
        if friends:
            for story in await self.repo.list_active_for_users(friends, now=now):
                owner = story.user_id or ""
                grouped.setdefault(owner, FriendStories(user_id=owner)).stories.append(story)

        self.log.debug(
            "stories.feed.loaded",
            extra={"user_id": user_id, "own": len(own), "friends_with_stories": len(grouped)},
        )
        return StoryFeed(own=own, friends=list(grouped.values()))

    async def create_story(
        self,
        user_id: str,
        media_url: str,
        *,
        media_type: str = "image",
        caption: str = "",
    ) -> StoryRecord:
        story = await self.repo.insert(
            user_id=user_id, media_url=media_url, media_type=media_type, caption=caption
        )
        self.log.info("stories.created", extra={"story_id": story.id, "user_id": user_id})
        return story

    async def mark_story_viewed(self, story_id: str, viewer_id: str) -> bool:
        """Append ``viewer_id`` to the story views; returns ``True`` if it was added."""
        views = await self.repo.get_views(story_id)
        if views is None or viewer_id in views:
            return False
        await self.repo.set_views(story_id, [*views, viewer_id])
        return True

    async def delete_story(self, story_id: str, user_id: str) -> bool:
        """Delete a story owned by ``user_id``; other users' stories are untouched."""
        deleted = await self.repo.delete_owned(story_id=story_id, user_id=user_id)
        if deleted:
            self.log.info("stories.deleted", extra={"story_id": story_id, "user_id": user_id})
        return deleted > 0


__all__ = ["FriendStories", "StoryFeed", "StoryService"]
