"""Upload-then-persist flows for chat images, stories and memories."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from ..repositories import MemoryRepository, MessageRepository, StoryRepository
from .media_models import MemoryRecord, MessageRecord, StoryRecord
from .media_uploader import MediaUploader, UploadResult
from .upload_policy import UploadPolicy

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


@dataclass(slots=True)
class PublishResult(Generic[RecordT]):
    """Upload outcome plus the record written for it (``None`` on failure)."""

    upload: UploadResult
    record: RecordT | None = None

    @property
    def success(self) -> bool:
        return self.upload.success and self.record is not None


@dataclass(slots=True)
class MediaPublisher:
    """Persist a record only after its media upload succeeded.

    A failed upload writes nothing. A crash between upload and insert leaves
    an orphaned object in storage; nothing reconciles it.
    """

    uploader: MediaUploader
    messages: MessageRepository
    stories: StoryRepository
    memories: MemoryRepository
    policy: UploadPolicy | None = None
    log: logging.Logger = field(default_factory=lambda: logger)

    async def send_image_message(
        self,
        *,
        chat_id: str,
        sender_id: str,
        local_ref: str,
        caption: str | None = None,
        from_gallery: bool = False,
    ) -> PublishResult[MessageRecord]:
        upload = await self.uploader.upload_message_image(
            local_ref, sender_id, from_gallery=from_gallery, policy=self.policy
        )
        if not upload.success or upload.public_url is None:
            self._log_skipped("message", upload)
            return PublishResult(upload=upload)
        record = await self.messages.insert_image_message(
            chat_id=chat_id,
            sender_id=sender_id,
            media_url=upload.public_url,
            content=caption,
        )
        self.log.info("media.publish.message", extra={"message_id": record.id, "chat_id": chat_id})
        return PublishResult(upload=upload, record=record)

    async def publish_story(
        self,
        *,
        user_id: str,
        local_ref: str,
        caption: str = "",
        from_gallery: bool = False,
    ) -> PublishResult[StoryRecord]:
        upload = await self.uploader.upload_story_image(
            local_ref, user_id, from_gallery=from_gallery, policy=self.policy
        )
        if not upload.success or upload.public_url is None:
            self._log_skipped("story", upload)
            return PublishResult(upload=upload)
        record = await self.stories.insert(user_id=user_id, media_url=upload.public_url, caption=caption)
        self.log.info("media.publish.story", extra={"story_id": record.id, "user_id": user_id})
        return PublishResult(upload=upload, record=record)

    async def save_memory(
        self,
        *,
        user_id: str,
        local_ref: str,
        caption: str | None = None,
    ) -> PublishResult[MemoryRecord]:
        upload = await self.uploader.upload_memory_image(local_ref, user_id, policy=self.policy)
        if not upload.success or upload.public_url is None:
            self._log_skipped("memory", upload)
            return PublishResult(upload=upload)
        record = await self.memories.insert(user_id=user_id, media_url=upload.public_url, caption=caption)
        self.log.info("media.publish.memory", extra={"memory_id": record.id, "user_id": user_id})
        return PublishResult(upload=upload, record=record)

    def _log_skipped(self, kind: str, upload: UploadResult) -> None:
        self.log.warning(
            "media.publish.skipped",
            extra={
                "kind": kind,
                "error": upload.error,
                "code": upload.error_code.value if upload.error_code else None,
            },
        )


__all__ = ["MediaPublisher", "PublishResult"]
