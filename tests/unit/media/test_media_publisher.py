from __future__ import annotations

import pytest

from snapconnect.media.blob_materializer import BlobMaterializer
from snapconnect.media.media_publisher import MediaPublisher
from snapconnect.media.media_uploader import MediaUploader, UploadResult
from tests.mocks.media import (
    FakeFileReader,
    FakeMemoryRepository,
    FakeMessageRepository,
    FakeStoryRepository,
    InMemoryStorage,
)

URI = "file:///tmp/a.jpg"


def build_publisher(files: dict[str, bytes]):
    storage = InMemoryStorage()
    uploader = MediaUploader(
        storage=storage,
        materializer=BlobMaterializer(reader=FakeFileReader(files)),
        clock=lambda: 1_700_000_000.0,
        token_factory=lambda: "abc",
    )
    messages = FakeMessageRepository()
    stories = FakeStoryRepository()
    memories = FakeMemoryRepository()
    publisher = MediaPublisher(uploader=uploader, messages=messages, stories=stories, memories=memories)
    return publisher, storage, messages, stories, memories


@pytest.mark.asyncio
async def test_image_message_persists_public_url_after_upload() -> None:
    publisher, storage, messages, _, _ = build_publisher({URI: b"jpeg"})

    result = await publisher.send_image_message(
        chat_id="chat-1", sender_id="userA", local_ref=URI, caption="hi", from_gallery=True
    )

    assert result.success is True
    assert result.record.media_url.startswith("https://x.supabase.co/storage/v1/object/public/media/userA/gallery_")
    assert messages.inserted == [
        {"chat_id": "chat-1", "sender_id": "userA", "media_url": result.upload.public_url}
    ]
    assert list(storage.objects) == [result.upload.storage_key]


@pytest.mark.asyncio
async def test_failed_upload_writes_no_record() -> None:
    publisher, storage, messages, stories, memories = build_publisher({URI: b""})

    message = await publisher.send_image_message(chat_id="chat-1", sender_id="userA", local_ref=URI)
    story = await publisher.publish_story(user_id="userA", local_ref=URI)
    memory = await publisher.save_memory(user_id="userA", local_ref=URI)

    assert [message.success, story.success, memory.success] == [False, False, False]
    assert message.record is None
    assert messages.inserted == []
    assert stories.records == []
    assert memories.inserted == []
    assert storage.objects == {}


@pytest.mark.asyncio
async def test_story_and_memory_use_their_own_prefixes() -> None:
    publisher, _, _, stories, memories = build_publisher({URI: b"jpeg"})

    story = await publisher.publish_story(user_id="userB", local_ref=URI, caption="sunset")
    memory = await publisher.save_memory(user_id="userC", local_ref=URI)

    assert story.upload.storage_key.startswith("userB/story_")
    assert stories.records[0].caption == "sunset"
    assert memory.upload.storage_key.startswith("userC/memory_")
    assert memories.inserted[0]["media_url"] == memory.upload.public_url


@pytest.mark.asyncio
async def test_upload_without_public_url_writes_no_record() -> None:
    class UrlLessUploader(MediaUploader):
        async def upload(self, local_ref, user_id, purpose_tag="snap", *, policy=None) -> UploadResult:
            return UploadResult(success=True, storage_key=f"{user_id}/{purpose_tag}_1.jpg")

    messages = FakeMessageRepository()
    stories = FakeStoryRepository()
    memories = FakeMemoryRepository()
    publisher = MediaPublisher(
        uploader=UrlLessUploader(
            storage=InMemoryStorage(), materializer=BlobMaterializer(reader=FakeFileReader({}))
        ),
        messages=messages,
        stories=stories,
        memories=memories,
    )

    message = await publisher.send_image_message(chat_id="chat-1", sender_id="userA", local_ref=URI)
    story = await publisher.publish_story(user_id="userA", local_ref=URI)
    memory = await publisher.save_memory(user_id="userA", local_ref=URI)

    assert [message.record, story.record, memory.record] == [None, None, None]
    assert messages.inserted == []
    assert stories.records == []
    assert memories.inserted == []
