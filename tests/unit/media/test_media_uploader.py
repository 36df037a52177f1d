from __future__ import annotations

import pytest

from snapconnect.exceptions import StorageError
from snapconnect.media.blob_materializer import BlobMaterializer, DeviceFileReader
from snapconnect.media.media_uploader import (
    MediaUploader,
    direct_upload_image,
    robust_upload_image,
    simple_upload_image,
)
from snapconnect.media.upload_errors import UploadErrorCode
from snapconnect.media.upload_policy import DIRECT, ROBUST, SIMPLE, get_policy
from tests.mocks.media import FakeFileReader, InMemoryStorage

URI = "file:///tmp/a.jpg"
NOW = 1_700_000_000.0


def build_uploader(
    files: dict[str, bytes],
    *,
    storage: InMemoryStorage | None = None,
) -> tuple[MediaUploader, InMemoryStorage, FakeFileReader]:
    reader = FakeFileReader(files)
    store = storage or InMemoryStorage()
    uploader = MediaUploader(
        storage=store,
        materializer=BlobMaterializer(reader=reader),
        clock=lambda: NOW,
        token_factory=lambda: "r4nd0m",
    )
    return uploader, store, reader


@pytest.mark.asyncio
async def test_simple_upload_of_zero_byte_file_reports_blob_empty() -> None:
    uploader, storage, _ = build_uploader({URI: b""})

    result = await simple_upload_image(uploader, URI, "userA")

    assert result.success is False
    assert result.error == "Blob is empty"
    assert result.error_code is UploadErrorCode.BLOB_EMPTY
    assert storage.upload_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("policy", [SIMPLE, DIRECT, ROBUST], ids=lambda policy: policy.name)
async def test_zero_byte_source_never_reaches_storage(policy) -> None:
    uploader, storage, _ = build_uploader({URI: b""})

    result = await uploader.upload(URI, "userA", "snap", policy=policy)

    assert result.success is False
    assert result.error_code in {UploadErrorCode.SOURCE_EMPTY, UploadErrorCode.BLOB_EMPTY}
    assert storage.upload_calls == []


@pytest.mark.asyncio
async def test_simple_upload_returns_canonical_url_and_key() -> None:
    uploader, storage, reader = build_uploader({URI: b"jpeg"})

    result = await simple_upload_image(uploader, URI, "userA", "gallery")

    assert result.success is True
    assert result.storage_key == "userA/gallery_1700000000000.jpg"
    assert result.file_path == result.storage_key
    assert result.file_size == 4
    assert result.public_url == (
        "https://x.supabase.co/storage/v1/object/public/media/userA/gallery_1700000000000.jpg"
    )
    assert storage.objects["userA/gallery_1700000000000.jpg"] == b"jpeg"
    assert storage.list_calls == []
    assert reader.methods() == ["fetch"]


@pytest.mark.asyncio
async def test_direct_upload_reads_base64_and_flags_zero_size_on_server() -> None:
    uploader, storage, reader = build_uploader(
        {URI: b"jpeg-bytes"}, storage=InMemoryStorage(zero_size_for_structured=True)
    )

    result = await direct_upload_image(uploader, URI, "userA")

    assert result.success is True
    assert reader.methods() == ["stat", "base64"]
    assert storage.list_calls == ["userA"]
    assert result.server_object is not None and result.server_object.size == 0
    assert result.warnings == ["File uploaded but shows as 0 bytes in metadata"]
    assert storage.remove_calls == []


@pytest.mark.asyncio
async def test_robust_upload_repairs_zero_byte_object_with_raw_buffer() -> None:
    payload = b"\xff" * (5 * 1024 * 1024)
    uploader, storage, _ = build_uploader(
        {URI: payload}, storage=InMemoryStorage(zero_size_for_structured=True)
    )

    result = await robust_upload_image(uploader, URI, "userA")

    key = "userA/snap_1700000000000_r4nd0m.jpg"
    assert result.success is True
    assert result.storage_key == key
    assert result.file_size == len(payload)
    assert result.retried is True
    assert storage.remove_calls == [[key]]
    assert [call["raw"] for call in storage.upload_calls] == [False, True]
    assert result.server_object is not None and result.server_object.size == len(payload)
    assert result.warnings == []


@pytest.mark.asyncio
async def test_robust_upload_warns_when_verification_listing_fails() -> None:
    uploader, storage, _ = build_uploader({URI: b"jpeg"})
    storage.list_error = StorageError("listing denied", status_code=403)

    result = await robust_upload_image(uploader, URI, "userA")

    assert result.success is True
    assert result.warnings == ["Upload verification skipped: listing denied"]
    assert result.retried is False


@pytest.mark.asyncio
async def test_robust_upload_rejects_files_above_ceiling() -> None:
    uploader, storage, _ = build_uploader({URI: b"x" * 2048})

    result = await uploader.upload(URI, "userA", policy=ROBUST.with_max_bytes(1024))

    assert result.success is False
    assert result.error_code is UploadErrorCode.SIZE_EXCEEDED
    assert result.error == "File exceeds maximum size of 1024 bytes"
    assert storage.upload_calls == []


@pytest.mark.asyncio
async def test_robust_upload_falls_back_to_base64_when_fetch_is_empty() -> None:
    uploader, storage, reader = build_uploader({URI: b"real"})
    reader.fetch_overrides[URI] = b""

    result = await robust_upload_image(uploader, URI, "userA")

    assert result.success is True
    assert result.file_size == 4
    assert reader.methods() == ["stat", "fetch", "base64"]
    assert storage.upload_calls[0]["bytes"] == 4


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("uri", "user_id", "code", "message"),
    [
        (None, "userA", UploadErrorCode.MISSING_PARAMETERS, "Missing required parameters"),
        (URI, "", UploadErrorCode.MISSING_PARAMETERS, "Missing required parameters"),
        ("https://cdn/a.jpg", "userA", UploadErrorCode.INVALID_URI_SCHEME, "Invalid URI format"),
        ("file:///tmp/missing.jpg", "userA", UploadErrorCode.SOURCE_NOT_FOUND, "File does not exist"),
    ],
)
async def test_upload_validation_errors(uri, user_id, code, message) -> None:
    uploader, storage, _ = build_uploader({URI: b"jpeg"})

    result = await uploader.upload(uri, user_id)

    assert result.success is False
    assert result.error_code is code
    assert result.error == message
    assert result.original_uri == uri
    assert storage.upload_calls == []


@pytest.mark.asyncio
async def test_storage_failure_is_reported_as_transport_error() -> None:
    uploader, storage, _ = build_uploader({URI: b"jpeg"})
    storage.upload_error = StorageError("Storage upload failed: 500", status_code=500)

    result = await uploader.upload(URI, "userA", policy=SIMPLE)

    assert result.success is False
    assert result.error_code is UploadErrorCode.TRANSPORT_ERROR
    assert result.error == "Storage upload failed: 500"


@pytest.mark.asyncio
async def test_missing_public_url_is_reported() -> None:
    class NoUrlStorage(InMemoryStorage):
        def get_public_url(self, path: str) -> str:
            return ""

    uploader, _, _ = build_uploader({URI: b"jpeg"}, storage=NoUrlStorage())

    result = await uploader.upload(URI, "userA", policy=SIMPLE)

    assert result.success is False
    assert result.error_code is UploadErrorCode.PUBLIC_URL_UNAVAILABLE
    assert result.error == "Failed to get public URL"


@pytest.mark.asyncio
@pytest.mark.parametrize("policy", [SIMPLE, DIRECT, ROBUST], ids=lambda policy: policy.name)
async def test_unreadable_local_reference_fails_without_uploading(tmp_path, policy) -> None:
    storage = InMemoryStorage()
    uploader = MediaUploader(storage=storage, materializer=BlobMaterializer(reader=DeviceFileReader()))

    result = await uploader.upload(tmp_path.as_uri(), "userA", policy=policy)

    assert result.success is False
    assert result.error_code is UploadErrorCode.SOURCE_NOT_FOUND
    assert storage.upload_calls == []


@pytest.mark.asyncio
async def test_purpose_specific_wrappers_choose_prefixes() -> None:
    uploader, _, _ = build_uploader({URI: b"jpeg"})

    gallery = await uploader.upload_message_image(URI, "userA", from_gallery=True, policy=SIMPLE)
    story = await uploader.upload_story_image(URI, "userB", policy=SIMPLE)
    memory = await uploader.upload_memory_image(URI, "userC", policy=SIMPLE)

    assert gallery.storage_key == "userA/gallery_1700000000000.jpg"
    assert story.storage_key == "userB/story_1700000000000.jpg"
    assert memory.storage_key == "userC/memory_1700000000000.jpg"


def test_get_policy_by_name() -> None:
    assert get_policy("robust") is ROBUST
    with pytest.raises(ValueError):
        get_policy("turbo")
