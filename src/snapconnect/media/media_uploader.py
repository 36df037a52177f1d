"""Upload local media to the object store under a declarative retry policy.

The three historical strategies (simple, direct, robust) are policies over
one pipeline:

1. validate parameters and the URI scheme;
2. optionally pre-check the source file (existence, non-zero, size ceiling);
3. materialize and send through the policy transport;
4. resolve the canonical public URL;
5. optionally verify the object through a folder listing and, for the
   repairing policy, delete a zero-byte object and re-send once through the
   repair transport.

Success is defined by the upload call returning no error. Verification
problems are recorded as warnings on the result and never turn a successful
upload into a failure.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable

from ..exceptions import StorageError
from ..infrastructure.media_storage import MediaStorage, StorageObject
from .blob_materializer import BlobMaterializer, MaterializedBlob
from .media_models import CONTENT_SCHEME, LOCAL_FILE_SCHEME
from .upload_errors import (
    BlobEmptyError,
    InvalidUriSchemeError,
    MissingParametersError,
    PublicUrlUnavailableError,
    SizeExceededError,
    UploadError,
    UploadErrorCode,
)
from .upload_policy import DIRECT, ROBUST, SIMPLE, UploadPolicy, VerifyMode

logger = logging.getLogger(__name__)

VERIFY_LIST_LIMIT = 100


@dataclass(slots=True)
class UploadResult:
    """Outcome of one upload attempt."""

    success: bool
    public_url: str | None = None
    storage_key: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    error: str | None = None
    error_code: UploadErrorCode | None = None
    original_uri: str | None = None
    policy: str | None = None
    retried: bool = False
    warnings: list[str] = field(default_factory=list)
    server_object: StorageObject | None = None

    @property
    def file_path(self) -> str | None:
        return self.storage_key

    @classmethod
    def failed(cls, exc: UploadError, *, original_uri: str | None, policy: str) -> "UploadResult":
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.code,
            original_uri=original_uri,
            policy=policy,
        )


def _random_token() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(slots=True)
class MediaUploader:
    """Single upload pipeline parameterised by :class:`UploadPolicy`."""

    storage: MediaStorage
    materializer: BlobMaterializer = field(default_factory=BlobMaterializer)
    default_policy: UploadPolicy = ROBUST
    clock: Callable[[], float] = time.time
    token_factory: Callable[[], str] = _random_token
    log: logging.Logger = field(default_factory=lambda: logger)

    async def upload(
        self,
        local_ref: str | None,
        user_id: str | None,
        purpose_tag: str = "snap",
        *,
        policy: UploadPolicy | None = None,
    ) -> UploadResult:
        """Upload ``local_ref`` for ``user_id``; never raises ``UploadError``."""
        active = policy or self.default_policy
        self.log.info(
            "media.upload.start",
            extra={"uri": local_ref, "user_id": user_id, "purpose": purpose_tag, "policy": active.name},
        )
        try:
            result = await self._upload(local_ref, user_id, purpose_tag, active)
        except UploadError as exc:
            self.log.warning(
                "media.upload.failed",
                extra={"uri": local_ref, "policy": active.name, "code": exc.code.value, "error": exc.message},
            )
            return UploadResult.failed(exc, original_uri=local_ref, policy=active.name)
        self.log.info(
            "media.upload.success",
            extra={
                "storage_key": result.storage_key,
                "bytes": result.file_size,
                "policy": active.name,
                "retried": result.retried,
                "warnings": len(result.warnings),
            },
        )
        return result

    async def upload_message_image(
        self,
        local_ref: str | None,
        user_id: str | None,
        *,
        from_gallery: bool = False,
        policy: UploadPolicy | None = None,
    ) -> UploadResult:
        prefix = "gallery" if from_gallery else "snap"
        return await self.upload(local_ref, user_id, prefix, policy=policy)

    async def upload_story_image(
        self,
        local_ref: str | None,
        user_id: str | None,
        *,
        from_gallery: bool = False,
        policy: UploadPolicy | None = None,
    ) -> UploadResult:
        prefix = "story_gallery" if from_gallery else "story"
        return await self.upload(local_ref, user_id, prefix, policy=policy)

    async def upload_memory_image(
        self,
        local_ref: str | None,
        user_id: str | None,
        *,
        policy: UploadPolicy | None = None,
    ) -> UploadResult:
        return await self.upload(local_ref, user_id, "memory", policy=policy)

    def build_storage_key(self, user_id: str, purpose_tag: str, *, random_suffix: bool) -> tuple[str, str]:
        """Return ``(storage_key, file_name)`` shaped ``{user}/{tag}_{ms}[_{rand}].jpg``."""
        timestamp = int(self.clock() * 1000)
        stem = f"{purpose_tag}_{timestamp}"
        if random_suffix:
            stem = f"{stem}_{self.token_factory()}"
        file_name = f"{stem}.jpg"
        return f"{user_id}/{file_name}", file_name

    async def _upload(
        self,
        local_ref: str | None,
        user_id: str | None,
        purpose_tag: str,
        policy: UploadPolicy,
    ) -> UploadResult:
        if not local_ref or not user_id:
            raise MissingParametersError()
        if not local_ref.startswith((LOCAL_FILE_SCHEME, CONTENT_SCHEME)):
            raise InvalidUriSchemeError()

        if policy.check_source:
            info = await self.materializer.check_source(local_ref)
            self._enforce_ceiling(info.size, policy)

        storage_key, file_name = self.build_storage_key(
            user_id, purpose_tag, random_suffix=policy.random_suffix
        )

        blob = await policy.transport.materialize(self.materializer, local_ref, check_source=False)
        if blob.size == 0:
            raise BlobEmptyError()
        self._enforce_ceiling(blob.size, policy)

        await policy.transport.send(self.storage, storage_key, blob)
        public_url = self._public_url(storage_key)

        result = UploadResult(
            success=True,
            public_url=public_url,
            storage_key=storage_key,
            file_name=file_name,
            file_size=blob.size,
            original_uri=local_ref,
            policy=policy.name,
        )
        if policy.verify is not VerifyMode.NONE:
            await self._verify(result, policy, user_id=user_id, blob=blob)
        return result

    @staticmethod
    def _enforce_ceiling(size: int, policy: UploadPolicy) -> None:
        if policy.max_bytes is not None and size > policy.max_bytes:
            raise SizeExceededError(f"File exceeds maximum size of {policy.max_bytes} bytes")

    def _public_url(self, storage_key: str) -> str:
        try:
            url = self.storage.get_public_url(storage_key)
        except StorageError as exc:
            raise PublicUrlUnavailableError() from exc
        if not url:
            raise PublicUrlUnavailableError()
        return url

    async def _verify(
        self,
        result: UploadResult,
        policy: UploadPolicy,
        *,
        user_id: str,
        blob: MaterializedBlob,
    ) -> None:
        if result.storage_key is None or result.file_name is None:
            return
        uploaded = await self._find_uploaded(result, user_id=user_id)
        if uploaded is None or uploaded.size != 0:
            return

        if policy.verify is VerifyMode.REPORT or policy.repair_transport is None:
            result.warnings.append("File uploaded but shows as 0 bytes in metadata")
            self.log.warning("media.upload.zero_bytes_on_server", extra={"storage_key": result.storage_key})
            return

        self.log.warning(
            "media.upload.zero_bytes_repair",
            extra={"storage_key": result.storage_key, "retry_transport": policy.repair_transport.name},
        )
        try:
            await self.storage.remove([result.storage_key])
        except StorageError as exc:
            result.warnings.append(f"Could not remove zero-byte object before retry: {exc.message}")
            return

        await policy.repair_transport.send(self.storage, result.storage_key, blob)
        result.retried = True

        retried = await self._find_uploaded(result, user_id=user_id)
        if retried is not None and retried.size == 0:
            result.warnings.append("File still shows as 0 bytes after retry")

    async def _find_uploaded(self, result: UploadResult, *, user_id: str) -> StorageObject | None:
        try:
            listing = await self.storage.list(
                user_id,
                limit=VERIFY_LIST_LIMIT,
                sort_by={"column": "created_at", "order": "desc"},
            )
        except StorageError as exc:
            result.warnings.append(f"Upload verification skipped: {exc.message}")
            self.log.warning(
                "media.upload.verify_unavailable",
                extra={"storage_key": result.storage_key, "error": exc.message},
            )
            return None
        uploaded = next((obj for obj in listing if obj.name == result.file_name), None)
        if uploaded is None:
            result.warnings.append("Upload may have failed - file not found in storage list")
            return None
        result.server_object = uploaded
        return uploaded


async def simple_upload_image(
    uploader: MediaUploader, uri: str | None, user_id: str | None, file_prefix: str = "snap"
) -> UploadResult:
    return await uploader.upload(uri, user_id, file_prefix, policy=SIMPLE)


async def direct_upload_image(
    uploader: MediaUploader, uri: str | None, user_id: str | None, file_prefix: str = "snap"
) -> UploadResult:
    return await uploader.upload(uri, user_id, file_prefix, policy=DIRECT)


async def robust_upload_image(
    uploader: MediaUploader, uri: str | None, user_id: str | None, file_prefix: str = "snap"
) -> UploadResult:
    return await uploader.upload(uri, user_id, file_prefix, policy=ROBUST)


__all__ = [
    "MediaUploader",
    "UploadResult",
    "direct_upload_image",
    "robust_upload_image",
    "simple_upload_image",
]
