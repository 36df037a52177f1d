"""Resolve persisted media references into displayable URLs.

Resolution order:

1. empty reference: ``no_url``;
2. cached outcome for ``(reference, consumer_id)``;
3. ``http(s)://`` references are accepted as-is without a reachability check;
4. ``file://`` references are data-integrity failures (``upload_failed``),
   cached so they are never re-derived;
5. anything else is a storage-relative path turned into the canonical public
   URL, which must match ``/storage/v<n>/object/public/<bucket>/``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from ..exceptions import StorageError
from ..infrastructure.media_storage import MediaStorage
from .media_models import ReferenceKind, classify_reference
from .url_cache import CachedResolution, ResolvedUrlCache

logger = logging.getLogger(__name__)

DEFAULT_CONSUMER = "unknown"


class ImageErrorType(str, Enum):
    NO_URL = "no_url"
    UPLOAD_FAILED = "upload_failed"
    INVALID_URL = "invalid_url"
    URL_PROCESSING_FAILED = "url_processing_failed"
    PROCESSING_ERROR = "processing_error"
    EMPTY_FILE = "empty_file"
    IMAGE_LOAD_ERROR = "image_load_error"
    URL_NOT_ACCESSIBLE = "url_not_accessible"


@dataclass(slots=True)
class ImageErrorDetail:
    """Structured reason an image cannot be shown."""

    type: ImageErrorType
    message: str
    original_url: str | None = None
    url: str | None = None
    status: int | None = None

    def user_message(self) -> str:
        if self.type is ImageErrorType.EMPTY_FILE:
            return "File corrupted - uploaded as 0 bytes"
        if self.type is ImageErrorType.UPLOAD_FAILED:
            return "Upload failed - image not properly saved"
        if self.type is ImageErrorType.URL_NOT_ACCESSIBLE and self.status == 403:
            return "Access forbidden - check storage policies"
        if self.type is ImageErrorType.URL_NOT_ACCESSIBLE and self.status == 404:
            return "File not found - check if file exists"
        if self.type is ImageErrorType.NO_URL:
            return "No image provided"
        return "Loading failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "original_url": self.original_url,
            "url": self.url,
            "status": self.status,
            "user_message": self.user_message(),
        }


@dataclass(slots=True)
class ResolutionResult:
    url: str | None = None
    error: ImageErrorDetail | None = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.url is not None and self.error is None

    @classmethod
    def from_cached(cls, cached: CachedResolution) -> "ResolutionResult":
        return cls(url=cached.url, error=cached.error, from_cache=True)


def canonical_path_pattern(bucket: str) -> re.Pattern[str]:
    return re.compile(rf"/storage/v\d+/object/public/{re.escape(bucket)}/")


def is_canonical_public_url(url: str, bucket: str) -> bool:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return False
    return canonical_path_pattern(bucket).search(parsed.path) is not None


@dataclass(slots=True)
class MediaUrlResolver:
    """Resolve references for a consumer, memoising outcomes in ``cache``."""

    storage: MediaStorage
    cache: ResolvedUrlCache = field(default_factory=ResolvedUrlCache)
    bucket: str | None = None
    log: logging.Logger = field(default_factory=lambda: logger)

    @property
    def _bucket(self) -> str:
        return self.bucket or self.storage.bucket

    def lookup(self, reference: str | None, consumer_id: str = DEFAULT_CONSUMER) -> ResolutionResult | None:
        """Synchronous cache read; ``None`` on a miss."""
        if not reference:
            return None
        cached = self.cache.get(reference, consumer_id)
        return ResolutionResult.from_cached(cached) if cached is not None else None

    def invalidate(self, reference: str, consumer_id: str = DEFAULT_CONSUMER) -> bool:
        return self.cache.invalidate(reference, consumer_id)

    def record_failure(self, reference: str, consumer_id: str, detail: ImageErrorDetail) -> None:
        """Overwrite a cached outcome with a downstream render failure."""
        self.cache.set(reference, consumer_id, CachedResolution(error=detail))
        self.log.info(
            "media.resolve.failure_recorded",
            extra={"reference": reference, "consumer_id": consumer_id, "type": detail.type.value},
        )

    async def resolve(self, reference: str | None, consumer_id: str = DEFAULT_CONSUMER) -> ResolutionResult:
        if not reference:
            return ResolutionResult(
                error=ImageErrorDetail(ImageErrorType.NO_URL, "No image URL provided")
            )

        cached = self.lookup(reference, consumer_id)
        if cached is not None:
            return cached

        kind = classify_reference(reference)
        if kind is ReferenceKind.REMOTE:
            return self._remember(reference, consumer_id, CachedResolution(url=reference))

        if kind is ReferenceKind.LOCAL_FILE:
            self.log.error("media.resolve.local_file_reference", extra={"reference": reference})
            detail = ImageErrorDetail(
                ImageErrorType.UPLOAD_FAILED,
                "Upload process failed - local file URL found in database",
                original_url=reference,
            )
            return self._remember(reference, consumer_id, CachedResolution(error=detail))

        if "://" in reference:
            detail = ImageErrorDetail(
                ImageErrorType.INVALID_URL,
                "Unsupported URL scheme",
                original_url=reference,
            )
            return self._remember(reference, consumer_id, CachedResolution(error=detail))

        return self._resolve_storage_path(reference, consumer_id)

    def _resolve_storage_path(self, reference: str, consumer_id: str) -> ResolutionResult:
        try:
            public_url = self.storage.get_public_url(reference)
        except StorageError as exc:
            self.log.warning(
                "media.resolve.public_url_failed",
                extra={"reference": reference, "error": exc.message},
            )
            return ResolutionResult(
                error=ImageErrorDetail(ImageErrorType.PROCESSING_ERROR, exc.message, original_url=reference)
            )

        if not public_url:
            return ResolutionResult(
                error=ImageErrorDetail(
                    ImageErrorType.URL_PROCESSING_FAILED,
                    "Failed to process image URL",
                    original_url=reference,
                )
            )

        if not is_canonical_public_url(public_url, self._bucket):
            self.log.warning(
                "media.resolve.invalid_url",
                extra={"reference": reference, "url": public_url},
            )
            detail = ImageErrorDetail(
                ImageErrorType.INVALID_URL,
                "Generated URL does not match the public storage format",
                original_url=reference,
                url=public_url,
            )
            return self._remember(reference, consumer_id, CachedResolution(error=detail))

        return self._remember(reference, consumer_id, CachedResolution(url=public_url))

    def _remember(self, reference: str, consumer_id: str, value: CachedResolution) -> ResolutionResult:
        self.cache.set(reference, consumer_id, value)
        return ResolutionResult(url=value.url, error=value.error)


__all__ = [
    "DEFAULT_CONSUMER",
    "ImageErrorDetail",
    "ImageErrorType",
    "MediaUrlResolver",
    "ResolutionResult",
    "canonical_path_pattern",
    "is_canonical_public_url",
]
