"""Pluggable upload transports.

A transport decides how a local reference becomes bytes and how those bytes
travel to the object store. Retry policies combine transports declaratively;
see :mod:`snapconnect.media.upload_policy`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..exceptions import StorageError
from ..infrastructure.media_storage import DEFAULT_CACHE_CONTROL, MediaStorage
from .blob_materializer import BlobMaterializer, MaterializedBlob
from .upload_errors import BlobEmptyError, TransportError


class UploadTransport(ABC):
    """Materialize a local reference and send it to storage."""

    name: str
    raw_body: bool = False

    @abstractmethod
    async def materialize(
        self,
        materializer: BlobMaterializer,
        uri: str,
        *,
        check_source: bool,
    ) -> MaterializedBlob:
        """Produce a non-empty payload or raise an ``UploadError``."""

    async def send(
        self,
        storage: MediaStorage,
        key: str,
        blob: MaterializedBlob,
        *,
        cache_control: str = DEFAULT_CACHE_CONTROL,
    ) -> dict[str, Any]:
        """Upload ``blob`` under ``key``; storage failures become ``TransportError``."""
        try:
            return await storage.upload(
                key,
                blob.data,
                content_type=blob.mime_type,
                cache_control=cache_control,
                upsert=False,
                raw=self.raw_body,
            )
        except StorageError as exc:
            raise TransportError(exc.message) from exc


@dataclass(slots=True)
class BlobTransport(UploadTransport):
    """Primary fetch path with an optional base64 fallback, structured upload."""

    fallback_to_base64: bool = True
    name: str = "blob"

    async def materialize(
        self,
        materializer: BlobMaterializer,
        uri: str,
        *,
        check_source: bool,
    ) -> MaterializedBlob:
        return await materializer.materialize(
            uri,
            check_source=check_source,
            fallback=self.fallback_to_base64,
        )


@dataclass(slots=True)
class Base64Transport(UploadTransport):
    """Always read through base64, bypassing the primary fetch."""

    name: str = "base64"

    async def materialize(
        self,
        materializer: BlobMaterializer,
        uri: str,
        *,
        check_source: bool,
    ) -> MaterializedBlob:
        if check_source:
            await materializer.check_source(uri)
        blob = await materializer.base64_blob(uri)
        if blob.size == 0:
            raise BlobEmptyError("Blob created from base64 is empty")
        return blob


@dataclass(slots=True)
class RawBufferTransport(UploadTransport):
    """Send the bytes as the request body instead of a structured blob."""

    name: str = "raw_buffer"
    raw_body: bool = True

    async def materialize(
        self,
        materializer: BlobMaterializer,
        uri: str,
        *,
        check_source: bool,
    ) -> MaterializedBlob:
        if check_source:
            await materializer.check_source(uri)
        blob = await materializer.base64_blob(uri)
        if blob.size == 0:
            raise BlobEmptyError()
        return blob


__all__ = [
    "Base64Transport",
    "BlobTransport",
    "RawBufferTransport",
    "UploadTransport",
]
