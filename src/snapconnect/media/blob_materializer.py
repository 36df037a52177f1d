"""Turn a local device file reference into an uploadable binary payload.

Fetching a local reference through the primary path can silently yield zero
bytes on some platforms. The materializer therefore pre-checks the source,
tries the primary fetch, and falls back to a base64 read of the raw bytes
before giving up with :class:`BlobEmptyError`.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from urllib.parse import unquote, urlparse

from .media_models import LOCAL_FILE_SCHEME
from .upload_errors import BlobEmptyError, SourceEmptyError, SourceNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
UNREADABLE_SOURCE = "File could not be read"


@dataclass(slots=True)
class LocalFileInfo:
    exists: bool
    size: int = 0


@dataclass(slots=True)
class MaterializedBlob:
    """In-memory payload ready for upload."""

    data: bytes
    mime_type: str
    method: str

    @property
    def size(self) -> int:
        return len(self.data)


class LocalFileReader(Protocol):
    """Access to files on the capturing device."""

    async def stat(self, uri: str) -> LocalFileInfo:
        ...

    async def fetch_bytes(self, uri: str) -> bytes:
        ...

    async def read_base64(self, uri: str) -> str:
        ...


def uri_to_path(uri: str) -> Path:
    """Map ``file://`` URIs (or bare paths) to a filesystem path."""
    if uri.startswith(LOCAL_FILE_SCHEME):
        return Path(unquote(urlparse(uri).path))
    if "://" in uri:
        raise SourceNotFoundError(f"Unsupported local reference: {uri}")
    return Path(uri)


class DeviceFileReader:
    """Reader backed by the local filesystem."""

    async def stat(self, uri: str) -> LocalFileInfo:
        path = uri_to_path(uri)
        return await asyncio.to_thread(_stat_path, path)

    async def fetch_bytes(self, uri: str) -> bytes:
        path = uri_to_path(uri)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise SourceNotFoundError() from exc
        except OSError as exc:
            raise SourceNotFoundError(UNREADABLE_SOURCE) from exc

    async def read_base64(self, uri: str) -> str:
        raw = await self.fetch_bytes(uri)
        return base64.b64encode(raw).decode("ascii")


def _stat_path(path: Path) -> LocalFileInfo:
    try:
        if not path.is_file():
            return LocalFileInfo(exists=False)
        size = path.stat().st_size
    except OSError as exc:
        raise SourceNotFoundError(UNREADABLE_SOURCE) from exc
    return LocalFileInfo(exists=True, size=size)


def guess_mime_type(uri: str) -> str:
    return mimetypes.guess_type(uri)[0] or DEFAULT_MIME_TYPE


@dataclass(slots=True)
class BlobMaterializer:
    """Produce :class:`MaterializedBlob` payloads from local references."""

    reader: LocalFileReader = field(default_factory=DeviceFileReader)
    log: logging.Logger = field(default_factory=lambda: logger)

    async def check_source(self, uri: str) -> LocalFileInfo:
        """Fail fast when the source is missing or empty."""
        info = await self.reader.stat(uri)
        if not info.exists:
            raise SourceNotFoundError()
        if info.size == 0:
            raise SourceEmptyError()
        return info

    async def fetch_blob(self, uri: str) -> MaterializedBlob:
        data = await self.reader.fetch_bytes(uri)
        return MaterializedBlob(data=data, mime_type=guess_mime_type(uri), method="fetch")

    async def base64_blob(self, uri: str) -> MaterializedBlob:
        encoded = await self.reader.read_base64(uri)
        if not encoded:
            raise BlobEmptyError("Failed to read file as base64")
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise BlobEmptyError("Failed to decode base64 file contents") from exc
        return MaterializedBlob(data=data, mime_type=guess_mime_type(uri), method="base64")

    async def materialize(
        self,
        uri: str,
        *,
        check_source: bool = True,
        fallback: bool = True,
    ) -> MaterializedBlob:
        """Run the full pre-check, fetch and base64-fallback sequence."""
        if check_source:
            await self.check_source(uri)

        blob = await self.fetch_blob(uri)
        if blob.size > 0:
            return blob

        if not fallback:
            raise BlobEmptyError()

        self.log.warning("media.blob.fetch_empty", extra={"uri": uri})
        blob = await self.base64_blob(uri)
        if blob.size == 0:
            raise BlobEmptyError()
        self.log.info("media.blob.base64_fallback", extra={"uri": uri, "bytes": blob.size})
        return blob


__all__ = [
    "BlobMaterializer",
    "DeviceFileReader",
    "LocalFileInfo",
    "LocalFileReader",
    "MaterializedBlob",
    "UNREADABLE_SOURCE",
    "guess_mime_type",
    "uri_to_path",
]
