"""Domain level exceptions shared by the remote store adapters."""

from __future__ import annotations

__all__ = [
    "AppError",
    "RemoteStoreError",
    "StorageError",
    "RestError",
]


class AppError(Exception):
    """Base class for application specific errors."""


class RemoteStoreError(AppError):
    """Raised when the hosted backend rejects a call or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StorageError(RemoteStoreError):
    """Raised for object store failures (upload, list, remove)."""


class RestError(RemoteStoreError):
    """Raised for relational API and remote procedure failures."""
