"""Domain-specific exceptions for the upload pipeline."""

from __future__ import annotations

from enum import Enum


class UploadErrorCode(str, Enum):
    MISSING_PARAMETERS = "missing_parameters"
    INVALID_URI_SCHEME = "invalid_uri_scheme"
    SOURCE_NOT_FOUND = "source_not_found"
    SOURCE_EMPTY = "source_empty"
    BLOB_EMPTY = "blob_empty"
    TRANSPORT_ERROR = "transport_error"
    SIZE_EXCEEDED = "size_exceeded"
    PUBLIC_URL_UNAVAILABLE = "public_url_unavailable"


class UploadError(Exception):
    """Base class for upload failures surfaced to callers as results."""

    code: UploadErrorCode = UploadErrorCode.TRANSPORT_ERROR
    default_message = "Upload failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class MissingParametersError(UploadError):
    """Raised when the local reference or user id is missing."""

    code = UploadErrorCode.MISSING_PARAMETERS
    default_message = "Missing required parameters"


class InvalidUriSchemeError(UploadError):
    """Raised when the local reference is not a device file URI."""

    code = UploadErrorCode.INVALID_URI_SCHEME
    default_message = "Invalid URI format"


class SourceNotFoundError(UploadError):
    code = UploadErrorCode.SOURCE_NOT_FOUND
    default_message = "File does not exist"


class SourceEmptyError(UploadError):
    code = UploadErrorCode.SOURCE_EMPTY
    default_message = "File is empty (0 bytes)"


class BlobEmptyError(UploadError):
    """Raised when every materialization path produced zero bytes."""

    code = UploadErrorCode.BLOB_EMPTY
    default_message = "Blob is empty"


class TransportError(UploadError):
    """Wraps a network or storage failure of the upload call itself."""

    code = UploadErrorCode.TRANSPORT_ERROR


class SizeExceededError(UploadError):
    code = UploadErrorCode.SIZE_EXCEEDED
    default_message = "File exceeds maximum upload size"


class PublicUrlUnavailableError(UploadError):
    code = UploadErrorCode.PUBLIC_URL_UNAVAILABLE
    default_message = "Failed to get public URL"
