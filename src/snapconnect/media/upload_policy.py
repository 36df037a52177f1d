"""Declarative retry policies selecting upload transports and validation depth."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from ..config import DEFAULT_UPLOAD_MAX_BYTES
from .upload_transports import (
    Base64Transport,
    BlobTransport,
    RawBufferTransport,
    UploadTransport,
)


class VerifyMode(str, Enum):
    """What to do after the upload call returns without error."""

    NONE = "none"
    REPORT = "report"
    REPAIR = "repair"


@dataclass(frozen=True, slots=True)
class UploadPolicy:
    """Upload strategy expressed as data.

    ``transport`` performs the first attempt. When ``verify`` is
    ``REPAIR`` and the store reports zero bytes for the new object, the
    object is removed and the same payload is re-sent once through
    ``repair_transport``.
    """

    name: str
    transport: UploadTransport
    check_source: bool = True
    verify: VerifyMode = VerifyMode.NONE
    repair_transport: UploadTransport | None = None
    max_bytes: int | None = None
    random_suffix: bool = False

    def with_max_bytes(self, max_bytes: int | None) -> "UploadPolicy":
        return replace(self, max_bytes=max_bytes)


SIMPLE = UploadPolicy(
    name="simple",
    transport=BlobTransport(fallback_to_base64=False),
    check_source=False,
)

DIRECT = UploadPolicy(
    name="direct",
    transport=Base64Transport(),
    verify=VerifyMode.REPORT,
)

ROBUST = UploadPolicy(
    name="robust",
    transport=BlobTransport(fallback_to_base64=True),
    verify=VerifyMode.REPAIR,
    repair_transport=RawBufferTransport(),
    max_bytes=DEFAULT_UPLOAD_MAX_BYTES,
    random_suffix=True,
)

POLICIES: dict[str, UploadPolicy] = {policy.name: policy for policy in (SIMPLE, DIRECT, ROBUST)}


def get_policy(name: str) -> UploadPolicy:
    try:
        return POLICIES[name]
    except KeyError as exc:
        raise ValueError(f"Unknown upload policy '{name}'") from exc


__all__ = ["DIRECT", "POLICIES", "ROBUST", "SIMPLE", "UploadPolicy", "VerifyMode", "get_policy"]
