"""HEAD-based accessibility probe for public media URLs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_STATUS_MESSAGES = {
    400: "Bad request - URL format invalid",
    401: "Unauthorized - authentication required",
    403: "Access forbidden - check storage policies",
    404: "File not found - check if file exists in storage",
    500: "Server error - try again later",
    503: "Service unavailable - try again later",
}


def status_message(status: int) -> str:
    return _STATUS_MESSAGES.get(status, f"HTTP {status} - Request failed")


@dataclass(slots=True)
class UrlProbeResult:
    url: str | None
    accessible: bool
    status: int | None = None
    error: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    network_error: bool = False

    @property
    def content_length(self) -> int | None:
        raw = self.headers.get("content-length")
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "accessible": self.accessible,
            "status": self.status,
            "error": self.error,
            "content_length": self.content_length,
            "network_error": self.network_error,
        }


@dataclass(slots=True)
class UrlProbe:
    """Issue ``HEAD`` requests and translate status codes into messages."""

    http: httpx.AsyncClient
    log: logging.Logger = field(default_factory=lambda: logger)

    async def check(self, url: str | None) -> UrlProbeResult:
        if not url:
            return UrlProbeResult(url=url, accessible=False, error="No URL provided")
        try:
            response = await self.http.head(url, headers={"Accept": "image/*"})
        except httpx.HTTPError as exc:
            self.log.warning("media.probe.network_error", extra={"url": url, "error": str(exc)})
            return UrlProbeResult(url=url, accessible=False, error=str(exc), network_error=True)

        headers = {key.lower(): value for key, value in response.headers.items()}
        if response.is_success:
            return UrlProbeResult(url=url, accessible=True, status=response.status_code, headers=headers)

        self.log.warning(
            "media.probe.not_accessible",
            extra={"url": url, "status": response.status_code},
        )
        return UrlProbeResult(
            url=url,
            accessible=False,
            status=response.status_code,
            error=status_message(response.status_code),
            headers=headers,
        )


__all__ = ["UrlProbe", "UrlProbeResult", "status_message"]
