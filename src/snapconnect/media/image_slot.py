"""State machine behind an image slot that displays one media reference."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from .url_resolver import (
    DEFAULT_CONSUMER,
    ImageErrorDetail,
    ImageErrorType,
    MediaUrlResolver,
    ResolutionResult,
)

logger = logging.getLogger(__name__)

MAX_RETRIES = 2


class SlotState(str, Enum):
    LOADING = "loading"
    DISPLAYING = "displaying"
    ERROR = "error"


@dataclass(slots=True)
class ImageSlot:
    """Drive ``loading -> displaying | error`` for one reference.

    The slot never applies a resolution after :meth:`unmount` or after the
    reference changed underneath an in-flight resolution.
    """

    resolver: MediaUrlResolver
    reference: str | None
    consumer_id: str = DEFAULT_CONSUMER
    max_retries: int = MAX_RETRIES
    state: SlotState = SlotState.LOADING
    url: str | None = None
    error: ImageErrorDetail | None = None
    retry_count: int = 0
    mounted: bool = True
    _generation: int = 0
    log: logging.Logger = field(default_factory=lambda: logger)

    @property
    def can_retry(self) -> bool:
        return self.state is SlotState.ERROR and self.retry_count < self.max_retries

    @property
    def user_message(self) -> str | None:
        return self.error.user_message() if self.error is not None else None

    async def load(self) -> SlotState:
        if not self.mounted:
            return self.state
        self._generation += 1
        generation = self._generation
        self.state = SlotState.LOADING
        self.url = None
        self.error = None

        result = await self.resolver.resolve(self.reference, self.consumer_id)

        if not self.mounted or generation != self._generation:
            self.log.debug(
                "media.slot.stale_result_dropped",
                extra={"reference": self.reference, "consumer_id": self.consumer_id},
            )
            return self.state
        self._apply(result)
        return self.state

    async def change_reference(self, reference: str | None) -> SlotState:
        self.reference = reference
        self.retry_count = 0
        return await self.load()

    async def retry(self) -> SlotState:
        """User-triggered retry; bypasses the cache for this reference."""
        if not self.can_retry:
            return self.state
        self.retry_count += 1
        if self.reference:
            self.resolver.invalidate(self.reference, self.consumer_id)
        self.log.info(
            "media.slot.retry",
            extra={"reference": self.reference, "attempt": self.retry_count},
        )
        return await self.load()

    def handle_render_success(self) -> None:
        if not self.mounted:
            return
        self.state = SlotState.DISPLAYING
        self.error = None

    def handle_render_error(
        self,
        headers: Mapping[str, str] | None = None,
        message: str | None = None,
    ) -> ImageErrorDetail | None:
        """Record that the resolved URL failed to render."""
        if not self.mounted:
            return None
        detail = ImageErrorDetail(
            ImageErrorType.IMAGE_LOAD_ERROR,
            message or "Image failed to load",
            original_url=self.reference,
            url=self.url,
        )
        if _content_length(headers) == "0":
            detail.type = ImageErrorType.EMPTY_FILE
            detail.message = "Image file is empty (0 bytes) - upload was corrupted"
            self.log.error("media.slot.empty_file", extra={"reference": self.reference, "url": self.url})

        self.state = SlotState.ERROR
        self.error = detail
        if self.reference:
            self.resolver.record_failure(self.reference, self.consumer_id, detail)
        return detail

    def unmount(self) -> None:
        self.mounted = False

    def _apply(self, result: ResolutionResult) -> None:
        if result.ok:
            self.state = SlotState.DISPLAYING
            self.url = result.url
            self.error = None
            return
        self.state = SlotState.ERROR
        self.url = None
        self.error = result.error


def _content_length(headers: Mapping[str, str] | None) -> str | None:
    if not headers:
        return None
    for key, value in headers.items():
        if key.lower() == "content-length":
            return str(value).strip()
    return None


__all__ = ["ImageSlot", "MAX_RETRIES", "SlotState"]
