"""Session-scoped cache of media reference resolutions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .url_resolver import ImageErrorDetail

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str]


@dataclass(slots=True)
class CachedResolution:
    """Either a displayable URL or the error that prevented one."""

    url: str | None = None
    error: "ImageErrorDetail | None" = None

    @property
    def ok(self) -> bool:
        return self.url is not None and self.error is None


@dataclass(slots=True)
class ResolvedUrlCache:
    """Bounded map keyed by ``(reference, consumer_id)``.

    When an insert pushes the size above ``max_entries`` only the
    ``retain_entries`` most recently inserted keys survive. Eviction follows
    insertion order, not access order. Overwriting an existing key keeps
    its original position.
    """

    max_entries: int = 100
    retain_entries: int = 50
    _entries: dict[CacheKey, CachedResolution] = field(default_factory=dict)
    log: logging.Logger = field(default_factory=lambda: logger)

    def __post_init__(self) -> None:
        if self.retain_entries > self.max_entries:
            raise ValueError("retain_entries must not exceed max_entries")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[CacheKey]:
        return list(self._entries)

    def get(self, reference: str, consumer_id: str) -> CachedResolution | None:
        return self._entries.get((reference, consumer_id))

    def set(self, reference: str, consumer_id: str, value: CachedResolution) -> None:
        self._entries[(reference, consumer_id)] = value
        if len(self._entries) > self.max_entries:
            self._prune()

    def invalidate(self, reference: str, consumer_id: str) -> bool:
        return self._entries.pop((reference, consumer_id), None) is not None

    def clear(self) -> None:
        """Drop every entry; called when the session ends."""
        self._entries.clear()

    def _prune(self) -> None:
        before = len(self._entries)
        survivors = list(self._entries.items())[-self.retain_entries :] if self.retain_entries else []
        self._entries = dict(survivors)
        self.log.debug(
            "media.url_cache.pruned",
            extra={"before": before, "after": len(self._entries)},
        )


__all__ = ["CacheKey", "CachedResolution", "ResolvedUrlCache"]
