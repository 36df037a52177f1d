"""Batch repair and diagnostics for previously corrupted media.

Two classes of damage are handled:

* records whose ``media_url`` still holds a device-local ``file://`` path
  because the upload never happened;
* objects in the bucket that were stored with zero bytes.

Scans are read-only. ``mark_bad_messages_unavailable`` and
``delete_empty_storage_objects`` are destructive and only ever touch the set
the matching scan classifies as bad.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Generic, TypeVar

from ..exceptions import RemoteStoreError
from ..infrastructure.media_storage import MediaStorage, StorageObject
from ..media.media_models import MessageRecord, ReferenceKind, StoryRecord, classify_reference
from ..repositories import MessageRepository, StoryRepository

logger = logging.getLogger(__name__)

UNAVAILABLE_MARKER = "Image unavailable (upload failed)"
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png"})
URL_SAMPLE_SIZE = 3
STORAGE_SAMPLE_SIZE = 5
STORAGE_LIST_LIMIT = 1000

RecordT = TypeVar("RecordT", MessageRecord, StoryRecord)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class UrlScanReport(Generic[RecordT]):
    """Good (``https://``) versus bad (``file://``) references of one table."""

    total: int
    bad: list[RecordT] = field(default_factory=list)
    good: list[RecordT] = field(default_factory=list)

    @property
    def bad_count(self) -> int:
        return len(self.bad)

    @property
    def good_count(self) -> int:
        return len(self.good)

    def samples(self, limit: int = URL_SAMPLE_SIZE) -> list[dict[str, Any]]:
        return [{"id": record.id, "media_url": record.media_url} for record in self.bad[:limit]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "bad": self.bad_count,
            "good": self.good_count,
            "samples": self.samples(),
        }


@dataclass(slots=True)
class StorageScanReport:
    """Image objects in the bucket partitioned by reported size."""

    total: int
    empty: list[StorageObject] = field(default_factory=list)
    valid: list[StorageObject] = field(default_factory=list)

    @property
    def empty_count(self) -> int:
        return len(self.empty)

    @property
    def valid_count(self) -> int:
        return len(self.valid)

    def samples(self, limit: int = STORAGE_SAMPLE_SIZE) -> list[dict[str, Any]]:
        return [{"path": obj.path, "size": obj.size} for obj in self.empty[:limit]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "empty": self.empty_count,
            "valid": self.valid_count,
            "samples": self.samples(),
        }


@dataclass(slots=True)
class CleanupDiagnostics:
    messages: UrlScanReport[MessageRecord]
    stories: UrlScanReport[StoryRecord]
    timestamp: datetime

    @property
    def total_issues(self) -> int:
        return self.messages.bad_count + self.stories.bad_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "messages": self.messages.to_dict(),
            "stories": self.stories.to_dict(),
            "total_issues": self.total_issues,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(slots=True)
class FullCleanupReport:
    success: bool
    message: str
    before: CleanupDiagnostics | None = None
    after: CleanupDiagnostics | None = None
    messages_updated: int = 0
    error: str | None = None

    @property
    def items_fixed(self) -> int:
        if self.before is None:
            return 0
        if self.after is None:
            return 0
        return self.before.total_issues - self.after.total_issues

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "before": self.before.to_dict() if self.before else None,
            "after": self.after.to_dict() if self.after else None,
            "messages_updated": self.messages_updated,
            "items_fixed": self.items_fixed,
            "error": self.error,
        }


@dataclass(slots=True)
class StorageCleanupReport:
    success: bool
    message: str
    before: StorageScanReport | None = None
    deleted: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "before": self.before.to_dict() if self.before else None,
            "deleted": self.deleted,
            "error": self.error,
        }


def _partition(records: list[RecordT]) -> UrlScanReport[RecordT]:
    report: UrlScanReport[RecordT] = UrlScanReport(total=len(records))
    for record in records:
        if classify_reference(record.media_url) is ReferenceKind.LOCAL_FILE:
            report.bad.append(record)
        elif record.media_url and record.media_url.startswith("https://"):
            report.good.append(record)
    return report


@dataclass(slots=True)
class MediaRepairService:
    """Scan and repair media references and storage objects."""

    messages: MessageRepository
    stories: StoryRepository
    storage: MediaStorage
    clock: Callable[[], datetime] = _utcnow
    log: logging.Logger = field(default_factory=lambda: logger)

    async def scan_messages_for_bad_urls(self) -> UrlScanReport[MessageRecord]:
        report = _partition(await self.messages.list_image_messages())
        self.log.info(
            "repair.scan.messages",
            extra={"total": report.total, "bad": report.bad_count, "good": report.good_count},
        )
        return report

    async def scan_stories_for_bad_urls(self) -> UrlScanReport[StoryRecord]:
        report = _partition(await self.stories.list_image_stories())
        self.log.info(
            "repair.scan.stories",
            extra={"total": report.total, "bad": report.bad_count, "good": report.good_count},
        )
        return report

    async def mark_bad_messages_unavailable(self) -> int:
        """Null every ``file://`` message reference; returns the updated count."""
        updated = await self.messages.null_local_file_references(UNAVAILABLE_MARKER)
        self.log.info("repair.messages.marked_unavailable", extra={"updated": len(updated)})
        return len(updated)

    async def run_cleanup_diagnostics(self) -> CleanupDiagnostics:
        diagnostics = CleanupDiagnostics(
            messages=await self.scan_messages_for_bad_urls(),
            stories=await self.scan_stories_for_bad_urls(),
            timestamp=self.clock(),
        )
        self.log.info("repair.diagnostics", extra={"total_issues": diagnostics.total_issues})
        return diagnostics

    async def run_full_cleanup(self) -> FullCleanupReport:
        """Scan, repair messages, rescan. Does nothing when nothing is broken."""
        try:
            before = await self.run_cleanup_diagnostics()
            if before.total_issues == 0:
                return FullCleanupReport(
                    success=True,
                    message="No cleanup needed",
                    before=before,
                    after=before,
                )

            updated = 0
            if before.messages.bad_count > 0:
                updated = await self.mark_bad_messages_unavailable()

            after = await self.run_cleanup_diagnostics()
        except RemoteStoreError as exc:
            self.log.error("repair.cleanup.failed", extra={"error": exc.message})
            return FullCleanupReport(
                success=False,
                message=f"Cleanup failed: {exc.message}",
                error=exc.message,
            )

        report = FullCleanupReport(
            success=True,
            message="Cleanup completed successfully",
            before=before,
            after=after,
            messages_updated=updated,
        )
        self.log.info(
            "repair.cleanup.done",
            extra={"items_fixed": report.items_fixed, "remaining": after.total_issues},
        )
        return report

    async def scan_empty_storage_objects(self) -> StorageScanReport:
        """List the bucket root plus one level of per-user folders."""
        root = await self.storage.list(
            "",
            limit=STORAGE_LIST_LIMIT,
            offset=0,
            sort_by={"column": "created_at", "order": "desc"},
        )
        candidates = list(root)
        for folder in (entry for entry in root if entry.name and "." not in entry.name):
            try:
                candidates.extend(
                    await self.storage.list(folder.name, limit=STORAGE_LIST_LIMIT, offset=0)
                )
            except RemoteStoreError as exc:
                self.log.warning(
                    "repair.storage.folder_skipped",
                    extra={"folder": folder.name, "error": exc.message},
                )

        images = [obj for obj in candidates if obj.extension in IMAGE_EXTENSIONS]
        report = StorageScanReport(total=len(images))
        for obj in images:
            # Unknown sizes are neither empty nor valid.
            if obj.size == 0:
                report.empty.append(obj)
            elif obj.size is not None and obj.size > 0:
                report.valid.append(obj)

        self.log.info(
            "repair.scan.storage",
            extra={"total": report.total, "empty": report.empty_count, "valid": report.valid_count},
        )
        return report

    async def delete_empty_storage_objects(self, report: StorageScanReport | None = None) -> int:
        """Remove objects reported as zero bytes; returns the removed count."""
        scan = report or await self.scan_empty_storage_objects()
        paths = [obj.path for obj in scan.empty if obj.size == 0]
        if not paths:
            return 0
        removed = await self.storage.remove(paths)
        self.log.info(
            "repair.storage.deleted",
            extra={"requested": len(paths), "deleted": len(removed)},
        )
        return len(removed)

    async def run_storage_cleanup(self) -> StorageCleanupReport:
        try:
            before = await self.scan_empty_storage_objects()
            if before.empty_count == 0:
                return StorageCleanupReport(
                    success=True,
                    message="No empty files found - storage is clean",
                    before=before,
                )
            deleted = await self.delete_empty_storage_objects(before)
        except RemoteStoreError as exc:
            self.log.error("repair.storage_cleanup.failed", extra={"error": exc.message})
            return StorageCleanupReport(
                success=False,
                message=f"Cleanup failed: {exc.message}",
                error=exc.message,
            )
        return StorageCleanupReport(
            success=True,
            message=f"Cleaned up {deleted} empty files",
            before=before,
            deleted=deleted,
        )


__all__ = [
    "CleanupDiagnostics",
    "FullCleanupReport",
    "IMAGE_EXTENSIONS",
    "MediaRepairService",
    "StorageCleanupReport",
    "StorageScanReport",
    "UNAVAILABLE_MARKER",
    "UrlScanReport",
]
