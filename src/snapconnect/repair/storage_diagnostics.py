"""Health checks for the media bucket: connectivity, public URLs, policies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from ..exceptions import RemoteStoreError
from ..infrastructure.media_storage import MediaStorage
from ..media.url_probe import UrlProbe, UrlProbeResult
from ..media.url_resolver import is_canonical_public_url

logger = logging.getLogger(__name__)

SAMPLE_OBJECT_PATH = "test-user/snap_123456.jpg"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class CheckResult:
    success: bool
    details: str
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "details": self.details}
        if self.error is not None:
            payload["error"] = self.error
        payload.update(self.data)
        return payload


@dataclass(slots=True)
class StorageHealthReport:
    timestamp: datetime
    storage_connection: CheckResult
    url_generation: CheckResult
    storage_policies: CheckResult
    url_accessibility: UrlProbeResult | None = None

    @property
    def healthy(self) -> bool:
        checks = [self.storage_connection, self.url_generation, self.storage_policies]
        if not all(check.success for check in checks):
            return False
        return self.url_accessibility is None or self.url_accessibility.status != 403

    def recommendations(self) -> list[str]:
        hints: list[str] = []
        if not self.storage_connection.success:
            hints.append("Check SUPABASE_URL and SUPABASE_ANON_KEY")
        if not self.url_generation.success or not self.url_generation.data.get("has_correct_format", True):
            hints.append("Verify the bucket is public and the storage URL is canonical")
        if not self.storage_policies.success:
            hints.append("Check RLS policies on storage.objects table")
        if self.url_accessibility is not None and self.url_accessibility.status == 403:
            hints.append("Public read access is forbidden - check storage policies")
        return hints

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "healthy": self.healthy,
            "tests": {
                "storage_connection": self.storage_connection.to_dict(),
                "url_generation": self.url_generation.to_dict(),
                "url_accessibility": (
                    self.url_accessibility.to_dict() if self.url_accessibility is not None else None
                ),
                "storage_policies": self.storage_policies.to_dict(),
            },
            "recommendations": self.recommendations(),
        }


@dataclass(slots=True)
class StorageDiagnostics:
    """Run the storage checks used when images fail to display."""

    storage: MediaStorage
    probe: UrlProbe | None = None
    clock: Callable[[], datetime] = _utcnow
    log: logging.Logger = field(default_factory=lambda: logger)

    async def check_connection(self) -> CheckResult:
        try:
            entries = await self.storage.list("", limit=1)
        except RemoteStoreError as exc:
            return CheckResult(False, "Failed to connect to storage", error=exc.message)
        return CheckResult(True, f"Connected successfully - found {len(entries)} items in root")

    def check_public_url(self, path: str = SAMPLE_OBJECT_PATH) -> CheckResult:
        try:
            url = self.storage.get_public_url(path)
        except RemoteStoreError as exc:
            return CheckResult(False, "Error generating public URL", error=exc.message)
        if not url:
            return CheckResult(False, "Storage did not return a public URL", error="No public URL generated")
        has_correct_format = is_canonical_public_url(url, self.storage.bucket)
        details = (
            "URL generated with correct format"
            if has_correct_format
            else "URL generated but format may be incorrect"
        )
        return CheckResult(True, details, data={"public_url": url, "has_correct_format": has_correct_format})

    async def check_policies(self) -> CheckResult:
        try:
            entries = await self.storage.list("", limit=5)
        except RemoteStoreError as exc:
            return CheckResult(
                False,
                "Storage policies may be blocking access",
                error=exc.message,
                data={"recommendation": "Check RLS policies on storage.objects table"},
            )
        return CheckResult(
            True,
            f"Policies allow listing - found {len(entries)} items",
            data={"item_count": len(entries)},
        )

    async def run(self) -> StorageHealthReport:
        connection = await self.check_connection()
        url_generation = self.check_public_url()
        accessibility = None
        if url_generation.success and self.probe is not None:
            accessibility = await self.probe.check(url_generation.data["public_url"])
        policies = await self.check_policies()
        report = StorageHealthReport(
            timestamp=self.clock(),
            storage_connection=connection,
            url_generation=url_generation,
            storage_policies=policies,
            url_accessibility=accessibility,
        )
        self.log.info(
            "repair.storage_health",
            extra={"healthy": report.healthy, "recommendations": len(report.recommendations())},
        )
        return report


__all__ = ["CheckResult", "StorageDiagnostics", "StorageHealthReport"]
