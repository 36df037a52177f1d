"""Admin routes exposing the media repair toolkit."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from .repair_service import MediaRepairService
from .storage_diagnostics import StorageDiagnostics

router = APIRouter(prefix="/admin", tags=["repair"])


def get_repair_service(request: Request) -> MediaRepairService:
    try:
        return request.app.state.repair_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("MediaRepairService is not configured") from exc


def get_storage_diagnostics(request: Request) -> StorageDiagnostics:
    try:
        return request.app.state.storage_diagnostics  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("StorageDiagnostics is not configured") from exc


@router.get("/media/diagnostics")
async def media_diagnostics(
    service: MediaRepairService = Depends(get_repair_service),
) -> dict[str, Any]:
    """Count good and bad references in messages and stories."""
    diagnostics = await service.run_cleanup_diagnostics()
    return diagnostics.to_dict()


@router.post("/media/messages/mark-unavailable")
async def mark_messages_unavailable(
    service: MediaRepairService = Depends(get_repair_service),
) -> dict[str, int]:
    return {"updated": await service.mark_bad_messages_unavailable()}


@router.post("/media/cleanup")
async def full_cleanup(
    service: MediaRepairService = Depends(get_repair_service),
) -> dict[str, Any]:
    report = await service.run_full_cleanup()
    return report.to_dict()


@router.get("/storage/empty-objects")
async def list_empty_objects(
    service: MediaRepairService = Depends(get_repair_service),
) -> dict[str, Any]:
    report = await service.scan_empty_storage_objects()
    return report.to_dict()


@router.delete("/storage/empty-objects")
async def delete_empty_objects(
    service: MediaRepairService = Depends(get_repair_service),
) -> dict[str, int]:
    """Remove zero-byte image objects; objects with unknown size are kept."""
    return {"deleted": await service.delete_empty_storage_objects()}


@router.get("/storage/health")
async def storage_health(
    diagnostics: StorageDiagnostics = Depends(get_storage_diagnostics),
) -> dict[str, Any]:
    report = await diagnostics.run()
    return report.to_dict()
