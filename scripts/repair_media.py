"""Cron entry point for repairing corrupted media references and objects."""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass

import httpx

from snapconnect.config import AppConfig, load_config
from snapconnect.infrastructure import SupabaseRest, SupabaseStorage
from snapconnect.logging import configure_logging
from snapconnect.repair.repair_service import MediaRepairService
from snapconnect.repositories import MessageRepository, StoryRepository


@dataclass(slots=True)
class RepairSummary:
    bad_messages: int
    bad_stories: int
    empty_objects: int
    messages_updated: int = 0
    objects_deleted: int = 0
    dry_run: bool = True
    success: bool = True
    error: str | None = None


def build_repair_service(config: AppConfig, http: httpx.AsyncClient) -> MediaRepairService:
    supabase = config.supabase
    rest = SupabaseRest(http=http, base_url=supabase.url, api_key=supabase.anon_key)
    storage = SupabaseStorage(
        http=http,
        base_url=supabase.url,
        api_key=supabase.anon_key,
        bucket=supabase.bucket,
    )
    return MediaRepairService(
        messages=MessageRepository(rest),
        stories=StoryRepository(rest),
        storage=storage,
    )


async def run_repair(
    service: MediaRepairService,
    *,
    dry_run: bool,
    mark_bad_messages: bool,
    delete_empty_files: bool,
) -> RepairSummary:
    """Scan, then apply the requested repairs unless ``dry_run`` is set."""
    diagnostics = await service.run_cleanup_diagnostics()
    storage_scan = await service.scan_empty_storage_objects()
    summary = RepairSummary(
        bad_messages=diagnostics.messages.bad_count,
        bad_stories=diagnostics.stories.bad_count,
        empty_objects=storage_scan.empty_count,
        dry_run=dry_run,
    )
    if dry_run:
        return summary

    if mark_bad_messages:
        cleanup = await service.run_full_cleanup()
        summary.messages_updated = cleanup.messages_updated
        if not cleanup.success:
            summary.success = False
            summary.error = cleanup.error
    if delete_empty_files:
        summary.objects_deleted = await service.delete_empty_storage_objects(storage_scan)
    return summary


async def perform_repair(
    *,
    dry_run: bool,
    mark_bad_messages: bool,
    delete_empty_files: bool,
) -> RepairSummary:
    config = load_config()
    async with httpx.AsyncClient() as http:
        service = build_repair_service(config, http)
        return await run_repair(
            service,
            dry_run=dry_run,
            mark_bad_messages=mark_bad_messages,
            delete_empty_files=delete_empty_files,
        )


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Repair media references and zero-byte storage objects.")
    parser.add_argument("--dry-run", action="store_true", help="Only report counts without changing anything.")
    parser.add_argument(
        "--mark-bad-messages",
        action="store_true",
        help="Null file:// message references and mark them unavailable.",
    )
    parser.add_argument(
        "--delete-empty-files",
        action="store_true",
        help="Delete image objects whose reported size is 0 bytes.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    configure_logging()
    dry_run = args.dry_run or not (args.mark_bad_messages or args.delete_empty_files)
    try:
        summary = asyncio.run(
            perform_repair(
                dry_run=dry_run,
                mark_bad_messages=args.mark_bad_messages,
                delete_empty_files=args.delete_empty_files,
            )
        )
    except Exception as exc:
        print(f"repair failed: {exc}", file=sys.stderr)
        return 2

    if not summary.success:
        print(f"repair failed: {summary.error}", file=sys.stderr)
        return 2

    if summary.dry_run:
        print(
            f"repair dry-run, bad_messages={summary.bad_messages}, bad_stories={summary.bad_stories}, "
            f"empty_objects={summary.empty_objects}",
            file=sys.stdout,
        )
    else:
        print(
            f"repair done, messages_updated={summary.messages_updated}, "
            f"objects_deleted={summary.objects_deleted}, bad_stories={summary.bad_stories}",
            file=sys.stdout,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
