"""Dependency wiring helpers."""

from __future__ import annotations

import httpx
from fastapi import FastAPI

from .captions.caption_api import router as caption_router
from .captions.caption_service import CaptionService
from .config import AppConfig
from .infrastructure import SupabaseRest, SupabaseStorage
from .media.blob_materializer import BlobMaterializer
from .media.media_api import router as media_router
from .media.media_publisher import MediaPublisher
from .media.media_uploader import MediaUploader
from .media.upload_policy import ROBUST
from .media.url_cache import ResolvedUrlCache
from .media.url_probe import UrlProbe
from .media.url_resolver import MediaUrlResolver
from .repair.repair_api import router as repair_router
from .repair.repair_service import MediaRepairService
from .repair.storage_diagnostics import StorageDiagnostics
from .repositories import MemoryRepository, MessageRepository, StoryRepository
from .stories.story_service import StoryService


def include_routers(app: FastAPI, config: AppConfig, *, http: httpx.AsyncClient | None = None) -> None:
    """Mount module routers and attach services."""
    client = http or httpx.AsyncClient()
    supabase = config.supabase
    storage = SupabaseStorage(
        http=client,
        base_url=supabase.url,
        api_key=supabase.anon_key,
        bucket=supabase.bucket,
    )
    rest = SupabaseRest(http=client, base_url=supabase.url, api_key=supabase.anon_key)

    message_repo = MessageRepository(rest)
    story_repo = StoryRepository(rest)
    memory_repo = MemoryRepository(rest)

    uploader = MediaUploader(
        storage=storage,
        materializer=BlobMaterializer(),
        default_policy=ROBUST.with_max_bytes(config.upload_max_bytes),
    )
    url_cache = ResolvedUrlCache(
        max_entries=config.resolver_cache.max_entries,
        retain_entries=config.resolver_cache.retain_entries,
    )

    app.state.config = config
    app.state.http_client = client
    app.state.storage = storage
    app.state.rest = rest
    app.state.uploader = uploader
    app.state.publisher = MediaPublisher(
        uploader=uploader,
        messages=message_repo,
        stories=story_repo,
        memories=memory_repo,
    )
    app.state.url_cache = url_cache
    app.state.url_resolver = MediaUrlResolver(storage=storage, cache=url_cache)
    app.state.repair_service = MediaRepairService(
        messages=message_repo,
        stories=story_repo,
        storage=storage,
    )
    app.state.storage_diagnostics = StorageDiagnostics(storage=storage, probe=UrlProbe(http=client))
    app.state.story_service = StoryService(repo=story_repo)
    app.state.caption_service = CaptionService(settings=config.captions)

    app.include_router(caption_router)
    app.include_router(media_router)
    app.include_router(repair_router)
