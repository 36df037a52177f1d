"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.errors import ApiError, api_error_handler, remote_store_error_handler
from .config import AppConfig, load_config
from .dependencies import include_routers
from .exceptions import RemoteStoreError
from .lifecycle import run_periodic_message_cleanup
from .logging import configure_logging

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config: AppConfig = app.state.config
    shutdown_event = asyncio.Event()
    cleanup_task: asyncio.Task[None] | None = None
    if not config.disable_message_cleanup:
        cleanup_task = asyncio.create_task(
            run_periodic_message_cleanup(
                rest=app.state.rest,
                shutdown_event=shutdown_event,
                interval_seconds=config.message_cleanup_interval_seconds,
            )
        )
    try:
        yield
    finally:
        shutdown_event.set()
        if cleanup_task is not None:
            await cleanup_task
        app.state.url_cache.clear()
        await app.state.http_client.aclose()
        logger.info("app.shutdown")


def create_app(config: AppConfig | None = None, *, http: httpx.AsyncClient | None = None) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="SnapConnect Media", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )
    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RemoteStoreError, remote_store_error_handler)  # type: ignore[arg-type]
    include_routers(app, cfg, http=http)
    return app


app = create_app()
