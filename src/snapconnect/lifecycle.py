"""Lifecycle helpers wiring background tasks for FastAPI startup."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from .exceptions import RemoteStoreError
from .infrastructure.supabase_rest import SupabaseRest

logger = logging.getLogger(__name__)

CLEANUP_RPC = "cleanup_expired_messages"


async def cleanup_expired_messages_once(rest: SupabaseRest) -> int:
    """Invoke the server-side expiry routine and return the expired count."""

    result: Any = await rest.rpc(CLEANUP_RPC)
    expired = int(result or 0)
    logger.info("messages.cleanup.done", extra={"expired": expired})
    return expired


async def run_periodic_message_cleanup(
    *,
    rest: SupabaseRest,
    shutdown_event: asyncio.Event,
    interval_seconds: float = 1800.0,
    cleanup: Callable[[SupabaseRest], Any] | None = None,
) -> None:
    """Run message cleanup at startup and then every ``interval_seconds``."""

    interval = max(1.0, float(interval_seconds))
    run_once = cleanup or cleanup_expired_messages_once
    try:
        while not shutdown_event.is_set():
            try:
                await run_once(rest)
            except RemoteStoreError as exc:
                logger.warning("messages.cleanup.failed", extra={"error": exc.message})
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
    except asyncio.CancelledError:  # pragma: no cover - shutdown path
        raise
    logger.info("messages.cleanup.stopped")


__all__ = [
    "CLEANUP_RPC",
    "cleanup_expired_messages_once",
    "run_periodic_message_cleanup",
]
