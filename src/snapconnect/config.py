"""Application configuration builder."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_UPLOAD_MAX_BYTES = 10 * 1024 * 1024  # 10 MiB


@dataclass(slots=True)
class SupabaseSettings:
    url: str
    anon_key: str
    bucket: str = "media"


@dataclass(slots=True)
class ResolverCacheSettings:
    max_entries: int = 100
    retain_entries: int = 50


@dataclass(slots=True)
class CaptionSettings:
    api_key: str | None
    model: str = "gpt-4"
    endpoint: str = "https://api.openai.com/v1/chat/completions"
    timeout_seconds: float = 30.0


@dataclass(slots=True)
class AppConfig:
    supabase: SupabaseSettings
    resolver_cache: ResolverCacheSettings
    captions: CaptionSettings
    upload_max_bytes: int = DEFAULT_UPLOAD_MAX_BYTES
    message_cleanup_interval_seconds: int = 30 * 60
    disable_message_cleanup: bool = False


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> AppConfig:
    """Load configuration from environment variables."""
    supabase = SupabaseSettings(
        url=os.getenv("SUPABASE_URL", "http://localhost:54321").rstrip("/"),
        anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
        bucket=os.getenv("MEDIA_BUCKET", "media"),
    )
    resolver_cache = ResolverCacheSettings(
        max_entries=int(os.getenv("RESOLVER_CACHE_MAX_ENTRIES", 100)),
        retain_entries=int(os.getenv("RESOLVER_CACHE_RETAIN", 50)),
    )
    captions = CaptionSettings(
        api_key=os.getenv("OPENAI_API_KEY") or None,
        model=os.getenv("CAPTION_MODEL", "gpt-4"),
        endpoint=os.getenv("CAPTION_ENDPOINT", "https://api.openai.com/v1/chat/completions"),
        timeout_seconds=float(os.getenv("CAPTION_TIMEOUT_SECONDS", 30)),
    )
    return AppConfig(
        supabase=supabase,
        resolver_cache=resolver_cache,
        captions=captions,
        upload_max_bytes=int(os.getenv("UPLOAD_MAX_BYTES", DEFAULT_UPLOAD_MAX_BYTES)),
        message_cleanup_interval_seconds=int(os.getenv("MESSAGE_CLEANUP_INTERVAL_SECONDS", 30 * 60)),
        disable_message_cleanup=_env_flag("DISABLE_MESSAGE_CLEANUP"),
    )
