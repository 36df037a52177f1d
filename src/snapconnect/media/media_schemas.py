"""Pydantic schemas for the media resolution API."""

from __future__ import annotations

from pydantic import BaseModel


class ImageErrorPayload(BaseModel):
    type: str
    message: str
    user_message: str
    original_url: str | None = None
    url: str | None = None
    status: int | None = None


class ResolveResponse(BaseModel):
    reference: str | None
    consumer_id: str
    url: str | None = None
    error: ImageErrorPayload | None = None
    from_cache: bool = False
