"""Caption generation endpoint mirroring the hosted edge function contract."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError

from .caption_schemas import CaptionRequest, CaptionResponse
from .caption_service import CaptionError, CaptionService

router = APIRouter(tags=["captions"])
logger = logging.getLogger(__name__)

CAPTION_PATH = "/functions/v1/generate-ai-caption"
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}
INVALID_PROMPT = "userPrompt is required and must be a non-empty string"


def get_caption_service(request: Request) -> CaptionService:
    try:
        return request.app.state.caption_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("CaptionService is not configured") from exc


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=CORS_HEADERS)


@router.api_route(CAPTION_PATH, methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def generate_caption(request: Request) -> Response:
    """Return ``{"caption": ...}`` for a ``{"userPrompt": ...}`` body."""
    if request.method == "OPTIONS":
        return PlainTextResponse("ok", headers=CORS_HEADERS)
    if request.method != "POST":
        return _error(status.HTTP_405_METHOD_NOT_ALLOWED, "Method not allowed")

    try:
        body = await request.json()
        payload = CaptionRequest.model_validate(body)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, INVALID_PROMPT)

    prompt = payload.prompt
    if prompt is None:
        return _error(status.HTTP_400_BAD_REQUEST, INVALID_PROMPT)

    service = get_caption_service(request)
    try:
        caption = await service.generate(prompt)
    except CaptionError as exc:
        logger.warning("captions.failed", extra={"error": exc.public_message, "detail": exc.detail})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.public_message)

    return JSONResponse(
        content=CaptionResponse(caption=caption).model_dump(),
        headers=CORS_HEADERS,
    )
