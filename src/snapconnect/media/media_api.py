"""HTTP route resolving persisted media references."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..api.errors import bad_request_error
from .media_schemas import ImageErrorPayload, ResolveResponse
from .url_resolver import DEFAULT_CONSUMER, MediaUrlResolver

router = APIRouter(prefix="/media", tags=["media"])


def get_url_resolver(request: Request) -> MediaUrlResolver:
    try:
        return request.app.state.url_resolver  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("MediaUrlResolver is not configured") from exc


@router.get("/resolve", response_model=ResolveResponse)
async def resolve_media(
    reference: str | None = None,
    consumer_id: str = DEFAULT_CONSUMER,
    resolver: MediaUrlResolver = Depends(get_url_resolver),
) -> ResolveResponse:
    """Resolve ``reference`` to a displayable URL or a structured error."""
    result = await resolver.resolve(reference, consumer_id)
    error = None
    if result.error is not None:
        error = ImageErrorPayload(**result.error.to_dict())
    return ResolveResponse(
        reference=reference,
        consumer_id=consumer_id,
        url=result.url,
        error=error,
        from_cache=result.from_cache,
    )


@router.delete("/resolve")
async def invalidate_media(
    reference: str,
    consumer_id: str = DEFAULT_CONSUMER,
    resolver: MediaUrlResolver = Depends(get_url_resolver),
) -> dict[str, bool]:
    """Drop a cached resolution so the next lookup re-derives it."""
    if not reference.strip():
        raise bad_request_error("reference must not be empty")
    return {"invalidated": resolver.invalidate(reference, consumer_id)}
