from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from snapconnect.api.errors import ApiError, api_error_handler
from snapconnect.media.media_api import router
from snapconnect.media.url_resolver import MediaUrlResolver
from tests.mocks.media import InMemoryStorage


def build_client() -> tuple[TestClient, MediaUrlResolver]:
    resolver = MediaUrlResolver(storage=InMemoryStorage())
    app = FastAPI()
    app.include_router(router)
    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.state.url_resolver = resolver
    return TestClient(app), resolver


def test_resolve_storage_path_returns_canonical_url() -> None:
    client, _ = build_client()

    response = client.get("/media/resolve", params={"reference": "userA/snap_1.jpg", "consumer_id": "m1"})

    assert response.status_code == 200
    assert response.json() == {
        "reference": "userA/snap_1.jpg",
        "consumer_id": "m1",
        "url": "https://x.supabase.co/storage/v1/object/public/media/userA/snap_1.jpg",
        "error": None,
        "from_cache": False,
    }


def test_resolve_local_file_returns_structured_error() -> None:
    client, _ = build_client()

    response = client.get("/media/resolve", params={"reference": "file:///cache/a.jpg"})

    body = response.json()
    assert response.status_code == 200
    assert body["url"] is None
    assert body["consumer_id"] == "unknown"
    assert body["error"]["type"] == "upload_failed"
    assert body["error"]["user_message"] == "Upload failed - image not properly saved"


def test_second_resolution_is_served_from_cache_until_invalidated() -> None:
    client, resolver = build_client()
    params = {"reference": "https://cdn.example.com/a.jpg", "consumer_id": "m1"}

    client.get("/media/resolve", params=params)
    cached = client.get("/media/resolve", params=params).json()
    invalidated = client.delete("/media/resolve", params=params).json()
    fresh = client.get("/media/resolve", params=params).json()

    assert cached["from_cache"] is True
    assert invalidated == {"invalidated": True}
    assert fresh["from_cache"] is False
    assert len(resolver.cache) == 1


def test_missing_reference_reports_no_url() -> None:
    client, _ = build_client()

    body = client.get("/media/resolve").json()

    assert body["error"]["type"] == "no_url"


def test_blank_invalidation_is_bad_request() -> None:
    client, _ = build_client()

    response = client.delete("/media/resolve", params={"reference": "  "})

    assert response.status_code == 400
    assert response.json() == {"error": {"code": "bad_request", "message": "reference must not be empty"}}
