from __future__ import annotations

import httpx
import pytest

from snapconnect.media.url_probe import UrlProbe, status_message


def build_probe(handler) -> UrlProbe:
    return UrlProbe(http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_probe_sends_head_and_reports_content_length() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, headers={"Content-Length": "0", "Content-Type": "image/jpeg"})

    result = await build_probe(handler).check("https://cdn.example.com/a.jpg")

    assert result.accessible is True
    assert result.status == 200
    assert result.content_length == 0
    assert seen[0].method == "HEAD"
    assert seen[0].headers["accept"] == "image/*"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "message"),
    [
        (403, "Access forbidden - check storage policies"),
        (404, "File not found - check if file exists in storage"),
        (418, "HTTP 418 - Request failed"),
    ],
)
async def test_probe_translates_failure_status(status: int, message: str) -> None:
    result = await build_probe(lambda request: httpx.Response(status)).check("https://cdn/a.jpg")

    assert result.accessible is False
    assert result.status == status
    assert result.error == message
    assert result.network_error is False


@pytest.mark.asyncio
async def test_probe_flags_network_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = await build_probe(handler).check("https://cdn/a.jpg")

    assert result.accessible is False
    assert result.network_error is True
    assert result.status is None


@pytest.mark.asyncio
async def test_probe_without_url() -> None:
    result = await build_probe(lambda request: httpx.Response(200)).check(None)

    assert result.error == "No URL provided"
    assert result.to_dict()["accessible"] is False


def test_status_message_known_codes() -> None:
    assert status_message(503) == "Service unavailable - try again later"
