from __future__ import annotations

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.routers import audio_proxy as audio_proxy_router
from app.main import create_app
from services import audio_proxy_service
from services.audio_proxy_service import is_proxyable_url, open_audio_stream
from starlette.responses import StreamingResponse
from tests.fixtures import make_settings


@pytest_asyncio.fixture
async def app_client() -> AsyncClient:
    app = create_app(make_settings())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


def test_is_proxyable_url():
    assert is_proxyable_url("https://cdn.example.com/ep.mp3")
    assert is_proxyable_url("http://cdn.example.com/ep.mp3")
    assert not is_proxyable_url(None)
    assert not is_proxyable_url("")
    assert not is_proxyable_url("file:///etc/passwd")
    assert not is_proxyable_url("cdn.example.com/ep.mp3")


@pytest.mark.asyncio
async def test_audio_proxy_requires_url(app_client):
    response = await app_client.get("/audioproxy/")
    assert response.status_code == 400

    response = await app_client.get("/audioproxy/", params={"url": "ftp://example.com/a.mp3"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_audio_proxy_streams_upstream(app_client, monkeypatch):
    seen = {}

    async def fake_open(url, *, range_header=None, settings=None):
        seen["url"] = url
        seen["range"] = range_header

        async def body():
            yield b"ID3"
            yield b"\x00\x01"

        return StreamingResponse(
            body(),
            status_code=206,
            headers={"content-type": "audio/mpeg", "content-range": "bytes 0-4/100"},
        )

    monkeypatch.setattr(audio_proxy_router, "open_audio_stream", fake_open)

    response = await app_client.get(
        "/audioproxy/",
        params={"url": "https://cdn.example.com/ep.mp3"},
        headers={"Range": "bytes=0-4"},
    )

    assert response.status_code == 206
    assert response.content == b"ID3\x00\x01"
    assert response.headers["content-type"] == "audio/mpeg"
    assert seen == {"url": "https://cdn.example.com/ep.mp3", "range": "bytes=0-4"}


@pytest.mark.asyncio
async def test_audio_proxy_upstream_down_is_502(app_client, monkeypatch):
    async def fake_open(url, *, range_header=None, settings=None):
        raise httpx.ConnectError("Connection refused")

    monkeypatch.setattr(audio_proxy_router, "open_audio_stream", fake_open)

    response = await app_client.get("/audioproxy/", params={"url": "https://cdn.example.com/ep.mp3"})

    assert response.status_code == 502


@pytest.mark.asyncio
async def test_audio_proxy_passes_app_settings(monkeypatch):
    seen = {}

    async def fake_open(url, *, range_header=None, settings=None):
        seen["settings"] = settings
        return StreamingResponse(iter([b""]), headers={"content-type": "audio/mpeg"})

    monkeypatch.setattr(audio_proxy_router, "open_audio_stream", fake_open)
    settings = make_settings(USER_AGENT="podpage-test/1.0")
    app = create_app(settings)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        response = await client.get("/audioproxy/", params={"url": "https://cdn.example.com/ep.mp3"})

    assert response.status_code == 200
    assert seen["settings"] is settings


@pytest.mark.asyncio
async def test_open_audio_stream_asks_upstream_for_identity_encoding(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        return httpx.Response(
            206,
            headers={"content-type": "audio/mpeg", "content-range": "bytes 0-2/3", "x-upstream": "1"},
            content=b"ID3",
        )

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        audio_proxy_service.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )

    response = await open_audio_stream(
        "https://cdn.example.com/ep.mp3",
        range_header="bytes=0-2",
        settings=make_settings(USER_AGENT="podpage-test/1.0"),
    )
    body = b"".join([chunk async for chunk in response.body_iterator])
    await response.background()

    assert body == b"ID3"
    assert response.status_code == 206
    assert response.headers["content-range"] == "bytes 0-2/3"
    assert "x-upstream" not in response.headers
    assert seen["headers"]["accept-encoding"] == "identity"
    assert seen["headers"]["range"] == "bytes=0-2"
    assert seen["headers"]["user-agent"] == "podpage-test/1.0"
