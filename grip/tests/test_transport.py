"""
Tests for grip.transport and PublisherClient over a real aiohttp session.

HTTP responses are simulated with aioresponses: no live endpoint required.
"""
import asyncio
import json
import logging

import aiohttp
import pytest
from aioresponses import aioresponses
from yarl import URL

from grip.data import Item
from grip.errors import PublishError
from grip.formats import WebSocketMessageFormat
from grip.publisher import PublisherClient
from grip.transport import AiohttpTransport, PublishRequest, TransportError

BASE = "http://grip.test"
PUBLISH_URL = f"{BASE}/publish/"


@pytest.fixture
async def transport():
    transport = AiohttpTransport(timeout_seconds=5)
    yield transport
    await transport.close()


def make_request() -> PublishRequest:
    return PublishRequest(
        method="POST",
        url=PUBLISH_URL,
        headers={"Content-Type": "application/json", "Content-Length": "2"},
        body=b"{}",
    )


# ── AiohttpTransport ──────────────────────────────────────────────────────────

async def test_send_returns_status_and_body(transport):
    with aioresponses() as m:
        m.post(PUBLISH_URL, status=200, body="result")

        response = await transport.send(make_request())

        assert response.status_code == 200
        assert await response.text() == "result"


async def test_send_connection_error_raises_transport_error(transport):
    with aioresponses() as m:
        m.post(PUBLISH_URL, exception=aiohttp.ClientConnectionError("Connection Error"))

        with pytest.raises(TransportError) as exc_info:
            await transport.send(make_request())

    assert exc_info.value.message == "Connection Error"


async def test_send_timeout_raises_transport_error(transport):
    with aioresponses() as m:
        m.post(PUBLISH_URL, exception=asyncio.TimeoutError())

        with pytest.raises(TransportError, match="timed out"):
            await transport.send(make_request())


async def test_non_utf8_body_is_decoded_with_replacement(transport):
    with aioresponses() as m:
        m.post(PUBLISH_URL, status=200, body=b"\xff\xfe ok")

        response = await transport.send(make_request())

        assert await response.text() == "\ufffd\ufffd ok"


def test_new_event_loop_logs_abandoned_session(caplog):
    transport = AiohttpTransport()

    async def send_once():
        with aioresponses() as m:
            m.post(PUBLISH_URL, status=200, body="ok")
            await (await transport.send(make_request())).text()

    asyncio.run(send_once())
    with caplog.at_level(logging.WARNING, logger="grip.transport"):
        asyncio.run(send_once())

    assert "previous session" in caplog.text
    asyncio.run(transport.close())


async def test_session_is_reused(transport):
    with aioresponses() as m:
        m.post(PUBLISH_URL, status=200, body="a", repeat=True)

        await (await transport.send(make_request())).text()
        first = transport._session
        await (await transport.send(make_request())).text()

        assert transport._session is first


async def test_close_without_session_is_noop():
    await AiohttpTransport().close()


# ── PublisherClient end to end ────────────────────────────────────────────────

async def test_publish_posts_envelope(transport):
    client = PublisherClient(BASE + "/", transport)
    client.set_auth_jwt("token")
    item = Item(WebSocketMessageFormat("hello"))

    with aioresponses() as m:
        m.post(PUBLISH_URL, status=200, body="result")

        await client.publish("channel", item)

        (call,) = m.requests[("POST", URL(PUBLISH_URL))]
        body = call.kwargs["data"]
        assert json.loads(body) == {
            "items": [{"ws-message": {"content": "hello"}, "channel": "channel"}]
        }
        assert call.kwargs["headers"]["Authorization"] == "Bearer token"
        assert call.kwargs["headers"]["Content-Length"] == str(len(body))


async def test_publish_error_status_uses_body_as_message(transport):
    client = PublisherClient(BASE, transport)

    with aioresponses() as m:
        m.post(PUBLISH_URL, status=500, body="fail")

        with pytest.raises(PublishError) as exc_info:
            await client.publish("channel", Item(WebSocketMessageFormat("x")))

    assert exc_info.value.message == "fail"
    assert exc_info.value.data == {"status_code": 500}


async def test_publish_connection_error(transport):
    client = PublisherClient(BASE, transport)

    with aioresponses() as m:
        m.post(PUBLISH_URL, exception=aiohttp.ClientConnectionError("Connection Error"))

        with pytest.raises(PublishError) as exc_info:
            await client.publish("channel", Item(WebSocketMessageFormat("x")))

    assert exc_info.value.message == "Connection Error"
    assert exc_info.value.data == {"status_code": -1}


async def test_publish_non_utf8_success_body_resolves(transport):
    client = PublisherClient(BASE, transport)

    with aioresponses() as m:
        m.post(PUBLISH_URL, status=200, body=b"\xff\xfe ok")

        assert await client.publish("channel", Item(WebSocketMessageFormat("x"))) is None


async def test_publish_non_utf8_error_body_becomes_message(transport):
    client = PublisherClient(BASE, transport)

    with aioresponses() as m:
        m.post(PUBLISH_URL, status=500, body=b"bad \xff")

        with pytest.raises(PublishError) as exc_info:
            await client.publish("channel", Item(WebSocketMessageFormat("x")))

    assert exc_info.value.message == "bad \ufffd"
    assert exc_info.value.data == {"status_code": 500}
