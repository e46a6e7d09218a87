import json

import fakeredis
import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from callsignal.config.settings import Settings
from callsignal.services.media_relay import (
    HttpMediaRelay,
    NullMediaRelay,
    RedisMediaRelay,
    create_media_relay,
)
from callsignal.services.session.models import CallSession


def make_session():
    return CallSession(
        session_id="userA_userB_1",
        initiator="userA",
        target="userB",
        initiator_connection_id="c1",
    )


def http_relay(handler):
    client = httpx.AsyncClient(base_url="http://relay.test", transport=httpx.MockTransport(handler))
    return HttpMediaRelay("http://relay.test", client=client)


@pytest.mark.asyncio
async def test_http_relay_posts_session_to_command_endpoint():
    seen = []

    def handler(request: httpx.Request):
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"ok": True})

    relay = http_relay(handler)
    result = await relay.start_recording(make_session())
    await relay.close()

    assert result.ok
    assert seen == [("/api/start-recording", {"sessionId": "userA_userB_1", "participants": ["userA", "userB"]})]


@pytest.mark.asyncio
async def test_http_relay_stop_returns_download_url():
    def handler(request: httpx.Request):
        return httpx.Response(200, json={"url": "https://media/rec/userA_userB_1.webm"})

    relay = http_relay(handler)
    result = await relay.stop_recording(make_session())

    assert result.ok
    assert result.artifact == "https://media/rec/userA_userB_1.webm"


@pytest.mark.asyncio
async def test_http_relay_error_status_is_failure():
    relay = http_relay(lambda request: httpx.Response(503))

    result = await relay.terminate_session(make_session())

    assert not result.ok
    assert "503" in result.error


@pytest.mark.asyncio
async def test_http_relay_unreachable_is_failure():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("refused", request=request)

    relay = http_relay(handler)
    result = await relay.start_recording(make_session())

    assert not result.ok
    assert "unreachable" in result.error


@pytest.mark.asyncio
async def test_http_relay_empty_body_is_success():
    relay = http_relay(lambda request: httpx.Response(204))

    result = await relay.terminate_session(make_session())

    assert result.ok
    assert result.artifact is None


@pytest.mark.asyncio
async def test_redis_relay_enqueues_command():
    fake = fakeredis.FakeAsyncRedis()

    async def _get_fake():
        return fake

    relay = RedisMediaRelay("stream:media:control", redis_factory=_get_fake)
    result = await relay.stop_recording(make_session())

    assert result.ok
    entries = await fake.xrange("stream:media:control")
    assert len(entries) == 1
    _, fields = entries[0]
    assert fields[b"command"] == b"stop-recording"
    assert fields[b"session_id"] == b"userA_userB_1"
    assert fields[b"initiator"] == b"userA"
    assert fields[b"target"] == b"userB"


@pytest.mark.asyncio
async def test_redis_relay_failure_is_reported():
    async def _broken():
        raise RedisConnectionError("redis down")

    relay = RedisMediaRelay(redis_factory=_broken)
    result = await relay.start_recording(make_session())

    assert not result.ok
    assert "redis down" in result.error


@pytest.mark.asyncio
async def test_null_relay_always_succeeds():
    relay = NullMediaRelay()
    assert (await relay.start_recording(make_session())).ok
    assert (await relay.stop_recording(make_session())).ok
    assert (await relay.terminate_session(make_session())).ok


def test_factory_selects_backend():
    assert isinstance(create_media_relay(Settings(MEDIA_RELAY_BACKEND="null")), NullMediaRelay)
    assert isinstance(create_media_relay(Settings(MEDIA_RELAY_BACKEND="redis")), RedisMediaRelay)
    assert isinstance(
        create_media_relay(Settings(MEDIA_RELAY_BACKEND="http", MEDIA_RELAY_URL="http://relay.test")),
        HttpMediaRelay
    )

    with pytest.raises(ValueError):
        create_media_relay(Settings(MEDIA_RELAY_BACKEND="carrier-pigeon"))
