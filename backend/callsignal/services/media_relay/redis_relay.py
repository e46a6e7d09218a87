"""
Redis Media Relay

Publishes control commands to a redis stream that the media worker consumes.
A command counts as successful once it is enqueued.
"""
import logging
from typing import Awaitable, Callable

import redis.asyncio as redis
from redis.exceptions import RedisError

from callsignal.config.constants import (
    RELAY_START_RECORDING,
    RELAY_STOP_RECORDING,
    RELAY_TERMINATE_SESSION,
)
from callsignal.config.redis import get_redis
from callsignal.services.media_relay.protocols import RelayResult

logger = logging.getLogger(__name__)


class RedisMediaRelay:
    """Media relay driven through a redis stream."""

    def __init__(
        self,
        stream_name: str = "stream:media:control",
        redis_factory: Callable[[], Awaitable[redis.Redis]] = get_redis
    ):
        self.stream_name = stream_name
        self._redis_factory = redis_factory

    async def start_recording(self, session) -> RelayResult:
        return await self._publish(RELAY_START_RECORDING, session)

    async def stop_recording(self, session) -> RelayResult:
        return await self._publish(RELAY_STOP_RECORDING, session)

    async def terminate_session(self, session) -> RelayResult:
        return await self._publish(RELAY_TERMINATE_SESSION, session)

    async def close(self) -> None:
        # The shared client is closed by close_redis() at shutdown
        pass

    async def _publish(self, command: str, session) -> RelayResult:
        data = {
            b"command": command.encode("utf-8"),
            b"session_id": session.session_id.encode("utf-8"),
            b"initiator": session.initiator.encode("utf-8"),
            b"target": session.target.encode("utf-8"),
        }
        try:
            r = await self._redis_factory()
            message_id = await r.xadd(self.stream_name, data)
        except RedisError as e:
            logger.error(f"[MediaRelay] Failed to enqueue {command} for session {session.session_id}: {e}")
            return RelayResult.failure(f"redis error: {e}")

        if isinstance(message_id, bytes):
            message_id = message_id.decode("utf-8")
        logger.info(f"[MediaRelay] Enqueued {command} for session {session.session_id} ({message_id})")
        return RelayResult.success()
