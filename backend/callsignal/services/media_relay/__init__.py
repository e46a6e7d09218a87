"""
Media Relay Module

Control-plane clients for the external media relay.
"""
import logging

from .protocols import MediaRelayProtocol, RelayResult
from .null_relay import NullMediaRelay
from .http_relay import HttpMediaRelay
from .redis_relay import RedisMediaRelay

logger = logging.getLogger(__name__)


def create_media_relay(settings) -> MediaRelayProtocol:
    """Build the relay selected by settings.MEDIA_RELAY_BACKEND."""
    backend = settings.MEDIA_RELAY_BACKEND.lower()

    if backend == "http":
        logger.info(f"[MediaRelay] Using HTTP relay at {settings.MEDIA_RELAY_URL}")
        return HttpMediaRelay(settings.MEDIA_RELAY_URL, timeout=settings.MEDIA_RELAY_TIMEOUT_SEC)
    if backend == "redis":
        logger.info(f"[MediaRelay] Using redis relay on stream {settings.MEDIA_CONTROL_STREAM}")
        return RedisMediaRelay(settings.MEDIA_CONTROL_STREAM)
    if backend != "null":
        raise ValueError(f"Unknown MEDIA_RELAY_BACKEND: {settings.MEDIA_RELAY_BACKEND}")

    logger.info("[MediaRelay] No media relay configured, control commands are only logged")
    return NullMediaRelay()


__all__ = [
    "MediaRelayProtocol",
    "RelayResult",
    "NullMediaRelay",
    "HttpMediaRelay",
    "RedisMediaRelay",
    "create_media_relay",
]
