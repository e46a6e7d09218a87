from typing import Optional

from callsignal.config.settings import settings
from callsignal.services.media_relay import create_media_relay
from callsignal.services.session.coordinator import SessionCoordinator

_coordinator: Optional[SessionCoordinator] = None


def get_coordinator() -> SessionCoordinator:
    """Process-wide coordinator, created on first use."""
    global _coordinator
    if _coordinator is None:
        _coordinator = SessionCoordinator(
            media_relay=create_media_relay(settings),
            calling_timeout_sec=settings.CALLING_TIMEOUT_SEC,
            sweep_interval_sec=settings.SWEEP_INTERVAL_SEC,
        )
    return _coordinator


async def close_coordinator():
    global _coordinator
    if _coordinator is not None:
        await _coordinator.drain()
        await _coordinator.media_relay.close()
        _coordinator = None
