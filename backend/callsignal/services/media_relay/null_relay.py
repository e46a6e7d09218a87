import logging

from callsignal.services.media_relay.protocols import RelayResult

logger = logging.getLogger(__name__)


class NullMediaRelay:
    """Stand-in used when no media relay is deployed. Every command succeeds."""

    async def start_recording(self, session) -> RelayResult:
        logger.info(f"[MediaRelay] (null) start recording for session {session.session_id}")
        return RelayResult.success()

    async def stop_recording(self, session) -> RelayResult:
        logger.info(f"[MediaRelay] (null) stop recording for session {session.session_id}")
        return RelayResult.success()

    async def terminate_session(self, session) -> RelayResult:
        logger.info(f"[MediaRelay] (null) terminate session {session.session_id}")
        return RelayResult.success()

    async def close(self) -> None:
        pass
