"""
HTTP Media Relay Client

Drives the relay's REST control API:
    POST {base_url}/api/start-recording
    POST {base_url}/api/stop-recording     -> {"url": "<recording download url>"}
    POST {base_url}/api/terminate-session

Request body: {"sessionId": ..., "participants": [initiator, target]}
"""
import logging
from typing import Any, Dict, Optional

import httpx

from callsignal.config.constants import (
    RELAY_START_RECORDING,
    RELAY_STOP_RECORDING,
    RELAY_TERMINATE_SESSION,
)
from callsignal.services.media_relay.protocols import RelayResult
from callsignal.services.session.exceptions import MediaRelayError

logger = logging.getLogger(__name__)


class HttpMediaRelay:
    """Media relay reached over HTTP with a shared httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def start_recording(self, session) -> RelayResult:
        return await self._command(RELAY_START_RECORDING, session)

    async def stop_recording(self, session) -> RelayResult:
        return await self._command(RELAY_STOP_RECORDING, session)

    async def terminate_session(self, session) -> RelayResult:
        return await self._command(RELAY_TERMINATE_SESSION, session)

    async def close(self) -> None:
        await self._client.aclose()

    async def _command(self, command: str, session) -> RelayResult:
        try:
            data = await self._post(command, session)
        except MediaRelayError as e:
            logger.error(f"[MediaRelay] {command} failed for session {session.session_id}: {e}")
            return RelayResult.failure(str(e))

        logger.info(f"[MediaRelay] {command} ok for session {session.session_id}")
        return RelayResult.success(artifact=data.get("url"))

    async def _post(self, command: str, session) -> Dict[str, Any]:
        payload = {
            "sessionId": session.session_id,
            "participants": [session.initiator, session.target],
        }
        try:
            response = await self._client.post(f"/api/{command}", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise MediaRelayError(f"relay replied {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise MediaRelayError(f"relay unreachable: {e!r}") from e

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise MediaRelayError("relay returned invalid JSON") from e
        return data if isinstance(data, dict) else {}
