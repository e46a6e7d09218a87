import asyncio
import time
from typing import Any, Dict, List, Optional

from callsignal.services.connection import SignalingConnection
from callsignal.services.media_relay import RelayResult


class FakeWebSocket:
    """Collects everything the server sends to one client."""

    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data: Dict[str, Any]):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


class FakeMediaRelay:
    """
    Media relay double recording every control call.

    Results can be scripted per command; setting `gate` holds every call
    until the event is set.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.results: Dict[str, RelayResult] = {}
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    async def _call(self, command: str, session) -> RelayResult:
        self.calls.append((command, session.session_id))
        if self.gate is not None:
            await self.gate.wait()
        return self.results.get(command, RelayResult.success())

    async def start_recording(self, session) -> RelayResult:
        return await self._call("start-recording", session)

    async def stop_recording(self, session) -> RelayResult:
        return await self._call("stop-recording", session)

    async def terminate_session(self, session) -> RelayResult:
        return await self._call("terminate-session", session)

    async def close(self) -> None:
        self.closed = True

    def commands(self) -> List[str]:
        return [command for command, _ in self.calls]


def new_connection(fail: bool = False) -> SignalingConnection:
    return SignalingConnection(FakeWebSocket(fail=fail))


def messages_of(connection: SignalingConnection, msg_type: str) -> List[Dict[str, Any]]:
    return [m for m in connection.websocket.sent if m["type"] == msg_type]


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll predicate from the test thread while the app loop catches up."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
