import sys
from pathlib import Path

import pytest

# Add backend/ (1 level up from tests/) to sys.path so tests can import 'callsignal'
root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))


from callsignal.services.session.coordinator import SessionCoordinator
from tests.helpers import FakeMediaRelay, new_connection


@pytest.fixture
def relay():
    return FakeMediaRelay()


@pytest.fixture
async def coordinator(relay):
    coordinator = SessionCoordinator(media_relay=relay)
    yield coordinator
    if relay.gate is not None:
        relay.gate.set()
    await coordinator.drain()


@pytest.fixture
async def pair(coordinator):
    """userA and userB registered on their own connections, acks cleared."""
    conn_a = new_connection()
    conn_b = new_connection()
    await coordinator.register(conn_a, "userA")
    await coordinator.register(conn_b, "userB")
    conn_a.websocket.sent.clear()
    conn_b.websocket.sent.clear()
    return conn_a, conn_b
