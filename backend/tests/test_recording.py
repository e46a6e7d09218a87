"""
Tests for recording requests and their media relay completions.
"""
import asyncio

import pytest

from callsignal.schemas.websocket_events import (
    CallEvent,
    EndCallEvent,
    StartRecordingRequestEvent,
    StopRecordingRequestEvent,
)
from callsignal.services.media_relay import RelayResult
from tests.helpers import messages_of, new_connection


def start_event(from_="userA", to="userB"):
    return StartRecordingRequestEvent(**{"from": from_, "to": to})


def stop_event(from_="userA", to="userB"):
    return StopRecordingRequestEvent(**{"from": from_, "to": to})


async def open_call(coordinator, conn_a):
    return await coordinator.call(conn_a, CallEvent(**{"from": "userA", "to": "userB", "offer": "O"}))


@pytest.mark.asyncio
async def test_recording_without_session_is_rejected(coordinator, pair, relay):
    conn_a, conn_b = pair

    accepted = await coordinator.start_recording_request(conn_a, start_event())
    await coordinator.drain()

    assert accepted is False
    assert relay.calls == []
    assert conn_a.websocket.sent == []
    assert conn_b.websocket.sent == []


@pytest.mark.asyncio
async def test_start_recording_signals_both_participants(coordinator, pair, relay):
    conn_a, conn_b = pair
    session = await open_call(coordinator, conn_a)
    conn_b.websocket.sent.clear()

    assert await coordinator.start_recording_request(conn_a, start_event())
    await coordinator.drain()

    assert relay.calls == [("start-recording", session.session_id)]
    assert messages_of(conn_a, "start-recording-signal") == [{"type": "start-recording-signal", "from": "userA"}]
    assert messages_of(conn_b, "start-recording-signal") == [{"type": "start-recording-signal", "from": "userA"}]


@pytest.mark.asyncio
async def test_callee_can_request_recording(coordinator, pair, relay):
    conn_a, conn_b = pair
    session = await open_call(coordinator, conn_a)

    assert await coordinator.start_recording_request(conn_b, start_event(from_="userB", to="userA"))
    await coordinator.drain()

    assert relay.calls == [("start-recording", session.session_id)]
    assert messages_of(conn_a, "start-recording-signal") == [{"type": "start-recording-signal", "from": "userB"}]


@pytest.mark.asyncio
async def test_stop_recording_carries_artifact(coordinator, pair, relay):
    conn_a, conn_b = pair
    await open_call(coordinator, conn_a)
    relay.results["stop-recording"] = RelayResult.success(artifact="https://media/rec/1.webm")

    await coordinator.stop_recording_request(conn_a, stop_event())
    await coordinator.drain()

    expected = {"type": "stop-recording-signal", "from": "userA", "artifact": "https://media/rec/1.webm"}
    assert messages_of(conn_a, "stop-recording-signal") == [expected]
    assert messages_of(conn_b, "stop-recording-signal") == [expected]


@pytest.mark.asyncio
async def test_relay_failure_notifies_requester_only(coordinator, pair, relay):
    conn_a, conn_b = pair
    session = await open_call(coordinator, conn_a)
    relay.results["start-recording"] = RelayResult.failure("relay replied 503")

    await coordinator.start_recording_request(conn_a, start_event())
    await coordinator.drain()

    assert messages_of(conn_a, "start-recording-signal") == []
    assert messages_of(conn_b, "start-recording-signal") == []
    assert messages_of(conn_a, "recording-status") == [{
        "type": "recording-status",
        "status": "failed",
        "action": "start",
        "sessionId": session.session_id,
        "error": "relay replied 503",
    }]
    # Session state is untouched by the failure
    assert coordinator.get_session(session.session_id) is session


@pytest.mark.asyncio
async def test_relay_exception_is_treated_as_failure(coordinator, pair, relay):
    conn_a, _ = pair
    await open_call(coordinator, conn_a)

    async def boom(session):
        raise RuntimeError("connection reset")

    relay.stop_recording = boom

    await coordinator.stop_recording_request(conn_a, stop_event())
    await coordinator.drain()

    failures = messages_of(conn_a, "recording-status")
    assert len(failures) == 1
    assert failures[0]["action"] == "stop"
    assert "connection reset" in failures[0]["error"]


@pytest.mark.asyncio
async def test_completion_after_session_ended_is_ignored(coordinator, pair, relay):
    conn_a, conn_b = pair
    await open_call(coordinator, conn_a)
    relay.gate = asyncio.Event()

    await coordinator.start_recording_request(conn_a, start_event())
    await coordinator.end_call(conn_a, EndCallEvent(**{"from": "userA", "to": "userB"}))
    relay.gate.set()
    await coordinator.drain()

    assert relay.commands() == ["start-recording", "terminate-session"]
    assert messages_of(conn_a, "start-recording-signal") == []
    assert messages_of(conn_b, "start-recording-signal") == []


@pytest.mark.asyncio
async def test_pending_relay_call_does_not_block_routing(coordinator, pair, relay):
    conn_a, conn_b = pair
    await open_call(coordinator, conn_a)
    relay.gate = asyncio.Event()

    await coordinator.start_recording_request(conn_a, start_event())

    # Unrelated traffic keeps flowing while the relay has not answered
    conn_c = new_connection()
    conn_d = new_connection()
    await coordinator.register(conn_c, "userC")
    await coordinator.register(conn_d, "userD")
    other = await coordinator.call(conn_c, CallEvent(**{"from": "userC", "to": "userD", "offer": "O"}))
    assert other is not None
    assert messages_of(conn_d, "incoming-call")

    relay.gate.set()
    await coordinator.drain()
    assert messages_of(conn_b, "start-recording-signal")


@pytest.mark.asyncio
async def test_recording_after_disconnect_is_rejected(coordinator, pair, relay):
    conn_a, conn_b = pair
    await open_call(coordinator, conn_a)
    await coordinator.disconnect(conn_b)
    await coordinator.drain()
    relay.calls.clear()

    assert await coordinator.start_recording_request(conn_a, start_event()) is False
    await coordinator.drain()
    assert relay.calls == []
