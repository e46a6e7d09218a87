"""
WebSocket Router - Call Signaling Endpoint

Thin transport layer: wraps the socket in a SignalingConnection, parses
frames one at a time and hands them to the SessionCoordinator.
"""
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from callsignal.api.deps import get_coordinator
from callsignal.schemas.websocket_events import error_message, parse_event
from callsignal.services.connection import SignalingConnection
from callsignal.services.metrics import events_processed
from callsignal.services.session.coordinator import SessionCoordinator
from callsignal.services.session.exceptions import InvalidEventError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def ws_endpoint(
    websocket: WebSocket,
    coordinator: SessionCoordinator = Depends(get_coordinator)
):
    """
    WebSocket endpoint for call signaling.

    Message Types (JSON, "type" field):
        - register: {role}
        - call: {from, to, offer}
        - answer: {from, to, answer, sessionId?}
        - ice-candidate: {from, to, candidate}
        - end-call: {from, to, sessionId?}
        - start-recording-request / stop-recording-request: {from, to, sessionId?}

    Frames from one socket are processed strictly in arrival order.
    """
    await websocket.accept()
    connection = SignalingConnection(websocket)
    logger.info(f"[WS] User connected: {connection.connection_id}")

    try:
        while True:
            text = await websocket.receive_text()
            await _handle_frame(coordinator, connection, text)

    except WebSocketDisconnect:
        logger.info(f"[WS] Socket closed: {connection.connection_id}")

    except Exception as e:
        logger.error(f"[WS] Error during message loop for {connection.connection_id}: {e}")

    finally:
        await coordinator.disconnect(connection)


async def _handle_frame(coordinator: SessionCoordinator, connection: SignalingConnection, text: str):
    try:
        data = json.loads(text)
        event = parse_event(data)
    except json.JSONDecodeError:
        logger.warning(f"[WS] Invalid JSON received from {connection.connection_id}")
        events_processed.labels(event="unknown", outcome="invalid").inc()
        await connection.send_json(error_message("invalid JSON"))
        return
    except InvalidEventError as e:
        logger.warning(f"[WS] Invalid event from {connection.connection_id}: {e}")
        events_processed.labels(event="unknown", outcome="invalid").inc()
        await connection.send_json(error_message(str(e)))
        return

    try:
        await coordinator.dispatch(connection, event)
    except Exception as e:
        logger.error(f"[WS] Error handling {event.type} from {connection.connection_id}: {e}")
