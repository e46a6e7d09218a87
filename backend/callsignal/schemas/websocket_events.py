"""
WebSocket Event Schemas

Pydantic models for type-safe signaling event handling.
Every frame is a JSON object whose "type" names the event.
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from callsignal.config.constants import (
    EVENT_CALL_ANSWERED,
    EVENT_CALL_ENDED,
    EVENT_CALL_SESSION_INFO,
    EVENT_ERROR,
    EVENT_ICE_CANDIDATE,
    EVENT_INCOMING_CALL,
    EVENT_RECORDING_STATUS,
    EVENT_REGISTERED,
    EVENT_START_RECORDING_SIGNAL,
    EVENT_STOP_RECORDING_SIGNAL,
)
from callsignal.services.session.exceptions import InvalidEventError


# =============================================================================
# Inbound Event Models
# =============================================================================

class SignalingEventBase(BaseModel):
    """Base model for all inbound events."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str


class RegisterEvent(SignalingEventBase):
    """Client claims an identity for its connection."""
    type: Literal["register"] = "register"
    role: str = Field(min_length=1)


class RoutedEvent(SignalingEventBase):
    """Event addressed from one identity to another."""
    from_: str = Field(alias="from", min_length=1)
    to: str = Field(min_length=1)


class SessionScopedEvent(RoutedEvent):
    """Routed event that may name the session it belongs to."""
    session_id: Optional[str] = Field(None, alias="sessionId")


class CallEvent(RoutedEvent):
    type: Literal["call"] = "call"
    offer: Any


class AnswerEvent(SessionScopedEvent):
    type: Literal["answer"] = "answer"
    answer: Any


class IceCandidateEvent(RoutedEvent):
    type: Literal["ice-candidate"] = "ice-candidate"
    candidate: Any


class EndCallEvent(SessionScopedEvent):
    type: Literal["end-call"] = "end-call"


class StartRecordingRequestEvent(SessionScopedEvent):
    type: Literal["start-recording-request"] = "start-recording-request"


class StopRecordingRequestEvent(SessionScopedEvent):
    type: Literal["stop-recording-request"] = "stop-recording-request"


InboundEvent = Annotated[
    Union[
        RegisterEvent,
        CallEvent,
        AnswerEvent,
        IceCandidateEvent,
        EndCallEvent,
        StartRecordingRequestEvent,
        StopRecordingRequestEvent,
    ],
    Field(discriminator="type"),
]

inbound_event_adapter: TypeAdapter = TypeAdapter(InboundEvent)


def parse_event(data: Any) -> SignalingEventBase:
    """
    Validate a decoded JSON frame into its event model.

    Raises:
        InvalidEventError: unknown type or missing/invalid fields
    """
    if not isinstance(data, dict):
        raise InvalidEventError("frame must be a JSON object")
    try:
        return inbound_event_adapter.validate_python(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'frame'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidEventError(errors) from e


# =============================================================================
# Outbound Messages
# =============================================================================

def registered(role: str) -> Dict[str, Any]:
    return {"type": EVENT_REGISTERED, "role": role}


def incoming_call(from_: str, offer: Any) -> Dict[str, Any]:
    return {"type": EVENT_INCOMING_CALL, "from": from_, "offer": offer}


def call_session_info(session_id: str) -> Dict[str, Any]:
    return {"type": EVENT_CALL_SESSION_INFO, "sessionId": session_id}


def call_answered(from_: str, answer: Any) -> Dict[str, Any]:
    return {"type": EVENT_CALL_ANSWERED, "from": from_, "answer": answer}


def ice_candidate(from_: str, candidate: Any) -> Dict[str, Any]:
    return {"type": EVENT_ICE_CANDIDATE, "from": from_, "candidate": candidate}


def call_ended(from_: str, reason: Optional[str] = None) -> Dict[str, Any]:
    message = {"type": EVENT_CALL_ENDED, "from": from_}
    if reason:
        message["reason"] = reason
    return message


def start_recording_signal(from_: str) -> Dict[str, Any]:
    return {"type": EVENT_START_RECORDING_SIGNAL, "from": from_}


def stop_recording_signal(from_: str, artifact: Optional[str] = None) -> Dict[str, Any]:
    message = {"type": EVENT_STOP_RECORDING_SIGNAL, "from": from_}
    if artifact:
        message["artifact"] = artifact
    return message


def recording_failed(action: str, session_id: str, error: Optional[str]) -> Dict[str, Any]:
    return {
        "type": EVENT_RECORDING_STATUS,
        "status": "failed",
        "action": action,
        "sessionId": session_id,
        "error": error or "unknown error",
    }


def error_message(detail: str) -> Dict[str, Any]:
    return {"type": EVENT_ERROR, "detail": detail}
