"""
Protocol definitions for the media relay control plane.

The signaling core never touches media; it only asks an external relay to
start/stop recording or tear a session down. Implementations:
    - NullMediaRelay: logs and succeeds (no relay deployed)
    - HttpMediaRelay: REST control API of the relay
    - RedisMediaRelay: control commands on a redis stream

Usage:
    from callsignal.services.media_relay import MediaRelayProtocol

    async def record(relay: MediaRelayProtocol, session: CallSession):
        result = await relay.start_recording(session)
        if not result.ok:
            ...
"""
from dataclasses import dataclass
from typing import Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from callsignal.services.session.models import CallSession


@dataclass(frozen=True)
class RelayResult:
    """Outcome of a control-plane call."""

    ok: bool
    error: Optional[str] = None
    # e.g. download URL of a finished recording
    artifact: Optional[str] = None

    @classmethod
    def success(cls, artifact: Optional[str] = None) -> "RelayResult":
        return cls(ok=True, artifact=artifact)

    @classmethod
    def failure(cls, error: str) -> "RelayResult":
        return cls(ok=False, error=error)


class MediaRelayProtocol(Protocol):
    """
    Interface for the media relay collaborator.

    Implementations must not raise; failures are reported through RelayResult.
    """

    async def start_recording(self, session: "CallSession") -> RelayResult:
        """Begin recording the media of session."""
        ...

    async def stop_recording(self, session: "CallSession") -> RelayResult:
        """
        Stop recording the media of session.

        Returns:
            RelayResult whose artifact references the finished recording, if any.
        """
        ...

    async def terminate_session(self, session: "CallSession") -> RelayResult:
        """Release every media resource held for session."""
        ...

    async def close(self) -> None:
        ...
