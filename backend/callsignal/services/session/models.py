"""
Call Session Models

In-memory record of one call attempt between two identities.
"""
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from callsignal.config.constants import STATUS_CALLING, STATUS_CONNECTED


@dataclass
class CallSession:
    """A call between initiator and target; deleted rather than marked ended."""

    session_id: str
    initiator: str
    target: str
    initiator_connection_id: str
    target_connection_id: Optional[str] = None
    status: str = STATUS_CALLING
    created_at: float = field(default_factory=time.monotonic)
    connected_at: Optional[float] = None

    def involves(self, identity: Optional[str]) -> bool:
        return identity is not None and identity in (self.initiator, self.target)

    def mark_connected(self) -> bool:
        """Move calling -> connected. Returns False if already connected."""
        if self.status != STATUS_CALLING:
            return False
        self.status = STATUS_CONNECTED
        self.connected_at = time.monotonic()
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "initiator": self.initiator,
            "target": self.target,
            "status": self.status,
            "age_sec": round(time.monotonic() - self.created_at, 3),
        }
