"""
Presence Directory

Maps a participant identity to its currently live connection.
Last registration wins; the replaced connection is left open.
"""
from typing import Dict, List, Optional
import logging

from callsignal.services.connection import SignalingConnection

logger = logging.getLogger(__name__)


class PresenceDirectory:
    """identity -> live connection lookup."""

    def __init__(self):
        self._connections: Dict[str, SignalingConnection] = {}

    def register(self, identity: str, connection: SignalingConnection) -> Optional[SignalingConnection]:
        """
        Bind identity to connection, replacing any previous binding.

        Returns:
            The connection previously bound to identity, if it was a different one.
        """
        # Same connection claiming a new identity drops its old binding
        old_identity = connection.identity
        if old_identity is not None and old_identity != identity:
            if self._connections.get(old_identity) is connection:
                del self._connections[old_identity]
                logger.info(f"[Presence] Connection {connection.connection_id} switched from {old_identity} to {identity}")

        previous = self._connections.get(identity)
        self._connections[identity] = connection
        connection.identity = identity

        if previous is not None and previous is not connection:
            logger.info(
                f"[Presence] Identity {identity} re-registered: "
                f"{previous.connection_id} replaced by {connection.connection_id}"
            )
            return previous

        logger.info(f"[Presence] User {identity} registered with connection {connection.connection_id}")
        return None

    def lookup(self, identity: Optional[str]) -> Optional[SignalingConnection]:
        if identity is None:
            return None
        return self._connections.get(identity)

    def unregister(self, connection: SignalingConnection) -> bool:
        """
        Remove the binding for connection.identity if it still points at connection.

        A stale connection never evicts a newer registration under the same identity.
        """
        identity = connection.identity
        if identity is None:
            return False

        if self._connections.get(identity) is not connection:
            logger.debug(
                f"[Presence] Skipping unregister of {identity}: "
                f"connection {connection.connection_id} is no longer current"
            )
            return False

        del self._connections[identity]
        logger.info(f"[Presence] De-registering user: {identity}")
        return True

    def is_present(self, identity: str) -> bool:
        return identity in self._connections

    def identities(self) -> List[str]:
        return list(self._connections.keys())

    def __len__(self) -> int:
        return len(self._connections)
