"""
Connection Models

Data classes representing signaling WebSocket connections.
"""
import uuid
from datetime import datetime, UTC
from typing import Dict, Any, Optional
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class SignalingConnection:
    """Represents a single client WebSocket connection."""

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.connection_id = connection_id or uuid.uuid4().hex
        # Identity that last registered on this connection
        self.identity: Optional[str] = None
        self.connected_at = datetime.now(UTC)

    async def send_json(self, data: Dict[str, Any]) -> bool:
        """Send JSON message to this connection."""
        try:
            await self.websocket.send_json(data)
            return True
        except Exception as e:
            logger.error(f"Error sending JSON to {self.identity or self.connection_id}: {e}")
            return False

    def __repr__(self) -> str:
        return f"SignalingConnection(id={self.connection_id!r}, identity={self.identity!r})"
