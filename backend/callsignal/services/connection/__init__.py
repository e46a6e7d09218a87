"""
Connection Module

Wrapper around the client WebSocket handed to the session coordinator.
"""
from .models import SignalingConnection

__all__ = [
    "SignalingConnection",
]
