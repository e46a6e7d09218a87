"""
Signaling Exceptions

Custom exceptions for signaling errors.
"""


class SignalingError(Exception):
    """Base exception for signaling errors"""
    pass


class InvalidEventError(SignalingError):
    """Raised when an inbound frame cannot be parsed into a known event"""
    pass


class MediaRelayError(SignalingError):
    """Raised when the media relay control call fails"""
    pass
