"""Call signaling coordinator backend."""

__version__ = "1.0.0"
