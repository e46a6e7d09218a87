from .directory import PresenceDirectory

__all__ = ["PresenceDirectory"]
