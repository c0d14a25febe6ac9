"""Error taxonomy shared by core and adapters."""

__all__ = ["ConfigurationError", "SerializationError", "TransportError"]


class ConfigurationError(ValueError):
    """Engine wiring or settings are unusable; raised at construction time."""


class SerializationError(ValueError):
    """A record or packet cannot be encoded as wire JSON."""


class TransportError(Exception):
    """Network-level failure of one request (refused, timeout, DNS, ...)."""
