from __future__ import annotations


class ScopelogError(Exception):
    """Base class for errors raised by scopelog itself."""


class PayloadSerializationError(ScopelogError, ValueError):
    """
    Raised when a payload cannot project itself into a flat key/value object.

    This is always the payload's own defect; context merging never masks it.
    """

    def __init__(self, payload_type: str, reason: str) -> None:
        super().__init__(f"payload {payload_type} failed to serialize: {reason}")
        self.payload_type = payload_type
        self.reason = reason


class ConfigurationError(ScopelogError, ValueError):
    """Raised for invalid logging configuration values (verbosity, level)."""
