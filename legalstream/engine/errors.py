"""Exception hierarchy for the streaming client.

Only transport failures ever reach the caller (as an Error event).
Everything else raised here signals programming or configuration
mistakes.
"""
from __future__ import annotations


class LegalStreamError(Exception):
    """Base exception for all streaming client errors."""


class TransportError(LegalStreamError):
    """The byte stream could not be opened or read.

    Raised for reasons other than a caller-initiated close().
    """
    def __init__(self, reason: str, status: int | None = None, body: str = ""):
        self.reason = reason
        self.status = status
        self.body = body
        super().__init__(reason)


class SessionStateError(LegalStreamError):
    """A session was driven through an invalid lifecycle transition."""
    def __init__(self, current: str, target: str, allowed: str = ""):
        self.current = current
        self.target = target
        message = f"Invalid session transition: {current} -> {target}"
        if allowed:
            message += f". Allowed from {current}: {allowed}"
        super().__init__(message)


class ConfigError(LegalStreamError):
    """A configuration file could not be loaded."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load config {path}: {reason}")
