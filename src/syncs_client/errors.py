"""Exception types raised by the client runtime."""

from __future__ import annotations


class SyncsError(Exception):
    """Base class for all client runtime errors."""


class ReadOnlyError(SyncsError, PermissionError):
    """Raised when local code writes to a GLOBAL or GROUP shared object."""

    def __init__(self, scope: str, name: str, key: str):
        super().__init__(f"{scope} shared object '{name}' is read-only (key: {key})")
        self.scope = scope
        self.name = name
        self.key = key


class RemoteCallError(SyncsError):
    """The peer answered a remote call with an error string."""

    def __init__(self, error: str, name: str | None = None):
        message = f"Remote call '{name}' failed: {error}" if name else error
        super().__init__(message)
        self.error = error
        self.name = name


class NotConnectedError(SyncsError, ConnectionError):
    """A command could not be written to the channel."""


class FrameDecodeError(SyncsError, ValueError):
    """An inbound frame is not valid percent-encoded JSON."""
