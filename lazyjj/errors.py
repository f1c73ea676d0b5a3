"""Exception taxonomy shared by the session manager and command façade.

Every recoverable failure derives from ``LazyJJError`` so the command
boundary can catch it in one place and turn it into a notification.
A line that does not parse is not an error; parsers return ``None``.
"""

from __future__ import annotations


class LazyJJError(Exception):
    """Base exception for all lazyjj operations."""


class JJEnvironmentError(LazyJJError):
    """Raised when ``jj`` is missing or the directory is not a jj repository."""


class ResourceError(LazyJJError):
    """Raised when a surface, region, or channel cannot be created."""


class ProcessStartError(LazyJJError):
    """Raised when a subprocess cannot be attached to a pseudo-terminal."""


class CommandError(LazyJJError):
    """Raised when a silently executed ``jj`` command fails."""

    def __init__(self, message: str, *, output: str = "") -> None:
        super().__init__(message)
        self.output = output
