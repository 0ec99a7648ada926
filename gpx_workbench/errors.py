"""Central error types used across the engine."""

from __future__ import annotations


class GpxWorkbenchError(RuntimeError):
    """Base error for every failure raised by the engine."""


class ParseError(GpxWorkbenchError):
    """Raised when a file is not well-formed XML or lacks the expected root."""


class ValidationError(GpxWorkbenchError, ValueError):
    """Raised when an operation's arguments cannot produce a valid result."""


class ItemNotFoundError(ValidationError):
    """Raised when a track, route, waypoint or segment id does not resolve."""


__all__ = [
    "GpxWorkbenchError",
    "ParseError",
    "ValidationError",
    "ItemNotFoundError",
]
