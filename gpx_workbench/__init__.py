"""GPX Workbench: track data engine for GPX/KML route planning."""

from .main import main
from .models import Document, Route, Track, TrackSegment, Waypoint
from .store import DocumentStore
from .errors import GpxWorkbenchError, ItemNotFoundError, ParseError, ValidationError

__all__ = [
    "main",
    "Document",
    "Route",
    "Track",
    "TrackSegment",
    "Waypoint",
    "DocumentStore",
    "GpxWorkbenchError",
    "ItemNotFoundError",
    "ParseError",
    "ValidationError",
]
