"""Dataclasses describing the GPX document model."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Union

from .errors import ValidationError

FIX_TYPES = ("none", "2d", "3d", "dgps", "pps")

# Local tag name -> verbatim XML of elements the codec does not interpret.
Extensions = Dict[str, str]


def new_id() -> str:
    """Return a fresh unique identifier for a document entity."""

    return str(uuid.uuid4())


@dataclass(slots=True)
class Link:
    href: str
    text: Optional[str] = None
    type: Optional[str] = None


@dataclass(slots=True)
class Email:
    id: str
    domain: str


@dataclass(slots=True)
class Author:
    name: Optional[str] = None
    email: Optional[Email] = None
    link: Optional[Link] = None


@dataclass(slots=True)
class Copyright:
    author: str
    year: Optional[int] = None
    license: Optional[str] = None


@dataclass(slots=True)
class BoundingBox:
    """Geographic extent. An invalid box is the identity for merging."""

    north: float = 0.0
    south: float = 0.0
    east: float = 0.0
    west: float = 0.0
    valid: bool = True

    @classmethod
    def invalid(cls) -> "BoundingBox":
        return cls(0.0, 0.0, 0.0, 0.0, valid=False)

    def contains(self, lat: float, lon: float) -> bool:
        if not self.valid:
            return False
        return self.south <= lat <= self.north and self.west <= lon <= self.east


@dataclass(slots=True)
class Metadata:
    name: Optional[str] = None
    desc: Optional[str] = None
    author: Optional[Author] = None
    copyright: Optional[Copyright] = None
    link: Optional[Link] = None
    time: Optional[datetime] = None
    keywords: Optional[str] = None
    bounds: Optional[BoundingBox] = None
    extensions: Extensions = field(default_factory=dict)


@dataclass(slots=True)
class Waypoint:
    """A single WGS84 position with the optional GPX point fields."""

    lat: float
    lon: float
    ele: Optional[float] = None
    time: Optional[datetime] = None
    name: Optional[str] = None
    desc: Optional[str] = None
    cmt: Optional[str] = None
    src: Optional[str] = None
    sym: Optional[str] = None
    type: Optional[str] = None
    link: Optional[Link] = None
    sat: Optional[int] = None
    hdop: Optional[float] = None
    vdop: Optional[float] = None
    pdop: Optional[float] = None
    fix: Optional[str] = None
    magvar: Optional[float] = None
    geoidheight: Optional[float] = None
    ageofdgpsdata: Optional[float] = None
    dgpsid: Optional[int] = None
    extensions: Extensions = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    enabled: bool = True
    color: Optional[str] = None
    source_file: Optional[str] = None

    def __post_init__(self) -> None:
        if not is_valid_coordinate(self.lat, self.lon):
            raise ValidationError(
                f"Coordinate out of range: lat={self.lat!r} lon={self.lon!r}"
            )
        if self.fix is not None and self.fix not in FIX_TYPES:
            raise ValidationError(f"Unknown fix type: {self.fix!r}")
        if self.time is not None and self.time.tzinfo is None:
            self.time = self.time.replace(tzinfo=timezone.utc)


@dataclass(slots=True)
class TrackSegment:
    """A contiguous recording run inside a track."""

    points: List[Waypoint] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    enabled: bool = True
    extensions: Extensions = field(default_factory=dict)


@dataclass(slots=True)
class Track:
    segments: List[TrackSegment] = field(default_factory=list)
    name: Optional[str] = None
    desc: Optional[str] = None
    cmt: Optional[str] = None
    src: Optional[str] = None
    type: Optional[str] = None
    number: Optional[int] = None
    link: Optional[Link] = None
    extensions: Extensions = field(default_factory=dict)
    color: str = ""
    id: str = field(default_factory=new_id)
    enabled: bool = True
    expanded: bool = True
    source_file: Optional[str] = None

    def points(self) -> Iterator[Waypoint]:
        """Iterate every point of every segment in path order."""
        for segment in self.segments:
            yield from segment.points

    def find_segment(self, segment_id: str) -> Optional[TrackSegment]:
        for segment in self.segments:
            if segment.id == segment_id:
                return segment
        return None

    @property
    def point_count(self) -> int:
        return sum(len(segment.points) for segment in self.segments)


@dataclass(slots=True)
class Route:
    """A planned path: one ordered point list without segment breaks."""

    points: List[Waypoint] = field(default_factory=list)
    name: Optional[str] = None
    desc: Optional[str] = None
    cmt: Optional[str] = None
    src: Optional[str] = None
    type: Optional[str] = None
    number: Optional[int] = None
    link: Optional[Link] = None
    extensions: Extensions = field(default_factory=dict)
    color: str = ""
    id: str = field(default_factory=new_id)
    enabled: bool = True
    source_file: Optional[str] = None


@dataclass(slots=True)
class Document:
    waypoints: List[Waypoint] = field(default_factory=list)
    routes: List[Route] = field(default_factory=list)
    tracks: List[Track] = field(default_factory=list)
    metadata: Optional[Metadata] = None
    extensions: Extensions = field(default_factory=dict)
    modified: bool = False
    filename: Optional[str] = None

    def find_track(self, track_id: str) -> Optional[Track]:
        return next((t for t in self.tracks if t.id == track_id), None)

    def find_route(self, route_id: str) -> Optional[Route]:
        return next((r for r in self.routes if r.id == route_id), None)

    def find_waypoint(self, waypoint_id: str) -> Optional[Waypoint]:
        return next((w for w in self.waypoints if w.id == waypoint_id), None)


@dataclass(slots=True)
class TrackStatistics:
    """Aggregate metrics derived from a point sequence. Never stored."""

    distance: float = 0.0
    moving_time: float = 0.0
    total_time: float = 0.0
    rest_time: float = 0.0
    avg_speed: float = 0.0
    moving_speed: float = 0.0
    max_speed: float = 0.0
    total_climb: float = 0.0
    total_descent: float = 0.0
    min_elevation: Optional[float] = None
    max_elevation: Optional[float] = None
    avg_elevation: Optional[float] = None
    steepest_climb: float = 0.0
    steepest_descent: float = 0.0
    climb_distance: float = 0.0
    descent_distance: float = 0.0
    flat_distance: float = 0.0
    point_count: int = 0


# ---------------------------------------------------------------------------
# Selection references
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WaypointRef:
    id: str


@dataclass(frozen=True)
class RouteRef:
    id: str


@dataclass(frozen=True)
class TrackRef:
    id: str


@dataclass(frozen=True)
class SegmentRef:
    track_id: str
    segment_id: str


Selection = Union[WaypointRef, RouteRef, TrackRef, SegmentRef]


def is_valid_coordinate(lat: float, lon: float) -> bool:
    """Return True when lat/lon are finite and inside the WGS84 ranges."""

    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        return False
    return -90.0 <= lat_f <= 90.0 and -180.0 <= lon_f <= 180.0


__all__ = [
    "Author",
    "BoundingBox",
    "Copyright",
    "Document",
    "Email",
    "FIX_TYPES",
    "Link",
    "Metadata",
    "Route",
    "RouteRef",
    "SegmentRef",
    "Selection",
    "Track",
    "TrackRef",
    "TrackSegment",
    "TrackStatistics",
    "Waypoint",
    "WaypointRef",
    "is_valid_coordinate",
    "new_id",
]
