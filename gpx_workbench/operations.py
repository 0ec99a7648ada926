"""Structural transforms on tracks, routes and waypoints.

Every function here is pure: inputs are never mutated and the results never
share a :class:`Waypoint` instance with the inputs.

Identity rules:

* Structural rewrites (split, join, merge, convert, simplify, copy) give
  every point and segment they produce a fresh id. New top-level items get
  a fresh id too; an item rewritten in place (merge, simplify) keeps its own.
* Field-only and order-only edits (reverse, point deletion) keep the ids of
  everything that survives.
"""

from __future__ import annotations

import copy
import dataclasses
from datetime import datetime
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .errors import ItemNotFoundError, ValidationError
from .geometry.kernel import total_distance
from .geometry.simplify import simplify_points
from .models import Route, Track, TrackSegment, Waypoint, new_id

LOGGER = logging.getLogger(__name__)

TRACK_SORT_KEYS = ("name", "date", "length", "points")
ROUTE_SORT_KEYS = ("name", "length", "points")
WAYPOINT_SORT_KEYS = ("name", "lat", "lon", "ele")


# ---------------------------------------------------------------------------
# Copy helpers
# ---------------------------------------------------------------------------


def _copy_point(point: Waypoint) -> Waypoint:
    """Deep copy keeping the id."""

    return copy.deepcopy(point)


def _fresh_point(point: Waypoint) -> Waypoint:
    clone = copy.deepcopy(point)
    clone.id = new_id()
    return clone


def _fresh_points(points: Sequence[Waypoint]) -> List[Waypoint]:
    return [_fresh_point(point) for point in points]


def _fresh_segment(segment: TrackSegment) -> TrackSegment:
    return TrackSegment(
        points=_fresh_points(segment.points),
        enabled=segment.enabled,
        extensions=dict(segment.extensions),
    )


def _derive_track(track: Track, **changes) -> Track:
    """Copy ``track``'s descriptive fields into a new value with ``changes``."""

    changes.setdefault("extensions", dict(track.extensions))
    changes.setdefault("link", copy.copy(track.link))
    return dataclasses.replace(track, **changes)


def _derive_route(route: Route, **changes) -> Route:
    changes.setdefault("extensions", dict(route.extensions))
    changes.setdefault("link", copy.copy(route.link))
    return dataclasses.replace(route, **changes)


# ---------------------------------------------------------------------------
# Split / join / merge
# ---------------------------------------------------------------------------


def split_segment(
    segment: TrackSegment, index: int
) -> Tuple[TrackSegment, TrackSegment]:
    """Split at ``index``; both halves include the point at ``index``."""

    count = len(segment.points)
    if index <= 0 or index >= count - 1:
        raise ValidationError(
            f"Split index {index} must be strictly inside a segment of {count} points"
        )
    first = TrackSegment(
        points=_fresh_points(segment.points[: index + 1]),
        extensions=dict(segment.extensions),
    )
    second = TrackSegment(
        points=_fresh_points(segment.points[index:]),
        extensions=dict(segment.extensions),
    )
    return first, second


def _segment_index(track: Track, segment_id: str) -> int:
    for index, segment in enumerate(track.segments):
        if segment.id == segment_id:
            return index
    raise ItemNotFoundError(f"Segment {segment_id} not found in track {track.id}")


def split_track(
    track: Track,
    segment_id: str,
    index: int,
    second_color: Optional[str] = None,
) -> Tuple[Track, Track]:
    """Split ``track`` at point ``index`` of segment ``segment_id``.

    The first track keeps the segments before the split segment plus its
    left half; the second gets the right half plus the segments after.
    """

    seg_index = _segment_index(track, segment_id)
    left, right = split_segment(track.segments[seg_index], index)
    base_name = track.name or "Track"
    first = _derive_track(
        track,
        id=new_id(),
        name=f"{base_name} (1)",
        segments=[_fresh_segment(s) for s in track.segments[:seg_index]] + [left],
        expanded=True,
    )
    second = _derive_track(
        track,
        id=new_id(),
        name=f"{base_name} (2)",
        segments=[right] + [_fresh_segment(s) for s in track.segments[seg_index + 1 :]],
        color=second_color or track.color,
        expanded=True,
    )
    return first, second


def join_tracks(first: Track, second: Track) -> Track:
    """Concatenate the segments of ``first`` and ``second`` into a new track."""

    return _derive_track(
        first,
        id=new_id(),
        name=first.name or second.name or "Joined Track",
        segments=[_fresh_segment(s) for s in first.segments + second.segments],
    )


def merge_track_segments(track: Track) -> Track:
    """Flatten every segment into one, preserving point order."""

    merged = TrackSegment(points=_fresh_points(list(track.points())))
    return _derive_track(track, segments=[merged])


# ---------------------------------------------------------------------------
# Reverse
# ---------------------------------------------------------------------------


def reverse_segment(segment: TrackSegment) -> TrackSegment:
    return dataclasses.replace(
        segment,
        points=[_copy_point(p) for p in reversed(segment.points)],
        extensions=dict(segment.extensions),
    )


def reverse_track(track: Track) -> Track:
    """Reverse points inside each segment and the segment order itself."""

    return _derive_track(
        track, segments=[reverse_segment(s) for s in reversed(track.segments)]
    )


def reverse_route(route: Route) -> Route:
    return _derive_route(route, points=[_copy_point(p) for p in reversed(route.points)])


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def route_to_track(route: Route) -> Track:
    return Track(
        segments=[TrackSegment(points=_fresh_points(route.points))],
        name=route.name,
        desc=route.desc,
        cmt=route.cmt,
        src=route.src,
        type=route.type,
        number=route.number,
        link=copy.copy(route.link),
        extensions=dict(route.extensions),
        color=route.color,
        source_file=route.source_file,
    )


def track_to_route(track: Track) -> Route:
    """Flatten a track into a route. Segment boundaries are lost."""

    return Route(
        points=_fresh_points(list(track.points())),
        name=track.name,
        desc=track.desc,
        cmt=track.cmt,
        src=track.src,
        type=track.type,
        number=track.number,
        link=copy.copy(track.link),
        extensions=dict(track.extensions),
        color=track.color,
        source_file=track.source_file,
    )


def route_from_waypoints(
    waypoints: Sequence[Waypoint], name: Optional[str] = None, color: str = ""
) -> Route:
    if len(waypoints) < 2:
        raise ValidationError("A route needs at least two waypoints")
    points = _fresh_points(waypoints)
    for point in points:
        point.color = None
        point.enabled = True
    return Route(
        points=points,
        name=name or f"Route from {len(waypoints)} waypoints",
        color=color,
    )


# ---------------------------------------------------------------------------
# Simplification
# ---------------------------------------------------------------------------


def simplify_track(track: Track, tolerance: float) -> Track:
    """Douglas-Peucker each segment independently."""

    segments = [
        TrackSegment(
            points=_fresh_points(simplify_points(segment.points, tolerance)),
            enabled=segment.enabled,
            extensions=dict(segment.extensions),
        )
        for segment in track.segments
    ]
    simplified = _derive_track(track, segments=segments)
    LOGGER.debug(
        "Simplified track %s from %d to %d points",
        track.id,
        track.point_count,
        simplified.point_count,
    )
    return simplified


def simplify_route(route: Route, tolerance: float) -> Route:
    return _derive_route(
        route, points=_fresh_points(simplify_points(route.points, tolerance))
    )


# ---------------------------------------------------------------------------
# Point deletion
# ---------------------------------------------------------------------------


def split_runs(points: Sequence[Waypoint], removed: Sequence[bool]) -> List[List[Waypoint]]:
    """Group the surviving points into contiguous runs.

    A removed point ends the current run; surviving neighbours on either side
    of a removed span are never stitched together.
    """

    if len(removed) != len(points):
        raise ValidationError("Removal mask length does not match the point count")
    runs: List[List[Waypoint]] = []
    current: List[Waypoint] = []
    for point, drop in zip(points, removed):
        if drop:
            if current:
                runs.append(current)
                current = []
        else:
            current.append(_copy_point(point))
    if current:
        runs.append(current)
    return runs


def _split_segment_runs(segment: TrackSegment, removed: Sequence[bool]) -> List[TrackSegment]:
    runs = split_runs(segment.points, removed)
    return [
        TrackSegment(
            points=run,
            id=segment.id if index == 0 else new_id(),
            enabled=segment.enabled,
            extensions=dict(segment.extensions),
        )
        for index, run in enumerate(runs)
    ]


def delete_points_from_track(track: Track, removed: Sequence[bool]) -> Optional[Track]:
    """Drop the points flagged in ``removed`` (aligned with ``track.points()``).

    Returns ``track`` itself when nothing is flagged and ``None`` when every
    point is removed.
    """

    if len(removed) != track.point_count:
        raise ValidationError("Removal mask length does not match the point count")
    if not any(removed):
        return track
    segments: List[TrackSegment] = []
    offset = 0
    for segment in track.segments:
        count = len(segment.points)
        segments.extend(_split_segment_runs(segment, removed[offset : offset + count]))
        offset += count
    if not segments:
        return None
    return _derive_track(track, segments=segments)


def delete_points_from_route(route: Route, removed: Sequence[bool]) -> List[Route]:
    """Drop flagged points, returning one route per surviving run.

    The first run keeps the route id. When more than one run survives every
    run is numbered after the route name.
    """

    if not any(removed):
        return [route]
    runs = split_runs(route.points, removed)
    base_name = route.name or "Route"
    return [
        _derive_route(
            route,
            id=route.id if index == 0 else new_id(),
            name=f"{base_name} ({index + 1})" if len(runs) > 1 else route.name,
            points=run,
        )
        for index, run in enumerate(runs)
    ]


def delete_track_point(track: Track, segment_id: str, index: int) -> Optional[Track]:
    """Remove one point; an interior point splits its segment in two."""

    seg_index = _segment_index(track, segment_id)
    segment = track.segments[seg_index]
    if index < 0 or index >= len(segment.points):
        raise ValidationError(
            f"Point index {index} out of range for a segment of {len(segment.points)} points"
        )
    removed = [i == index for i in range(len(segment.points))]
    segments = (
        copy.deepcopy(track.segments[:seg_index])
        + _split_segment_runs(segment, removed)
        + copy.deepcopy(track.segments[seg_index + 1 :])
    )
    if not segments:
        return None
    return _derive_track(track, segments=segments)


# ---------------------------------------------------------------------------
# Copies for paste/import
# ---------------------------------------------------------------------------


def _suffixed(name: Optional[str], fallback: str, suffix: str) -> Optional[str]:
    if not suffix:
        return name
    return f"{name}{suffix}" if name else f"{fallback}{suffix}"


def copy_track(track: Track, suffix: str = "") -> Track:
    """Independent copy with fresh ids throughout."""

    return _derive_track(
        track,
        id=new_id(),
        name=_suffixed(track.name, "Track", suffix),
        segments=[_fresh_segment(s) for s in track.segments],
    )


def copy_route(route: Route, suffix: str = "") -> Route:
    return _derive_route(
        route,
        id=new_id(),
        name=_suffixed(route.name, "Route", suffix),
        points=_fresh_points(route.points),
    )


def copy_waypoint(waypoint: Waypoint, suffix: str = "") -> Waypoint:
    clone = _fresh_point(waypoint)
    clone.name = _suffixed(waypoint.name, "Waypoint", suffix)
    return clone


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def _name_key(item) -> str:
    return (item.name or "").casefold()


def _first_time(track: Track) -> Tuple[int, datetime]:
    for point in track.points():
        if point.time is not None:
            return 0, point.time
    return 1, datetime.min


def _sort(items: Sequence, by: str, keys: Dict[str, Tuple[Callable, bool]]) -> List:
    if by not in keys:
        raise ValidationError(f"Unknown sort key {by!r}; expected one of {sorted(keys)}")
    key, reverse = keys[by]
    return sorted(items, key=key, reverse=reverse)


def sort_tracks(tracks: Sequence[Track], by: str) -> List[Track]:
    """Order tracks by name, start date, length (longest first) or point count."""

    return _sort(
        tracks,
        by,
        {
            "name": (_name_key, False),
            "date": (_first_time, False),
            "length": (lambda t: sum(total_distance(s.points) for s in t.segments), True),
            "points": (lambda t: t.point_count, True),
        },
    )


def sort_routes(routes: Sequence[Route], by: str) -> List[Route]:
    return _sort(
        routes,
        by,
        {
            "name": (_name_key, False),
            "length": (lambda r: total_distance(r.points), True),
            "points": (lambda r: len(r.points), True),
        },
    )


def sort_waypoints(waypoints: Sequence[Waypoint], by: str) -> List[Waypoint]:
    """Name ascending, north first, west first, or highest first."""

    return _sort(
        waypoints,
        by,
        {
            "name": (_name_key, False),
            "lat": (lambda w: w.lat, True),
            "lon": (lambda w: w.lon, False),
            "ele": (lambda w: w.ele if w.ele is not None else 0.0, True),
        },
    )


__all__ = [
    "ROUTE_SORT_KEYS",
    "TRACK_SORT_KEYS",
    "WAYPOINT_SORT_KEYS",
    "copy_route",
    "copy_track",
    "copy_waypoint",
    "delete_points_from_route",
    "delete_points_from_track",
    "delete_track_point",
    "join_tracks",
    "merge_track_segments",
    "reverse_route",
    "reverse_segment",
    "reverse_track",
    "route_from_waypoints",
    "route_to_track",
    "simplify_route",
    "simplify_track",
    "sort_routes",
    "sort_tracks",
    "sort_waypoints",
    "split_runs",
    "split_segment",
    "split_track",
]
