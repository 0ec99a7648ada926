"""Distance, bounding-box and coordinate-frame primitives."""

from __future__ import annotations

from functools import lru_cache
import math
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
import shapely
from shapely.geometry import box as shapely_box
from pyproj import CRS, Transformer

from ..config import (
    EARTH_RADIUS_M,
    WGS84_GEOCENTRIC_EPSG,
    WGS84_GEOGRAPHIC_3D_EPSG,
)
from ..models import BoundingBox, Document, Waypoint

MetricArray = NDArray[np.float64]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in metres between two lat/lon pairs."""

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push near-antipodal pairs just past 1.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance(a: Waypoint, b: Waypoint) -> float:
    """Haversine distance between two waypoints."""

    return haversine_distance(a.lat, a.lon, b.lat, b.lon)


def total_distance(points: Sequence[Waypoint]) -> float:
    """Sum of the distances between consecutive points."""

    return sum(distance(points[i - 1], points[i]) for i in range(1, len(points)))


@lru_cache(maxsize=1)
def _ecef_transformer() -> Transformer:
    return Transformer.from_crs(
        CRS.from_epsg(WGS84_GEOGRAPHIC_3D_EPSG),
        CRS.from_epsg(WGS84_GEOCENTRIC_EPSG),
        always_xy=True,
    )


def to_ecef(lat: float, lon: float, altitude: float = 0.0) -> Tuple[float, float, float]:
    """Convert a WGS84 position to Earth-centred Earth-fixed metres."""

    x, y, z = _ecef_transformer().transform(lon, lat, altitude)
    return float(x), float(y), float(z)


def to_ecef_array(points: Sequence[Waypoint]) -> MetricArray:
    """Project waypoints into an ``(n, 3)`` ECEF array. Missing elevation is 0."""

    if not points:
        return np.empty((0, 3), dtype=float)
    lats = np.fromiter((p.lat for p in points), dtype=float, count=len(points))
    lons = np.fromiter((p.lon for p in points), dtype=float, count=len(points))
    alts = np.fromiter(
        (p.ele if p.ele is not None else 0.0 for p in points),
        dtype=float,
        count=len(points),
    )
    x, y, z = _ecef_transformer().transform(lons, lats, alts)
    return np.column_stack((x, y, z))


def bounding_box(points: Iterable[Waypoint]) -> BoundingBox:
    """Return the extent of ``points``; an invalid box when there are none."""

    north = -90.0
    south = 90.0
    east = -180.0
    west = 180.0
    seen = False
    for point in points:
        seen = True
        north = max(north, point.lat)
        south = min(south, point.lat)
        east = max(east, point.lon)
        west = min(west, point.lon)
    if not seen:
        return BoundingBox.invalid()
    return BoundingBox(north=north, south=south, east=east, west=west, valid=True)


def merge_bounding_boxes(a: BoundingBox, b: BoundingBox) -> BoundingBox:
    """Smallest box covering both inputs. Invalid boxes are ignored."""

    if not a.valid:
        return BoundingBox(b.north, b.south, b.east, b.west, b.valid)
    if not b.valid:
        return BoundingBox(a.north, a.south, a.east, a.west, a.valid)
    return BoundingBox(
        north=max(a.north, b.north),
        south=min(a.south, b.south),
        east=max(a.east, b.east),
        west=min(a.west, b.west),
        valid=True,
    )


def document_bounds(document: Document) -> BoundingBox:
    """Merged extent of every enabled waypoint, route and track."""

    bounds = bounding_box(w for w in document.waypoints if w.enabled)
    for route in document.routes:
        if route.enabled:
            bounds = merge_bounding_boxes(bounds, bounding_box(route.points))
    for track in document.tracks:
        if track.enabled:
            bounds = merge_bounding_boxes(bounds, bounding_box(track.points()))
    return bounds


def points_in_box(points: Sequence[Waypoint], bounds: BoundingBox) -> NDArray[np.bool_]:
    """Boolean mask of the points lying inside ``bounds`` (edges included)."""

    if not points or not bounds.valid:
        return np.zeros(len(points), dtype=bool)
    area = shapely_box(bounds.west, bounds.south, bounds.east, bounds.north)
    lons = np.fromiter((p.lon for p in points), dtype=float, count=len(points))
    lats = np.fromiter((p.lat for p in points), dtype=float, count=len(points))
    return np.asarray(shapely.intersects_xy(area, lons, lats), dtype=bool)


def find_closest_point(
    points: Sequence[Waypoint], lat: float, lon: float
) -> Optional[Tuple[int, float]]:
    """Return ``(index, distance)`` of the point nearest to lat/lon."""

    if not points:
        return None
    best_index = 0
    best_distance = haversine_distance(points[0].lat, points[0].lon, lat, lon)
    for index in range(1, len(points)):
        candidate = haversine_distance(points[index].lat, points[index].lon, lat, lon)
        if candidate < best_distance:
            best_distance = candidate
            best_index = index
    return best_index, best_distance


__all__ = [
    "bounding_box",
    "distance",
    "document_bounds",
    "find_closest_point",
    "haversine_distance",
    "merge_bounding_boxes",
    "points_in_box",
    "to_ecef",
    "to_ecef_array",
    "total_distance",
]
