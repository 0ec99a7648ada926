"""Geodesic primitives, track statistics and polyline simplification."""

from .kernel import (
    bounding_box,
    distance,
    document_bounds,
    merge_bounding_boxes,
    points_in_box,
    to_ecef,
)
from .simplify import simplify_points
from .statistics import calculate_statistics, route_statistics, track_statistics

__all__ = [
    "bounding_box",
    "distance",
    "document_bounds",
    "merge_bounding_boxes",
    "points_in_box",
    "to_ecef",
    "simplify_points",
    "calculate_statistics",
    "route_statistics",
    "track_statistics",
]
