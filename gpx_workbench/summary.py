"""Per-item statistics tables.

Pure functions that turn a :class:`Document` into pandas DataFrames ready to
print or save, one row per track and route.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd

from .geometry.statistics import route_statistics, track_statistics
from .models import Document, TrackStatistics
from .utils import format_duration

KIND_COL = "Kind"
NAME_COL = "Name"
SEGMENTS_COL = "Segments"
POINTS_COL = "Points"
DISTANCE_KM_COL = "Distance (km)"
MOVING_TIME_SEC_COL = "Moving Time (s)"
TOTAL_TIME_SEC_COL = "Total Time (s)"
TOTAL_TIME_FMT_COL = "Total Time (h:mm:ss)"
AVG_SPEED_COL = "Avg Speed (km/h)"
TOTAL_CLIMB_COL = "Total Climb (m)"
TOTAL_DESCENT_COL = "Total Descent (m)"
MAX_ELEVATION_COL = "Max Elevation (m)"

STATISTICS_COLUMNS = [
    KIND_COL,
    NAME_COL,
    SEGMENTS_COL,
    POINTS_COL,
    DISTANCE_KM_COL,
    MOVING_TIME_SEC_COL,
    TOTAL_TIME_SEC_COL,
    TOTAL_TIME_FMT_COL,
    AVG_SPEED_COL,
    TOTAL_CLIMB_COL,
    TOTAL_DESCENT_COL,
    MAX_ELEVATION_COL,
]

__all__ = [
    "STATISTICS_COLUMNS",
    "build_statistics_frame",
    "totals_row",
]


def _row(
    kind: str, name: Optional[str], segments: int, stats: TrackStatistics
) -> Dict[str, object]:
    return {
        KIND_COL: kind,
        NAME_COL: name or "",
        SEGMENTS_COL: segments,
        POINTS_COL: stats.point_count,
        DISTANCE_KM_COL: round(stats.distance / 1000.0, 3),
        MOVING_TIME_SEC_COL: round(stats.moving_time, 1),
        TOTAL_TIME_SEC_COL: round(stats.total_time, 1),
        TOTAL_TIME_FMT_COL: format_duration(stats.total_time),
        AVG_SPEED_COL: round(stats.avg_speed * 3.6, 2),
        TOTAL_CLIMB_COL: round(stats.total_climb, 1),
        TOTAL_DESCENT_COL: round(stats.total_descent, 1),
        MAX_ELEVATION_COL: stats.max_elevation,
    }


def build_statistics_frame(
    document: Document, enabled_only: bool = False
) -> pd.DataFrame:
    """One row per track then per route, in document order."""

    rows: List[Dict[str, object]] = []
    for track in document.tracks:
        if enabled_only and not track.enabled:
            continue
        rows.append(_row("track", track.name, len(track.segments), track_statistics(track)))
    for route in document.routes:
        if enabled_only and not route.enabled:
            continue
        rows.append(_row("route", route.name, 1, route_statistics(route)))
    df = pd.DataFrame(rows, columns=STATISTICS_COLUMNS)
    df[MAX_ELEVATION_COL] = pd.to_numeric(df[MAX_ELEVATION_COL], errors="coerce")
    return df


def totals_row(df: pd.DataFrame) -> Dict[str, object]:
    """Column sums for the additive columns of a statistics frame."""

    total_seconds = float(df[TOTAL_TIME_SEC_COL].sum()) if not df.empty else 0.0
    return {
        KIND_COL: "total",
        NAME_COL: "",
        SEGMENTS_COL: int(df[SEGMENTS_COL].sum()) if not df.empty else 0,
        POINTS_COL: int(df[POINTS_COL].sum()) if not df.empty else 0,
        DISTANCE_KM_COL: round(float(df[DISTANCE_KM_COL].sum()), 3) if not df.empty else 0.0,
        TOTAL_TIME_SEC_COL: total_seconds,
        TOTAL_TIME_FMT_COL: format_duration(total_seconds),
        TOTAL_CLIMB_COL: round(float(df[TOTAL_CLIMB_COL].sum()), 1) if not df.empty else 0.0,
        TOTAL_DESCENT_COL: (
            round(float(df[TOTAL_DESCENT_COL].sum()), 1) if not df.empty else 0.0
        ),
    }
