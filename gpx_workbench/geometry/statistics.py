"""Aggregate metrics for tracks, routes and raw point runs.

Each consecutive pair of points is an interval. Intervals always contribute
distance; they contribute moving/rest time only when both ends carry a time,
and climb/descent only when both ends carry an elevation. Missing optional
fields exclude an interval from the matching accumulator and nothing more.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..config import FLAT_ELEVATION_THRESHOLD_M, MOVING_SPEED_THRESHOLD_MPS
from ..models import Route, Track, TrackStatistics, Waypoint
from .kernel import distance


@dataclass(slots=True)
class _Accumulator:
    distance: float = 0.0
    moving_distance: float = 0.0
    moving_time: float = 0.0
    rest_time: float = 0.0
    max_speed: float = 0.0
    total_climb: float = 0.0
    total_descent: float = 0.0
    climb_distance: float = 0.0
    descent_distance: float = 0.0
    flat_distance: float = 0.0
    steepest_climb: float = 0.0
    steepest_descent: float = 0.0
    elevation_sum: float = 0.0
    elevation_count: int = 0
    min_elevation: Optional[float] = None
    max_elevation: Optional[float] = None
    first_time: Optional[datetime] = None
    last_time: Optional[datetime] = None
    point_count: int = 0

    def add_run(self, points: Sequence[Waypoint]) -> None:
        """Fold one contiguous run of points into the totals."""

        self.point_count += len(points)
        for point in points:
            self._add_point(point)
        for index in range(1, len(points)):
            self._add_interval(points[index - 1], points[index])

    def _add_point(self, point: Waypoint) -> None:
        if point.ele is not None:
            self.elevation_sum += point.ele
            self.elevation_count += 1
            if self.min_elevation is None or point.ele < self.min_elevation:
                self.min_elevation = point.ele
            if self.max_elevation is None or point.ele > self.max_elevation:
                self.max_elevation = point.ele
        if point.time is not None:
            if self.first_time is None:
                self.first_time = point.time
            self.last_time = point.time

    def _add_interval(self, prev: Waypoint, curr: Waypoint) -> None:
        step = distance(prev, curr)
        self.distance += step

        if prev.time is not None and curr.time is not None:
            dt = (curr.time - prev.time).total_seconds()
            if dt > 0:
                speed = step / dt
                if speed > MOVING_SPEED_THRESHOLD_MPS:
                    self.moving_distance += step
                    self.moving_time += dt
                    self.max_speed = max(self.max_speed, speed)
                else:
                    self.rest_time += dt

        if prev.ele is None or curr.ele is None:
            self.flat_distance += step
            return
        delta = curr.ele - prev.ele
        grade = abs(delta) / step * 100 if step > 0 else 0.0
        if delta > FLAT_ELEVATION_THRESHOLD_M:
            self.total_climb += delta
            self.climb_distance += step
            self.steepest_climb = max(self.steepest_climb, grade)
        elif delta < -FLAT_ELEVATION_THRESHOLD_M:
            self.total_descent += -delta
            self.descent_distance += step
            self.steepest_descent = max(self.steepest_descent, grade)
        else:
            self.flat_distance += step

    def finish(self) -> TrackStatistics:
        total_time = 0.0
        if self.first_time is not None and self.last_time is not None:
            total_time = max((self.last_time - self.first_time).total_seconds(), 0.0)
        avg_elevation = (
            self.elevation_sum / self.elevation_count if self.elevation_count else None
        )
        return TrackStatistics(
            distance=self.distance,
            moving_time=self.moving_time,
            total_time=total_time,
            rest_time=self.rest_time,
            avg_speed=self.distance / total_time if total_time > 0 else 0.0,
            moving_speed=(
                self.moving_distance / self.moving_time if self.moving_time > 0 else 0.0
            ),
            max_speed=self.max_speed,
            total_climb=self.total_climb,
            total_descent=self.total_descent,
            min_elevation=self.min_elevation,
            max_elevation=self.max_elevation,
            avg_elevation=avg_elevation,
            steepest_climb=self.steepest_climb,
            steepest_descent=self.steepest_descent,
            climb_distance=self.climb_distance,
            descent_distance=self.descent_distance,
            flat_distance=self.flat_distance,
            point_count=self.point_count,
        )


def statistics_for_runs(runs: Iterable[Sequence[Waypoint]]) -> TrackStatistics:
    """Statistics over several runs; no interval spans two runs."""

    accumulator = _Accumulator()
    for run in runs:
        accumulator.add_run(run)
    return accumulator.finish()


def calculate_statistics(points: Sequence[Waypoint]) -> TrackStatistics:
    """Statistics for one contiguous point sequence."""

    return statistics_for_runs([points])


def track_statistics(track: Track) -> TrackStatistics:
    """Statistics for a track, treating segment breaks as discontinuities."""

    return statistics_for_runs(segment.points for segment in track.segments)


def route_statistics(route: Route) -> TrackStatistics:
    return calculate_statistics(route.points)


__all__ = [
    "calculate_statistics",
    "route_statistics",
    "statistics_for_runs",
    "track_statistics",
]
