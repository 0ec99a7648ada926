"""Benchmark statistics, simplification and snapshotting on large tracks."""

from __future__ import annotations

import argparse
from datetime import datetime, timedelta, timezone
import math
import statistics
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Late imports rely on the adjusted sys.path above.
from gpx_workbench.config import DEFAULT_SIMPLIFY_TOLERANCE_M  # noqa: E402
from gpx_workbench.geometry.statistics import track_statistics  # noqa: E402
from gpx_workbench.history import HistoryManager  # noqa: E402
from gpx_workbench.models import Document, Track, TrackSegment, Waypoint  # noqa: E402
from gpx_workbench.operations import simplify_track  # noqa: E402


@dataclass(slots=True)
class StageDurations:
    """Timing measurements (in seconds) for one iteration."""

    statistics: float
    simplify: float
    snapshot: float

    @property
    def total(self) -> float:
        return self.statistics + self.simplify + self.snapshot


@dataclass(slots=True)
class BenchmarkSummary:
    point_count: int
    iterations: int
    kept_points: int
    mean_statistics_ms: float
    mean_simplify_ms: float
    mean_snapshot_ms: float
    mean_total_ms: float
    worst_total_ms: float


def _build_track(point_count: int) -> Track:
    """A gently winding, timed, climbing track with evenly spaced points."""

    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    points: List[Waypoint] = []
    for idx in range(point_count):
        points.append(
            Waypoint(
                lat=37.0 + idx * 1.2e-5,
                lon=-122.0 + 1e-4 * math.sin(idx / 50.0),
                ele=100.0 + 20.0 * math.sin(idx / 400.0),
                time=start + timedelta(seconds=2 * idx),
            )
        )
    return Track(segments=[TrackSegment(points=points)], name="Benchmark")


def _run_iteration(track: Track, tolerance: float) -> tuple[StageDurations, int]:
    start = time.perf_counter()
    _ = track_statistics(track)
    stats_dur = time.perf_counter() - start

    start = time.perf_counter()
    simplified = simplify_track(track, tolerance)
    simplify_dur = time.perf_counter() - start

    start = time.perf_counter()
    history = HistoryManager(max_snapshots=1)
    history.push(Document(tracks=[track]))
    snapshot_dur = time.perf_counter() - start

    return StageDurations(stats_dur, simplify_dur, snapshot_dur), simplified.point_count


def run_benchmark(point_count: int, iterations: int, tolerance: float) -> BenchmarkSummary:
    if point_count < 1000:
        raise ValueError("point_count must be at least 1,000")
    if iterations <= 0:
        raise ValueError("iterations must be positive")

    track = _build_track(point_count)
    durations: List[StageDurations] = []
    kept = 0
    for _ in range(iterations):
        duration, kept = _run_iteration(track, tolerance)
        durations.append(duration)

    return BenchmarkSummary(
        point_count=point_count,
        iterations=iterations,
        kept_points=kept,
        mean_statistics_ms=statistics.fmean(d.statistics for d in durations) * 1000.0,
        mean_simplify_ms=statistics.fmean(d.simplify for d in durations) * 1000.0,
        mean_snapshot_ms=statistics.fmean(d.snapshot for d in durations) * 1000.0,
        mean_total_ms=statistics.fmean(d.total for d in durations) * 1000.0,
        worst_total_ms=max(d.total for d in durations) * 1000.0,
    )


def _format_summary(summary: BenchmarkSummary) -> Dict[str, float]:
    return {
        "point_count": summary.point_count,
        "iterations": summary.iterations,
        "kept_points": summary.kept_points,
        "mean_statistics_ms": summary.mean_statistics_ms,
        "mean_simplify_ms": summary.mean_simplify_ms,
        "mean_snapshot_ms": summary.mean_snapshot_ms,
        "mean_total_ms": summary.mean_total_ms,
        "worst_total_ms": summary.worst_total_ms,
    }


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Benchmark the track engine with a large synthetic track",
    )
    parser.add_argument("--points", type=int, default=100_000)
    parser.add_argument("--iterations", type=int, default=3)
    parser.add_argument(
        "--tolerance", type=float, default=DEFAULT_SIMPLIFY_TOLERANCE_M
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    summary = run_benchmark(args.points, args.iterations, args.tolerance)
    for key, value in _format_summary(summary).items():
        if key in {"point_count", "iterations", "kept_points"}:
            print(f"{key}: {value}")
        else:
            print(f"{key}: {value:.3f}")


if __name__ == "__main__":
    main()
