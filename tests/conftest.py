"""Global pytest fixtures & helpers.

Adds project root to path and provides point/track/route builders shared by
the geometry, codec, operations and store tests.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from gpx_workbench.models import Document, Route, Track, TrackSegment, Waypoint
from gpx_workbench.store import DocumentStore

START = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)


# --- Factory helpers -------------------------------------------------
def make_points(
    coords: Iterable[Tuple[float, float]],
    ele: Optional[Sequence[Optional[float]]] = None,
    step_s: Optional[float] = None,
) -> List[Waypoint]:
    """Waypoints for ``coords`` with optional elevations and a fixed time step."""

    points = []
    for idx, (lat, lon) in enumerate(coords):
        points.append(
            Waypoint(
                lat=lat,
                lon=lon,
                ele=None if ele is None else ele[idx],
                time=None if step_s is None else START + timedelta(seconds=idx * step_s),
            )
        )
    return points


def line_coords(count: int, lat0: float = 45.0, lon0: float = -120.0, step: float = 0.001):
    return [(lat0 + i * step, lon0) for i in range(count)]


def make_track(*segment_coords, name: Optional[str] = "Morning Ride", step_s=None) -> Track:
    segments = [
        TrackSegment(points=make_points(coords, step_s=step_s)) for coords in segment_coords
    ]
    return Track(segments=segments, name=name, color="#E53935")


def make_route(coords, name: Optional[str] = "Planned") -> Route:
    return Route(points=make_points(coords), name=name, color="#1E88E5")


def point_coords(points: Iterable[Waypoint]) -> List[Tuple[float, float]]:
    return [(p.lat, p.lon) for p in points]


SAMPLE_GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1"
     xmlns:gpxtpx="http://www.garmin.com/xmlschemas/TrackPointExtension/v1">
  <metadata>
    <name>Weekend &amp; Hills</name>
    <desc>Two day loop</desc>
    <author><name>Sam</name><email id="sam" domain="example.com"/></author>
    <time>2024-05-01T07:00:00Z</time>
    <keywords>loop,hills</keywords>
  </metadata>
  <wpt lat="45.5" lon="-120.5">
    <ele>812.5</ele>
    <name>Summit</name>
    <sym>Flag</sym>
  </wpt>
  <rte>
    <name>Approach</name>
    <rtept lat="45.1" lon="-120.1"><ele>100</ele></rtept>
    <rtept lat="45.2" lon="-120.2"><ele>150</ele></rtept>
  </rte>
  <trk>
    <name>Day One</name>
    <number>1</number>
    <trkseg>
      <trkpt lat="45.000000" lon="-120.000000">
        <ele>100</ele>
        <time>2024-05-01T08:00:00Z</time>
        <extensions><gpxtpx:TrackPointExtension><gpxtpx:hr>120</gpxtpx:hr></gpxtpx:TrackPointExtension></extensions>
      </trkpt>
      <trkpt lat="45.001000" lon="-120.000000">
        <ele>110</ele>
        <time>2024-05-01T08:00:30Z</time>
      </trkpt>
      <trkpt lat="45.002000" lon="-120.000000">
        <ele>90</ele>
        <time>2024-05-01T08:01:00Z</time>
      </trkpt>
    </trkseg>
  </trk>
</gpx>
"""


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def five_point_track() -> Track:
    return make_track(line_coords(5), step_s=10)


@pytest.fixture
def two_segment_track() -> Track:
    return make_track(line_coords(3), line_coords(3, lat0=45.01), step_s=10)


@pytest.fixture
def sample_gpx() -> str:
    return SAMPLE_GPX


@pytest.fixture
def store() -> DocumentStore:
    return DocumentStore()


@pytest.fixture
def loaded_store(sample_gpx) -> DocumentStore:
    store = DocumentStore()
    store.load_from_string(sample_gpx, filename="sample.gpx")
    return store


@pytest.fixture
def empty_document() -> Document:
    return Document()
