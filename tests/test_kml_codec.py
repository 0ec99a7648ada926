"""Tests for KML parsing and export."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gpx_workbench.errors import ParseError
from gpx_workbench.formats.kml import export_kml, kml_color, parse_kml
from gpx_workbench.models import Document, Metadata, Waypoint
from gpx_workbench.palette import PaletteCursor

from conftest import line_coords, make_route, make_track

SAMPLE_KML = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2" xmlns:gx="http://www.google.com/kml/ext/2.2">
  <Document>
    <name>Trip</name>
    <description>Coast &amp; hills</description>
    <Folder>
      <Placemark>
        <name>Camp</name>
        <TimeStamp><when>2024-05-01T18:00:00Z</when></TimeStamp>
        <Point><coordinates>-120.5,45.5,300</coordinates></Point>
      </Placemark>
      <Placemark>
        <name>Plan</name>
        <LineString><coordinates>
          -120.0,45.0,10 -120.1,45.1,20
          -120.2,45.2
        </coordinates></LineString>
      </Placemark>
      <Placemark>
        <name>Recorded</name>
        <gx:Track>
          <when>2024-05-01T08:00:00Z</when>
          <when>2024-05-01T08:00:10Z</when>
          <gx:coord>-120.0 45.0 100</gx:coord>
          <gx:coord>-120.0 45.001 101</gx:coord>
        </gx:Track>
      </Placemark>
      <Placemark>
        <name>Pieces</name>
        <MultiGeometry>
          <LineString><coordinates>-121,46 -121,46.1</coordinates></LineString>
          <LineString><coordinates>-121,46.2 -121,46.3</coordinates></LineString>
        </MultiGeometry>
      </Placemark>
    </Folder>
  </Document>
</kml>
"""


def test_parse_placemark_geometries():
    document, cursor = parse_kml(SAMPLE_KML)

    assert document.metadata.name == "Trip"
    assert document.metadata.desc == "Coast & hills"

    (camp,) = document.waypoints
    assert (camp.lat, camp.lon, camp.ele) == (45.5, -120.5, 300.0)
    assert camp.name == "Camp"
    assert camp.time == datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)

    (plan,) = document.routes
    assert [(p.lat, p.lon, p.ele) for p in plan.points] == [
        (45.0, -120.0, 10.0),
        (45.1, -120.1, 20.0),
        (45.2, -120.2, None),
    ]

    recorded, pieces = document.tracks
    assert recorded.name == "Recorded"
    assert [p.time.second for p in recorded.points()] == [0, 10]
    assert [p.ele for p in recorded.points()] == [100.0, 101.0]
    assert len(pieces.segments) == 2
    assert cursor == PaletteCursor(3)


def test_multitrack_becomes_multi_segment_track():
    text = """<kml xmlns:gx="http://www.google.com/kml/ext/2.2"><Placemark><gx:MultiTrack>
      <gx:Track><when>2024-01-01T00:00:00Z</when><gx:coord>1 2 3</gx:coord></gx:Track>
      <gx:Track><when>2024-01-01T00:01:00Z</when><gx:coord>1 2.1 3</gx:coord></gx:Track>
    </gx:MultiTrack></Placemark></kml>"""
    document, _ = parse_kml(text)
    assert len(document.tracks[0].segments) == 2


def test_invalid_coordinates_are_skipped():
    text = """<kml><Placemark><LineString><coordinates>
      1,2 abc,def 1,95 3,4
    </coordinates></LineString></Placemark></kml>"""
    document, _ = parse_kml(text)
    assert [(p.lon, p.lat) for p in document.routes[0].points] == [(1.0, 2.0), (3.0, 4.0)]


def test_wrong_root_is_fatal():
    with pytest.raises(ParseError):
        parse_kml("<gpx/>")
    with pytest.raises(ParseError):
        parse_kml("<kml><Placemark>")


def test_kml_color_conversion():
    assert kml_color("#E53935") == "ff3539e5"
    assert kml_color("1e88e5") == "ffe5881e"
    assert kml_color("") == "ffffffff"


def test_round_trip_through_kml():
    original, _ = parse_kml(SAMPLE_KML)
    again, _ = parse_kml(export_kml(original))

    assert again.metadata.name == "Trip"
    assert again.waypoints[0].time == original.waypoints[0].time
    assert [(p.lat, p.lon, p.ele) for p in again.routes[0].points] == [
        (p.lat, p.lon, p.ele) for p in original.routes[0].points
    ]
    assert [t.name for t in again.tracks] == ["Recorded", "Pieces"]
    for old, new in zip(original.tracks[0].points(), again.tracks[0].points()):
        assert (new.lat, new.lon, new.ele, new.time) == (old.lat, old.lon, old.ele, old.time)
    assert len(again.tracks[1].segments) == 2


def test_export_uses_gx_track_only_for_timed_tracks():
    timed = make_track(line_coords(3), name="Timed", step_s=5)
    untimed = make_track(line_coords(3), line_coords(2, lat0=46.0), name="Untimed")
    text = export_kml(Document(tracks=[timed, untimed]))
    assert text.count("<gx:Track>") == 1
    assert "<MultiGeometry>" in text
    assert "<color>ff3539e5</color>" in text


def test_multi_segment_timed_track_exports_multitrack():
    track = make_track(line_coords(2), line_coords(2, lat0=46.0), step_s=5)
    text = export_kml(Document(tracks=[track]))
    assert "<gx:MultiTrack>" in text
    document, _ = parse_kml(text)
    assert len(document.tracks[0].segments) == 2


def test_export_skips_disabled_and_escapes():
    route = make_route(line_coords(2), name="Fish & Chips")
    hidden = Waypoint(lat=1.0, lon=1.0, name="Secret", enabled=False)
    text = export_kml(Document(routes=[route], waypoints=[hidden], metadata=Metadata(name="<Doc>")))
    assert "Secret" not in text
    assert "<name>Fish &amp; Chips</name>" in text
    assert "<name>&lt;Doc&gt;</name>" in text


def test_linestring_without_valid_coordinates_is_dropped():
    text = """<kml>
      <Placemark><name>Bad</name><LineString><coordinates>abc,def</coordinates></LineString></Placemark>
      <Placemark><name>Good</name><LineString><coordinates>1,2 3,4</coordinates></LineString></Placemark>
    </kml>"""
    document, cursor = parse_kml(text)
    assert [r.name for r in document.routes] == ["Good"]
    assert document.routes[0].color == PaletteCursor().color
    assert cursor == PaletteCursor(1)
