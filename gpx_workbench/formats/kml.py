"""KML reader and writer for the Placemark subset the editor understands.

Supported geometry, all as direct children of a ``Placemark``:

* ``Point`` -> waypoint (time from ``TimeStamp/when``)
* ``LineString`` -> route
* ``gx:Track`` -> single-segment track with paired ``when``/``gx:coord``
* ``gx:MultiTrack`` -> one segment per nested ``gx:Track``
* ``MultiGeometry`` of ``LineString`` -> one segment per line
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import List, Optional, Tuple
from xml.etree import ElementTree as ET

from ..config import KML_GX_NAMESPACE, KML_LINE_WIDTH, KML_NAMESPACE
from ..models import Document, Metadata, Route, Track, TrackSegment, Waypoint, is_valid_coordinate
from ..palette import PaletteCursor
from ..utils import escape_xml, format_iso_datetime, format_number, parse_float, parse_iso_datetime
from ._xml import children, child_text, descendants, first_child, local_name, parse_root

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_kml(
    text: str,
    cursor: PaletteCursor = PaletteCursor(),
    source_file: Optional[str] = None,
) -> Tuple[Document, PaletteCursor]:
    """Parse KML text into a :class:`Document` and the advanced palette cursor."""

    root = parse_root(text, "kml")
    document = Document(filename=source_file)

    container = next(descendants(root, "Document"), None)
    if container is not None:
        name = child_text(container, "name")
        desc = child_text(container, "description")
        if name is not None or desc is not None:
            document.metadata = Metadata(name=name, desc=desc)

    for placemark in descendants(root, "Placemark"):
        name = child_text(placemark, "name")
        desc = child_text(placemark, "description")
        for geometry in placemark:
            tag = local_name(geometry.tag)
            if tag == "Point":
                waypoint = _parse_point(geometry, placemark, name, desc, source_file)
                if waypoint is not None:
                    document.waypoints.append(waypoint)
            elif tag == "LineString":
                points = _parse_coordinates(geometry, source_file)
                if not points:
                    LOGGER.debug("Dropping empty LineString in placemark %r", name)
                    continue
                color, cursor = cursor.next_color()
                document.routes.append(
                    Route(
                        points=points,
                        name=name,
                        desc=desc,
                        color=color,
                        source_file=source_file,
                    )
                )
            elif tag in ("Track", "MultiTrack", "MultiGeometry"):
                segments = _parse_segments(geometry, tag, source_file)
                if not segments:
                    LOGGER.debug("Dropping empty %s in placemark %r", tag, name)
                    continue
                color, cursor = cursor.next_color()
                document.tracks.append(
                    Track(
                        segments=segments,
                        name=name,
                        desc=desc,
                        color=color,
                        source_file=source_file,
                    )
                )

    LOGGER.info(
        "Parsed KML: %d waypoints, %d routes, %d tracks",
        len(document.waypoints),
        len(document.routes),
        len(document.tracks),
    )
    return document, cursor


def _make_point(
    lon: Optional[float],
    lat: Optional[float],
    ele: Optional[float],
    time: Optional[datetime],
    source_file: Optional[str],
) -> Optional[Waypoint]:
    if lat is None or lon is None or not is_valid_coordinate(lat, lon):
        LOGGER.debug("Skipping KML coordinate lat=%r lon=%r", lat, lon)
        return None
    return Waypoint(lat=lat, lon=lon, ele=ele, time=time, source_file=source_file)


def _coordinate_tuples(element: ET.Element) -> List[List[Optional[float]]]:
    text = child_text(element, "coordinates") or ""
    return [[parse_float(part) for part in token.split(",")] for token in text.split()]


def _parse_coordinates(element: ET.Element, source_file: Optional[str]) -> List[Waypoint]:
    points: List[Waypoint] = []
    for values in _coordinate_tuples(element):
        if len(values) < 2:
            continue
        ele = values[2] if len(values) > 2 else None
        point = _make_point(values[0], values[1], ele, None, source_file)
        if point is not None:
            points.append(point)
    return points


def _parse_point(
    geometry: ET.Element,
    placemark: ET.Element,
    name: Optional[str],
    desc: Optional[str],
    source_file: Optional[str],
) -> Optional[Waypoint]:
    points = _parse_coordinates(geometry, source_file)
    if not points:
        return None
    waypoint = points[0]
    waypoint.name = name
    waypoint.desc = desc
    stamp = first_child(placemark, "TimeStamp")
    if stamp is not None:
        waypoint.time = parse_iso_datetime(child_text(stamp, "when"))
    return waypoint


def _parse_gx_track(element: ET.Element, source_file: Optional[str]) -> List[Waypoint]:
    """Pair the i-th ``when`` with the i-th ``gx:coord``."""

    whens = [parse_iso_datetime(node.text) for node in children(element, "when")]
    points: List[Waypoint] = []
    for index, node in enumerate(children(element, "coord")):
        values = [parse_float(part) for part in (node.text or "").split()]
        if len(values) < 2:
            continue
        ele = values[2] if len(values) > 2 else None
        time = whens[index] if index < len(whens) else None
        point = _make_point(values[0], values[1], ele, time, source_file)
        if point is not None:
            points.append(point)
    return points


def _parse_segments(
    geometry: ET.Element, tag: str, source_file: Optional[str]
) -> List[TrackSegment]:
    if tag == "Track":
        runs = [_parse_gx_track(geometry, source_file)]
    elif tag == "MultiTrack":
        runs = [_parse_gx_track(node, source_file) for node in children(geometry, "Track")]
    else:
        runs = [
            _parse_coordinates(node, source_file)
            for node in children(geometry, "LineString")
        ]
    return [TrackSegment(points=run) for run in runs if run]


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def kml_color(color: str) -> str:
    """Convert ``#RRGGBB`` to KML's opaque ``aabbggrr`` form."""

    value = color.lstrip("#")
    if len(value) != 6:
        return "ffffffff"
    red, green, blue = value[0:2], value[2:4], value[4:6]
    return f"ff{blue}{green}{red}".lower()


def _coordinate_text(point: Waypoint, separator: str = ",") -> str:
    parts = [format_number(point.lon), format_number(point.lat)]
    if point.ele is not None:
        parts.append(format_number(point.ele))
    return separator.join(parts)


def export_kml(document: Document) -> str:
    """Serialize the enabled content of ``document`` as KML 2.2 text."""

    kml_lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<kml xmlns="{KML_NAMESPACE}" xmlns:gx="{KML_GX_NAMESPACE}">',
        "  <Document>",
    ]
    metadata = document.metadata
    if metadata is not None:
        if metadata.name is not None:
            kml_lines.append(f"    <name>{escape_xml(metadata.name)}</name>")
        if metadata.desc is not None:
            kml_lines.append(f"    <description>{escape_xml(metadata.desc)}</description>")

    for waypoint in document.waypoints:
        if waypoint.enabled:
            _write_waypoint(kml_lines, waypoint)
    for route in document.routes:
        if not route.enabled:
            continue
        points = [p for p in route.points if p.enabled]
        _open_placemark(kml_lines, route.name, route.desc, route.color)
        _write_line_string(kml_lines, points, "      ")
        kml_lines.append("    </Placemark>")
    for track in document.tracks:
        if track.enabled:
            _write_track(kml_lines, track)

    kml_lines.extend(["  </Document>", "</kml>"])
    return "\n".join(kml_lines) + "\n"


def _open_placemark(
    lines: List[str], name: Optional[str], desc: Optional[str], color: Optional[str]
) -> None:
    lines.append("    <Placemark>")
    if name is not None:
        lines.append(f"      <name>{escape_xml(name)}</name>")
    if desc is not None:
        lines.append(f"      <description>{escape_xml(desc)}</description>")
    if color:
        lines.extend(
            [
                "      <Style>",
                "        <LineStyle>",
                f"          <color>{kml_color(color)}</color>",
                f"          <width>{KML_LINE_WIDTH}</width>",
                "        </LineStyle>",
                "      </Style>",
            ]
        )


def _write_waypoint(lines: List[str], waypoint: Waypoint) -> None:
    _open_placemark(lines, waypoint.name, waypoint.desc, None)
    if waypoint.time is not None:
        lines.append(
            f"      <TimeStamp><when>{format_iso_datetime(waypoint.time)}</when></TimeStamp>"
        )
    lines.append(
        f"      <Point><coordinates>{_coordinate_text(waypoint)}</coordinates></Point>"
    )
    lines.append("    </Placemark>")


def _write_line_string(lines: List[str], points: List[Waypoint], indent: str) -> None:
    coords = " ".join(_coordinate_text(point) for point in points)
    lines.extend(
        [
            f"{indent}<LineString>",
            f"{indent}  <tessellate>1</tessellate>",
            f"{indent}  <coordinates>{coords}</coordinates>",
            f"{indent}</LineString>",
        ]
    )


def _write_gx_track(lines: List[str], points: List[Waypoint], indent: str) -> None:
    lines.append(f"{indent}<gx:Track>")
    for point in points:
        if point.time is None:
            lines.append(f"{indent}  <when/>")
        else:
            lines.append(f"{indent}  <when>{format_iso_datetime(point.time)}</when>")
    for point in points:
        lines.append(f"{indent}  <gx:coord>{_coordinate_text(point, ' ')}</gx:coord>")
    lines.append(f"{indent}</gx:Track>")


def _write_track(lines: List[str], track: Track) -> None:
    runs = [
        [p for p in segment.points if p.enabled]
        for segment in track.segments
        if segment.enabled
    ]
    runs = [run for run in runs if run]
    if not runs:
        LOGGER.debug("Skipping track %r with no enabled points", track.name)
        return
    _open_placemark(lines, track.name, track.desc, track.color)
    timed = any(point.time is not None for run in runs for point in run)
    if timed and len(runs) == 1:
        _write_gx_track(lines, runs[0], "      ")
    elif timed:
        lines.append("      <gx:MultiTrack>")
        for run in runs:
            _write_gx_track(lines, run, "        ")
        lines.append("      </gx:MultiTrack>")
    else:
        lines.append("      <MultiGeometry>")
        for run in runs:
            _write_line_string(lines, run, "        ")
        lines.append("      </MultiGeometry>")
    lines.append("    </Placemark>")


__all__ = ["export_kml", "kml_color", "parse_kml"]
