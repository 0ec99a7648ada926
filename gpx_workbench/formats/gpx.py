"""GPX 1.0/1.1 reader and GPX 1.1 writer."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple
from xml.etree import ElementTree as ET

from ..config import GPX_CREATOR, GPX_NAMESPACE, GPX_SCHEMA_LOCATION
from ..models import (
    FIX_TYPES,
    Author,
    BoundingBox,
    Copyright,
    Document,
    Email,
    Extensions,
    Link,
    Metadata,
    Route,
    Track,
    TrackSegment,
    Waypoint,
    is_valid_coordinate,
)
from ..palette import PaletteCursor
from ..utils import (
    escape_xml,
    format_iso_datetime,
    format_number,
    parse_float,
    parse_int,
    parse_iso_datetime,
)
from ._xml import child_text, first_child, local_name, parse_root, store_verbatim

LOGGER = logging.getLogger(__name__)

_POINT_FLOAT_FIELDS = ("ele", "magvar", "geoidheight", "hdop", "vdop", "pdop", "ageofdgpsdata")
_POINT_INT_FIELDS = ("sat", "dgpsid")
_POINT_TEXT_FIELDS = ("name", "cmt", "desc", "src", "sym", "type")
_CONTAINER_TEXT_FIELDS = ("name", "cmt", "desc", "src", "type")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_gpx(
    text: str,
    cursor: PaletteCursor = PaletteCursor(),
    source_file: Optional[str] = None,
) -> Tuple[Document, PaletteCursor]:
    """Parse GPX text into a :class:`Document`.

    Each route and track takes the next palette color; the advanced cursor
    is returned alongside the document. Raises :class:`ParseError` when the
    text is not well-formed XML or its root is not ``<gpx>``.
    """

    root = parse_root(text, "gpx")
    document = Document(filename=source_file)
    skipped = 0

    for child in root:
        tag = local_name(child.tag)
        if tag == "metadata":
            document.metadata = _parse_metadata(child)
        elif tag == "wpt":
            waypoint = _parse_point(child, source_file)
            if waypoint is None:
                skipped += 1
            else:
                document.waypoints.append(waypoint)
        elif tag == "rte":
            color, cursor = cursor.next_color()
            route, dropped = _parse_route(child, color, source_file)
            skipped += dropped
            document.routes.append(route)
        elif tag == "trk":
            color, cursor = cursor.next_color()
            track, dropped = _parse_track(child, color, source_file)
            skipped += dropped
            if track.segments:
                document.tracks.append(track)
            else:
                LOGGER.debug("Dropping track %r without points", track.name)
        else:
            store_verbatim(document.extensions, child)

    LOGGER.info(
        "Parsed GPX: %d waypoints, %d routes, %d tracks (%d points skipped)",
        len(document.waypoints),
        len(document.routes),
        len(document.tracks),
        skipped,
    )
    return document, cursor


def _parse_link(element: ET.Element) -> Optional[Link]:
    href = element.get("href")
    if not href:
        return None
    return Link(href=href, text=child_text(element, "text"), type=child_text(element, "type"))


def _parse_author(element: ET.Element) -> Author:
    author = Author(name=child_text(element, "name"))
    email = first_child(element, "email")
    if email is not None and email.get("id") and email.get("domain"):
        author.email = Email(id=email.get("id", ""), domain=email.get("domain", ""))
    link = first_child(element, "link")
    if link is not None:
        author.link = _parse_link(link)
    return author


def _parse_bounds(element: ET.Element) -> Optional[BoundingBox]:
    values = [parse_float(element.get(key)) for key in ("maxlat", "minlat", "maxlon", "minlon")]
    if any(value is None for value in values):
        return None
    north, south, east, west = values
    return BoundingBox(north=north, south=south, east=east, west=west)


def _parse_metadata(element: ET.Element) -> Metadata:
    metadata = Metadata()
    for child in element:
        tag = local_name(child.tag)
        if tag in ("name", "desc", "keywords"):
            setattr(metadata, tag, child.text or None)
        elif tag == "author":
            metadata.author = _parse_author(child)
        elif tag == "copyright":
            metadata.copyright = Copyright(
                author=child.get("author", ""),
                year=parse_int(child_text(child, "year")),
                license=child_text(child, "license"),
            )
        elif tag == "link" and metadata.link is None:
            metadata.link = _parse_link(child)
        elif tag == "time":
            metadata.time = parse_iso_datetime(child.text)
        elif tag == "bounds":
            metadata.bounds = _parse_bounds(child)
        else:
            store_verbatim(metadata.extensions, child)
    return metadata


def _parse_point(element: ET.Element, source_file: Optional[str]) -> Optional[Waypoint]:
    """Build a waypoint from a wpt/rtept/trkpt element, or ``None`` to skip it."""

    lat = parse_float(element.get("lat"))
    lon = parse_float(element.get("lon"))
    if lat is None or lon is None or not is_valid_coordinate(lat, lon):
        LOGGER.debug(
            "Skipping <%s> with invalid coordinates lat=%r lon=%r",
            local_name(element.tag),
            element.get("lat"),
            element.get("lon"),
        )
        return None

    fields: Dict[str, object] = {}
    extensions: Extensions = {}
    for child in element:
        tag = local_name(child.tag)
        if tag in _POINT_FLOAT_FIELDS:
            value = parse_float(child.text)
        elif tag in _POINT_INT_FIELDS:
            value = parse_int(child.text)
        elif tag in _POINT_TEXT_FIELDS:
            value = child.text or None
        elif tag == "time":
            value = parse_iso_datetime(child.text)
        elif tag == "fix":
            value = child.text if child.text in FIX_TYPES else None
        elif tag == "link" and "link" not in fields:
            value = _parse_link(child)
        else:
            store_verbatim(extensions, child)
            continue
        if value is not None:
            fields[tag] = value

    return Waypoint(
        lat=lat, lon=lon, extensions=extensions, source_file=source_file, **fields
    )


def _parse_container_fields(element: ET.Element, tag: str, fields: Dict[str, object]) -> bool:
    """Read a name/desc/link/number child shared by rte and trk."""

    if tag in _CONTAINER_TEXT_FIELDS:
        fields[tag] = element.text or None
    elif tag == "number":
        fields[tag] = parse_int(element.text)
    elif tag == "link" and fields.get("link") is None:
        fields[tag] = _parse_link(element)
    else:
        return False
    return True


def _parse_route(
    element: ET.Element, color: str, source_file: Optional[str]
) -> Tuple[Route, int]:
    fields: Dict[str, object] = {}
    points: List[Waypoint] = []
    extensions: Extensions = {}
    skipped = 0
    for child in element:
        tag = local_name(child.tag)
        if tag == "rtept":
            point = _parse_point(child, source_file)
            if point is None:
                skipped += 1
            else:
                points.append(point)
        elif not _parse_container_fields(child, tag, fields):
            store_verbatim(extensions, child)
    route = Route(
        points=points,
        extensions=extensions,
        color=color,
        source_file=source_file,
        **fields,
    )
    return route, skipped


def _parse_segment(
    element: ET.Element, source_file: Optional[str]
) -> Tuple[TrackSegment, int]:
    segment = TrackSegment()
    skipped = 0
    for child in element:
        if local_name(child.tag) == "trkpt":
            point = _parse_point(child, source_file)
            if point is None:
                skipped += 1
            else:
                segment.points.append(point)
        else:
            store_verbatim(segment.extensions, child)
    return segment, skipped


def _parse_track(
    element: ET.Element, color: str, source_file: Optional[str]
) -> Tuple[Track, int]:
    fields: Dict[str, object] = {}
    segments: List[TrackSegment] = []
    extensions: Extensions = {}
    skipped = 0
    for child in element:
        tag = local_name(child.tag)
        if tag == "trkseg":
            segment, dropped = _parse_segment(child, source_file)
            skipped += dropped
            if segment.points:
                segments.append(segment)
        elif not _parse_container_fields(child, tag, fields):
            store_verbatim(extensions, child)
    track = Track(
        segments=segments,
        extensions=extensions,
        color=color,
        source_file=source_file,
        **fields,
    )
    return track, skipped


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def export_gpx(document: Document, creator: str = GPX_CREATOR) -> str:
    """Serialize the enabled content of ``document`` as GPX 1.1 text."""

    gpx_lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<gpx version="1.1" creator="{escape_xml(creator)}"',
        f'     xmlns="{GPX_NAMESPACE}"',
        '     xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"',
        f'     xsi:schemaLocation="{GPX_NAMESPACE} {GPX_SCHEMA_LOCATION}">',
    ]
    if document.metadata is not None:
        _write_metadata(gpx_lines, document.metadata)
    for waypoint in document.waypoints:
        if waypoint.enabled:
            _write_point(gpx_lines, "wpt", waypoint, "  ")
    for route in document.routes:
        if route.enabled:
            _write_route(gpx_lines, route)
    for track in document.tracks:
        if track.enabled:
            _write_track(gpx_lines, track)
    _write_extensions(gpx_lines, document.extensions, "  ")
    gpx_lines.append("</gpx>")
    return "\n".join(gpx_lines) + "\n"


def _text_line(tag: str, value: Optional[str], indent: str) -> List[str]:
    if value is None:
        return []
    return [f"{indent}<{tag}>{escape_xml(value)}</{tag}>"]


def _write_extensions(lines: List[str], extensions: Extensions, indent: str) -> None:
    for fragment in extensions.values():
        lines.append(f"{indent}{fragment}")


def _write_link(lines: List[str], link: Optional[Link], indent: str) -> None:
    if link is None:
        return
    if link.text is None and link.type is None:
        lines.append(f'{indent}<link href="{escape_xml(link.href)}"/>')
        return
    lines.append(f'{indent}<link href="{escape_xml(link.href)}">')
    lines.extend(_text_line("text", link.text, indent + "  "))
    lines.extend(_text_line("type", link.type, indent + "  "))
    lines.append(f"{indent}</link>")


def _write_metadata(lines: List[str], metadata: Metadata) -> None:
    lines.append("  <metadata>")
    indent = "    "
    lines.extend(_text_line("name", metadata.name, indent))
    lines.extend(_text_line("desc", metadata.desc, indent))
    author = metadata.author
    if author is not None:
        lines.append(f"{indent}<author>")
        lines.extend(_text_line("name", author.name, indent + "  "))
        if author.email is not None:
            lines.append(
                f'{indent}  <email id="{escape_xml(author.email.id)}" '
                f'domain="{escape_xml(author.email.domain)}"/>'
            )
        _write_link(lines, author.link, indent + "  ")
        lines.append(f"{indent}</author>")
    copyright_ = metadata.copyright
    if copyright_ is not None:
        lines.append(f'{indent}<copyright author="{escape_xml(copyright_.author)}">')
        if copyright_.year is not None:
            lines.append(f"{indent}  <year>{copyright_.year}</year>")
        lines.extend(_text_line("license", copyright_.license, indent + "  "))
        lines.append(f"{indent}</copyright>")
    _write_link(lines, metadata.link, indent)
    if metadata.time is not None:
        lines.append(f"{indent}<time>{format_iso_datetime(metadata.time)}</time>")
    lines.extend(_text_line("keywords", metadata.keywords, indent))
    bounds = metadata.bounds
    if bounds is not None and bounds.valid:
        lines.append(
            f'{indent}<bounds minlat="{format_number(bounds.south)}" '
            f'minlon="{format_number(bounds.west)}" '
            f'maxlat="{format_number(bounds.north)}" '
            f'maxlon="{format_number(bounds.east)}"/>'
        )
    _write_extensions(lines, metadata.extensions, indent)
    lines.append("  </metadata>")


def _write_point(lines: List[str], tag: str, point: Waypoint, indent: str) -> None:
    inner = indent + "  "
    body: List[str] = []
    if point.ele is not None:
        body.append(f"{inner}<ele>{format_number(point.ele)}</ele>")
    if point.time is not None:
        body.append(f"{inner}<time>{format_iso_datetime(point.time)}</time>")
    for name in ("magvar", "geoidheight"):
        value = getattr(point, name)
        if value is not None:
            body.append(f"{inner}<{name}>{format_number(value)}</{name}>")
    for name in ("name", "cmt", "desc", "src"):
        body.extend(_text_line(name, getattr(point, name), inner))
    _write_link(body, point.link, inner)
    for name in ("sym", "type", "fix"):
        body.extend(_text_line(name, getattr(point, name), inner))
    if point.sat is not None:
        body.append(f"{inner}<sat>{point.sat}</sat>")
    for name in ("hdop", "vdop", "pdop", "ageofdgpsdata"):
        value = getattr(point, name)
        if value is not None:
            body.append(f"{inner}<{name}>{format_number(value)}</{name}>")
    if point.dgpsid is not None:
        body.append(f"{inner}<dgpsid>{point.dgpsid}</dgpsid>")
    _write_extensions(body, point.extensions, inner)

    attrs = f'lat="{format_number(point.lat)}" lon="{format_number(point.lon)}"'
    if not body:
        lines.append(f"{indent}<{tag} {attrs}/>")
        return
    lines.append(f"{indent}<{tag} {attrs}>")
    lines.extend(body)
    lines.append(f"{indent}</{tag}>")


def _write_container_fields(lines: List[str], item: Route | Track) -> None:
    indent = "    "
    for name in ("name", "cmt", "desc", "src"):
        lines.extend(_text_line(name, getattr(item, name), indent))
    _write_link(lines, item.link, indent)
    if item.number is not None:
        lines.append(f"{indent}<number>{item.number}</number>")
    lines.extend(_text_line("type", item.type, indent))
    _write_extensions(lines, item.extensions, indent)


def _write_route(lines: List[str], route: Route) -> None:
    lines.append("  <rte>")
    _write_container_fields(lines, route)
    for point in route.points:
        if point.enabled:
            _write_point(lines, "rtept", point, "    ")
    lines.append("  </rte>")


def _write_track(lines: List[str], track: Track) -> None:
    runs = [
        (segment, [p for p in segment.points if p.enabled])
        for segment in track.segments
        if segment.enabled
    ]
    runs = [(segment, points) for segment, points in runs if points]
    if not runs:
        LOGGER.debug("Skipping track %r with no enabled points", track.name)
        return
    lines.append("  <trk>")
    _write_container_fields(lines, track)
    for segment, points in runs:
        lines.append("    <trkseg>")
        for point in points:
            _write_point(lines, "trkpt", point, "      ")
        _write_extensions(lines, segment.extensions, "      ")
        lines.append("    </trkseg>")
    lines.append("  </trk>")


__all__ = ["export_gpx", "parse_gpx"]
