"""File format codecs: GPX 1.1 and a KML Placemark subset."""

from __future__ import annotations

import os
from typing import Optional, Tuple

from ..errors import ParseError
from ..models import Document
from ..palette import PaletteCursor
from .gpx import export_gpx, parse_gpx
from .kml import export_kml, parse_kml

GPX = "gpx"
KML = "kml"
SUPPORTED_FORMATS = (GPX, KML)


def detect_format(filename: Optional[str] = None, text: Optional[str] = None) -> str:
    """Guess the format from a file extension, falling back to sniffing text."""

    if filename:
        extension = os.path.splitext(filename)[1].lower().lstrip(".")
        if extension in SUPPORTED_FORMATS:
            return extension
    if text:
        head = text[:2048].lower()
        if "<kml" in head:
            return KML
        if "<gpx" in head:
            return GPX
    raise ParseError(f"Unsupported file format: {filename or 'unknown'}")


def parse_document(
    text: str,
    fmt: Optional[str] = None,
    cursor: PaletteCursor = PaletteCursor(),
    source_file: Optional[str] = None,
) -> Tuple[Document, PaletteCursor]:
    """Parse ``text`` in ``fmt`` (detected when omitted)."""

    fmt = (fmt or detect_format(source_file, text)).lower()
    if fmt == GPX:
        return parse_gpx(text, cursor, source_file)
    if fmt == KML:
        return parse_kml(text, cursor, source_file)
    raise ParseError(f"Unsupported file format: {fmt}")


def export_document(document: Document, fmt: str = GPX) -> str:
    fmt = fmt.lower()
    if fmt == GPX:
        return export_gpx(document)
    if fmt == KML:
        return export_kml(document)
    raise ParseError(f"Unsupported file format: {fmt}")


__all__ = [
    "GPX",
    "KML",
    "SUPPORTED_FORMATS",
    "detect_format",
    "export_document",
    "parse_document",
]
