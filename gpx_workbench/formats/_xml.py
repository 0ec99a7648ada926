"""ElementTree helpers shared by the GPX and KML codecs."""

from __future__ import annotations

import copy
import logging
from typing import Dict, Iterator, Optional
from xml.etree import ElementTree as ET

from ..errors import ParseError

LOGGER = logging.getLogger(__name__)

# Prefixes used when unknown elements are serialized back to text. ElementTree
# keeps one process-wide prefix table, so importing this module registers them
# for every caller. Source prefixes are not preserved by the parser.
_KNOWN_PREFIXES = {
    "gpxtpx": "http://www.garmin.com/xmlschemas/TrackPointExtension/v1",
    "gpxx": "http://www.garmin.com/xmlschemas/GpxExtensions/v3",
    "gpxtrkx": "http://www.garmin.com/xmlschemas/TrackStatsExtension/v1",
    "gpx": "http://www.topografix.com/GPX/1/1",
}
for _prefix, _uri in _KNOWN_PREFIXES.items():
    ET.register_namespace(_prefix, _uri)


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` part ElementTree prepends to tags."""

    if tag.startswith("{"):
        return tag.rsplit("}", 1)[1]
    return tag


def parse_root(text: str, expected_root: str) -> ET.Element:
    """Parse XML text and check the root element's local name."""

    if text.startswith("\ufeff"):
        text = text[1:]
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ParseError(f"XML parse error: {exc}") from exc
    if local_name(root.tag) != expected_root:
        raise ParseError(
            f"Invalid {expected_root.upper()} file: no <{expected_root}> root element"
        )
    return root


def children(element: ET.Element, name: str) -> Iterator[ET.Element]:
    """Direct children whose local name is ``name``."""

    for child in element:
        if local_name(child.tag) == name:
            yield child


def first_child(element: ET.Element, name: str) -> Optional[ET.Element]:
    return next(children(element, name), None)


def child_text(element: ET.Element, name: str) -> Optional[str]:
    """Text of the first direct child called ``name``; ``None`` when empty."""

    child = first_child(element, name)
    if child is None:
        return None
    return child.text or None


def descendants(element: ET.Element, name: str) -> Iterator[ET.Element]:
    for node in element.iter():
        if local_name(node.tag) == name:
            yield node


def store_verbatim(extensions: Dict[str, str], element: ET.Element) -> None:
    """Keep ``element`` as raw XML under its local tag name.

    The fragment is namespace-equivalent to the source, not byte-identical:
    prefixes come from the registered table above (``ns0`` and so on for
    unknown URIs) and every used namespace is declared on the fragment root.
    """

    clone = copy.copy(element)
    clone.tail = None
    fragment = ET.tostring(clone, encoding="unicode")
    key = local_name(element.tag)
    extensions[key] = extensions.get(key, "") + fragment
