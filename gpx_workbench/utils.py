"""General utility helpers shared across modules."""

from __future__ import annotations

from datetime import datetime, timezone
import math
from typing import Optional


def format_duration(seconds: float) -> str:
    """Format seconds into an ``h:mm:ss`` string."""

    total = int(round(max(seconds, 0.0)))
    hours, remainder = divmod(total, 3600)
    mins, sec = divmod(remainder, 60)
    return f"{hours}:{mins:02d}:{sec:02d}"


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive timestamps are taken to be UTC. Returns ``None`` for blank or
    unparseable input.
    """

    if not value:
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return to_utc_aware(parsed)


def to_utc_aware(value: datetime) -> datetime:
    """Return ``value`` as a timezone-aware UTC datetime."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_iso_datetime(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with a trailing ``Z``."""

    return to_utc_aware(value).isoformat().replace("+00:00", "Z")


def format_number(value: float) -> str:
    """Shortest text that parses back to exactly ``value``."""

    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return repr(float(value))


def parse_float(value: Optional[str]) -> Optional[float]:
    """Parse a finite float, returning ``None`` for anything else."""

    if value is None:
        return None
    try:
        result = float(value.strip())
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except (TypeError, ValueError):
        return None


def escape_xml(text: str) -> str:
    """Escape special XML characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )
