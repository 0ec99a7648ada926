"""Central configuration for the GPX Workbench engine.

All values are constants imported by the rest of the package. Tunables are
read from environment variables (optionally via a local `.env`) and fall back
to the defaults below when unset or malformed.
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Geodesy
# ---------------------------------------------------------------------------
# Mean Earth radius used by the haversine distance.
EARTH_RADIUS_M = 6_371_000.0

# EPSG codes for WGS84 geographic 3D (lat/lon/height) and geocentric (ECEF).
# The ECEF frame uses a = 6378137.0 m and 1/f = 298.257223563.
WGS84_GEOGRAPHIC_3D_EPSG = 4979
WGS84_GEOCENTRIC_EPSG = 4978


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------
# Intervals slower than this (m/s) count as rest time.
MOVING_SPEED_THRESHOLD_MPS = _env_float("GPX_MOVING_SPEED_THRESHOLD_MPS", 0.5)

# Elevation changes (m) at or below this between two points count as flat.
FLAT_ELEVATION_THRESHOLD_M = _env_float("GPX_FLAT_ELEVATION_THRESHOLD_M", 1.0)


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------
# Number of undo snapshots kept before the oldest is evicted.
HISTORY_MAX_SNAPSHOTS = _env_int("GPX_HISTORY_MAX_SNAPSHOTS", 50)

# Tolerance (metres) used by the CLI simplify command when none is given.
DEFAULT_SIMPLIFY_TOLERANCE_M = _env_float("GPX_DEFAULT_SIMPLIFY_TOLERANCE_M", 10.0)

# Mark documents as modified after a merge/import. Loading a file never does.
MARK_MODIFIED_ON_IMPORT = _env_bool("GPX_MARK_MODIFIED_ON_IMPORT", True)

# Display colors handed out to tracks and routes, cycling on overflow.
TRACK_COLORS = [
    "#E53935",  # red
    "#1E88E5",  # blue
    "#43A047",  # green
    "#FB8C00",  # orange
    "#8E24AA",  # purple
    "#00ACC1",  # cyan
    "#F4511E",  # deep orange
    "#3949AB",  # indigo
    "#7CB342",  # light green
    "#D81B60",  # pink
]


# ---------------------------------------------------------------------------
# File formats
# ---------------------------------------------------------------------------
GPX_NAMESPACE = "http://www.topografix.com/GPX/1/1"
GPX_SCHEMA_LOCATION = "http://www.topografix.com/GPX/1/1/gpx.xsd"
KML_NAMESPACE = "http://www.opengis.net/kml/2.2"
KML_GX_NAMESPACE = "http://www.google.com/kml/ext/2.2"

# Value written to the <gpx creator="..."> attribute.
GPX_CREATOR = os.getenv("GPX_CREATOR", "GPX Workbench")

# Line width written to KML LineStyle elements.
KML_LINE_WIDTH = _env_int("GPX_KML_LINE_WIDTH", 3)
