"""End-to-end checks for the command line front end."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from gpx_workbench.main import main
from gpx_workbench.formats.gpx import parse_gpx
from gpx_workbench.formats.kml import parse_kml
from gpx_workbench.summary import NAME_COL


def _write_sample(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "ride.gpx"
    path.write_text(text, encoding="utf-8")
    return path


def test_info_prints_table_and_writes_csv(tmp_path: Path, sample_gpx, capsys):
    source = _write_sample(tmp_path, sample_gpx)
    csv_path = tmp_path / "stats.csv"

    assert main(["info", str(source), "--csv", str(csv_path)]) == 0

    out = capsys.readouterr().out
    assert "Day One" in out
    assert "total" in out
    assert "Waypoints: 1" in out
    assert "Bounds:" in out
    frame = pd.read_csv(csv_path)
    assert list(frame[NAME_COL]) == ["Day One", "Approach"]


def test_convert_gpx_to_kml(tmp_path: Path, sample_gpx):
    source = _write_sample(tmp_path, sample_gpx)
    target = tmp_path / "out" / "ride.kml"

    assert main(["convert", str(source), str(target)]) == 0

    document, _ = parse_kml(target.read_text(encoding="utf-8"))
    assert [t.name for t in document.tracks] == ["Day One"]
    assert document.waypoints[0].name == "Summit"


def test_simplify_writes_smaller_gpx(tmp_path: Path):
    points = "\n".join(
        f'<trkpt lat="{45.0 + i * 0.001:.6f}" lon="-120.000000"/>' for i in range(20)
    )
    source = _write_sample(
        tmp_path, f"<gpx><trk><name>Straight</name><trkseg>{points}</trkseg></trk></gpx>"
    )
    target = tmp_path / "simple.gpx"

    assert main(["simplify", str(source), str(target), "--tolerance", "2"]) == 0

    document, _ = parse_gpx(target.read_text(encoding="utf-8"))
    assert document.tracks[0].point_count == 2


def test_missing_input_returns_error_code(tmp_path: Path):
    assert main(["info", str(tmp_path / "nope.gpx")]) == 1


def test_unparseable_input_returns_error_code(tmp_path: Path):
    source = _write_sample(tmp_path, "<gpx><trk>")
    assert main(["convert", str(source), str(tmp_path / "x.kml")]) == 1
    assert not (tmp_path / "x.kml").exists()
