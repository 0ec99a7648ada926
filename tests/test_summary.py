import pandas as pd

from gpx_workbench.geometry.kernel import haversine_distance
from gpx_workbench.models import Document
from gpx_workbench.store import DocumentStore
from gpx_workbench.summary import (
    DISTANCE_KM_COL,
    KIND_COL,
    NAME_COL,
    POINTS_COL,
    STATISTICS_COLUMNS,
    TOTAL_CLIMB_COL,
    TOTAL_TIME_FMT_COL,
    build_statistics_frame,
    totals_row,
)
from gpx_workbench.utils import format_duration


def test_frame_has_one_row_per_track_then_route(sample_gpx):
    store = DocumentStore()
    store.load_from_string(sample_gpx)
    df = build_statistics_frame(store.document)

    assert list(df.columns) == STATISTICS_COLUMNS
    assert list(df[KIND_COL]) == ["track", "route"]
    assert list(df[NAME_COL]) == ["Day One", "Approach"]

    track_row = df.iloc[0]
    assert track_row[POINTS_COL] == 3
    expected_km = round(2 * haversine_distance(45.0, -120.0, 45.001, -120.0) / 1000.0, 3)
    assert track_row[DISTANCE_KM_COL] == expected_km
    assert track_row[TOTAL_CLIMB_COL] == 10.0
    assert track_row[TOTAL_TIME_FMT_COL] == "0:01:00"


def test_enabled_only_skips_hidden_items(sample_gpx):
    store = DocumentStore()
    store.load_from_string(sample_gpx)
    store.toggle_route_enabled(store.document.routes[0].id)
    df = build_statistics_frame(store.document, enabled_only=True)
    assert list(df[KIND_COL]) == ["track"]


def test_empty_document_gives_empty_frame_and_zero_totals():
    df = build_statistics_frame(Document())
    assert df.empty
    assert list(df.columns) == STATISTICS_COLUMNS
    totals = totals_row(df)
    assert totals[POINTS_COL] == 0
    assert totals[TOTAL_TIME_FMT_COL] == "0:00:00"


def test_totals_row_sums_additive_columns(sample_gpx):
    store = DocumentStore()
    store.load_from_string(sample_gpx)
    store.merge_from_string(sample_gpx, source_name="again.gpx")
    df = build_statistics_frame(store.document)
    totals = totals_row(df)
    assert totals[KIND_COL] == "total"
    assert totals[POINTS_COL] == int(df[POINTS_COL].sum())
    assert totals[TOTAL_TIME_FMT_COL] == "0:02:00"
    # The totals dict lines up with the frame columns for printing.
    combined = pd.concat([df, pd.DataFrame([totals], columns=df.columns)], ignore_index=True)
    assert len(combined) == len(df) + 1


def test_format_duration():
    assert format_duration(0) == "0:00:00"
    assert format_duration(59.6) == "0:01:00"
    assert format_duration(3725) == "1:02:05"
    assert format_duration(-5) == "0:00:00"
