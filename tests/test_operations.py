"""Tests for track/route structural operations."""

from __future__ import annotations

import pytest

from gpx_workbench import operations as ops
from gpx_workbench.errors import ItemNotFoundError, ValidationError
from gpx_workbench.models import Waypoint

from conftest import line_coords, make_points, make_route, make_track, point_coords


def _ids(points):
    return [p.id for p in points]


def test_split_five_point_track_at_two(five_point_track):
    segment = five_point_track.segments[0]
    first, second = ops.split_track(five_point_track, segment.id, 2)

    assert first.point_count == 3
    assert second.point_count == 3
    assert point_coords(first.points())[-1] == point_coords(second.points())[0]
    assert first.name == "Morning Ride (1)"
    assert second.name == "Morning Ride (2)"
    assert first.id != five_point_track.id != second.id
    original_ids = set(_ids(five_point_track.points()))
    assert original_ids.isdisjoint(_ids(first.points()))
    assert original_ids.isdisjoint(_ids(second.points()))


@pytest.mark.parametrize("index", [-1, 0, 4, 5])
def test_split_rejects_non_interior_index(five_point_track, index):
    with pytest.raises(ValidationError):
        ops.split_track(five_point_track, five_point_track.segments[0].id, index)


def test_split_unknown_segment(five_point_track):
    with pytest.raises(ItemNotFoundError):
        ops.split_track(five_point_track, "missing", 2)


def test_split_keeps_neighbouring_segments(two_segment_track):
    second_segment = two_segment_track.segments[1]
    first, second = ops.split_track(two_segment_track, second_segment.id, 1, "#000000")
    assert len(first.segments) == 2
    assert len(second.segments) == 1
    assert second.color == "#000000"
    assert first.color == two_segment_track.color


@pytest.mark.parametrize("index", [1, 2, 3])
def test_split_then_join_restores_sequence(five_point_track, index):
    segment = five_point_track.segments[0]
    first, second = ops.split_track(five_point_track, segment.id, index)
    joined = ops.join_tracks(first, second)
    coords = point_coords(joined.points())
    original = point_coords(five_point_track.points())
    # The split point appears at the end of one segment and the start of the next.
    assert coords[: index + 1] + coords[index + 2 :] == original


def test_join_name_falls_back():
    a = make_track(line_coords(2), name=None)
    b = make_track(line_coords(2), name="Second")
    assert ops.join_tracks(a, b).name == "Second"
    b.name = ""
    assert ops.join_tracks(a, b).name == "Joined Track"


def test_join_concatenates_segments_with_fresh_ids(two_segment_track, five_point_track):
    joined = ops.join_tracks(two_segment_track, five_point_track)
    assert len(joined.segments) == 3
    assert joined.point_count == 11
    assert set(_ids(joined.points())).isdisjoint(_ids(two_segment_track.points()))


def test_reverse_twice_restores_points(two_segment_track):
    once = ops.reverse_track(two_segment_track)
    twice = ops.reverse_track(once)
    assert list(twice.points()) == list(two_segment_track.points())
    assert twice.id == two_segment_track.id


def test_reverse_track_reverses_segment_order(two_segment_track):
    reversed_track = ops.reverse_track(two_segment_track)
    assert [s.id for s in reversed_track.segments] == [
        s.id for s in reversed(two_segment_track.segments)
    ]
    assert point_coords(reversed_track.points()) == list(
        reversed(point_coords(two_segment_track.points()))
    )


def test_reverse_route_keeps_ids_but_not_instances():
    route = make_route(line_coords(3))
    reversed_route = ops.reverse_route(route)
    assert _ids(reversed_route.points) == list(reversed(_ids(route.points)))
    assert all(a is not b for a, b in zip(reversed_route.points, reversed(route.points)))


def test_merge_segments_preserves_order(two_segment_track):
    merged = ops.merge_track_segments(two_segment_track)
    assert len(merged.segments) == 1
    assert point_coords(merged.points()) == point_coords(two_segment_track.points())
    assert merged.id == two_segment_track.id
    assert set(_ids(merged.points())).isdisjoint(_ids(two_segment_track.points()))


def test_route_track_conversion(two_segment_track):
    route = ops.track_to_route(two_segment_track)
    assert point_coords(route.points) == point_coords(two_segment_track.points())
    assert route.name == two_segment_track.name
    track = ops.route_to_track(route)
    assert len(track.segments) == 1
    assert track.color == two_segment_track.color
    assert track.id != route.id


def test_route_from_waypoints_requires_two():
    waypoints = make_points(line_coords(1))
    with pytest.raises(ValidationError):
        ops.route_from_waypoints(waypoints)


def test_route_from_waypoints_copies():
    waypoints = make_points(line_coords(3))
    route = ops.route_from_waypoints(waypoints, color="#123456")
    assert route.name == "Route from 3 waypoints"
    assert point_coords(route.points) == point_coords(waypoints)
    assert set(_ids(route.points)).isdisjoint(_ids(waypoints))


def test_simplify_track_mints_point_ids():
    track = make_track(line_coords(10))
    simplified = ops.simplify_track(track, 1.0)
    assert simplified.point_count == 2
    assert simplified.id == track.id
    assert set(_ids(simplified.points())).isdisjoint(_ids(track.points()))
    assert track.point_count == 10


def test_simplify_route():
    route = make_route(line_coords(10))
    assert len(ops.simplify_route(route, 1.0).points) == 2


def test_split_runs_never_stitches():
    points = make_points(line_coords(6))
    runs = ops.split_runs(points, [False, False, True, False, True, False])
    assert [len(run) for run in runs] == [2, 1, 1]
    assert _ids(runs[0]) == _ids(points[:2])


def test_delete_points_from_track_splits_segments(five_point_track):
    segment = five_point_track.segments[0]
    result = ops.delete_points_from_track(five_point_track, [False, False, True, False, False])
    assert [len(s.points) for s in result.segments] == [2, 2]
    assert result.segments[0].id == segment.id
    assert result.segments[1].id != segment.id
    assert result.id == five_point_track.id


def test_delete_all_points_drops_track(five_point_track):
    assert ops.delete_points_from_track(five_point_track, [True] * 5) is None


def test_delete_points_from_route_emits_sibling_routes():
    route = make_route(line_coords(5), name="Loop")
    pieces = ops.delete_points_from_route(route, [False, True, False, True, False])
    assert [len(p.points) for p in pieces] == [1, 1, 1]
    assert pieces[0].id == route.id
    assert [p.name for p in pieces] == ["Loop (1)", "Loop (2)", "Loop (3)"]
    assert ops.delete_points_from_route(route, [True] * 5) == []


def test_delete_track_point_interior_and_endpoint(five_point_track):
    segment_id = five_point_track.segments[0].id
    middle = ops.delete_track_point(five_point_track, segment_id, 2)
    assert [len(s.points) for s in middle.segments] == [2, 2]
    end = ops.delete_track_point(five_point_track, segment_id, 4)
    assert [len(s.points) for s in end.segments] == [4]
    with pytest.raises(ValidationError):
        ops.delete_track_point(five_point_track, segment_id, 5)


def test_copy_track_fresh_ids_and_suffix(two_segment_track):
    clone = ops.copy_track(two_segment_track, " (copy)")
    assert clone.name == "Morning Ride (copy)"
    assert clone.id != two_segment_track.id
    assert set(_ids(clone.points())).isdisjoint(_ids(two_segment_track.points()))
    unnamed = make_route(line_coords(2), name=None)
    assert ops.copy_route(unnamed, " (copy)").name == "Route (copy)"
    assert ops.copy_waypoint(Waypoint(lat=1, lon=1), "").name is None


def test_sort_tracks():
    short = make_track(line_coords(2), name="b short")
    long = make_track(line_coords(6), name="A long")
    assert [t.name for t in ops.sort_tracks([short, long], "name")] == ["A long", "b short"]
    assert ops.sort_tracks([short, long], "length")[0] is long
    assert ops.sort_tracks([short, long], "points")[0] is long
    with pytest.raises(ValidationError):
        ops.sort_tracks([short, long], "colour")


def test_sort_tracks_by_date_puts_untimed_last():
    untimed = make_track(line_coords(2), name="untimed")
    timed = make_track(line_coords(2), name="timed", step_s=1)
    assert [t.name for t in ops.sort_tracks([untimed, timed], "date")] == ["timed", "untimed"]


def test_sort_waypoints():
    points = [
        Waypoint(lat=1, lon=5, ele=10, name="c"),
        Waypoint(lat=3, lon=-5, name="a"),
        Waypoint(lat=2, lon=0, ele=50, name="b"),
    ]
    assert [w.name for w in ops.sort_waypoints(points, "name")] == ["a", "b", "c"]
    assert [w.name for w in ops.sort_waypoints(points, "lat")] == ["a", "b", "c"]
    assert [w.name for w in ops.sort_waypoints(points, "lon")] == ["a", "b", "c"]
    assert [w.name for w in ops.sort_waypoints(points, "ele")] == ["b", "c", "a"]


def test_sort_routes():
    a = make_route(line_coords(2), name="x")
    b = make_route(line_coords(4), name="y")
    assert ops.sort_routes([a, b], "points")[0] is b
    with pytest.raises(ValidationError):
        ops.sort_routes([a, b], "date")
