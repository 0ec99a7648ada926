"""Document store: the single owner of the editable document.

Every mutating call builds the complete replacement document first and only
then records the pre-mutation snapshot and swaps it in (``_commit``). Any
validation failure raises before anything changes, so a call either applies
fully or not at all. Visibility and expansion toggles are view state and
bypass the history.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from .config import MARK_MODIFIED_ON_IMPORT
from .errors import ItemNotFoundError, ValidationError
from .formats import GPX, export_document, parse_document
from .geometry.kernel import points_in_box
from .geometry.statistics import calculate_statistics, route_statistics, track_statistics
from .history import HistoryManager
from .models import (
    BoundingBox,
    Document,
    Route,
    RouteRef,
    SegmentRef,
    Selection,
    Track,
    TrackRef,
    TrackStatistics,
    Waypoint,
    WaypointRef,
)
from .palette import PaletteCursor
from . import operations

ClipboardItem = Union[Track, Route, Waypoint]


class DocumentStore:
    def __init__(
        self,
        history: HistoryManager | None = None,
        cursor: PaletteCursor | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.history = history or HistoryManager()
        self.cursor = cursor or PaletteCursor()
        self.selection: List[Selection] = []
        self.clipboard: List[ClipboardItem] = []
        self._document = Document()
        self._log = logger or logging.getLogger(self.__class__.__name__)

    @property
    def document(self) -> Document:
        """Current document. Treat as read-only; mutate through the store."""
        return self._document

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _commit(self, document: Document, action: str, modified: bool = True) -> None:
        self.history.push(self._document)
        document.modified = modified
        self._document = document
        self._log.debug("Applied %s (undo depth %d)", action, self.history.undo_depth)

    def _replace(self, **changes: Any) -> Document:
        return dataclasses.replace(self._document, **changes)

    def _track(self, track_id: str) -> Track:
        track = self._document.find_track(track_id)
        if track is None:
            raise ItemNotFoundError(f"Track {track_id} not found")
        return track

    def _route(self, route_id: str) -> Route:
        route = self._document.find_route(route_id)
        if route is None:
            raise ItemNotFoundError(f"Route {route_id} not found")
        return route

    def _waypoint(self, waypoint_id: str) -> Waypoint:
        waypoint = self._document.find_waypoint(waypoint_id)
        if waypoint is None:
            raise ItemNotFoundError(f"Waypoint {waypoint_id} not found")
        return waypoint

    def _resolve(self, ref: Selection) -> ClipboardItem:
        if isinstance(ref, TrackRef):
            return self._track(ref.id)
        if isinstance(ref, RouteRef):
            return self._route(ref.id)
        if isinstance(ref, WaypointRef):
            return self._waypoint(ref.id)
        if isinstance(ref, SegmentRef):
            track = self._track(ref.track_id)
            segment = track.find_segment(ref.segment_id)
            if segment is None:
                raise ItemNotFoundError(
                    f"Segment {ref.segment_id} not found in track {ref.track_id}"
                )
            return dataclasses.replace(
                copy.deepcopy(track), segments=[copy.deepcopy(segment)]
            )
        raise TypeError(f"Unsupported selection reference: {ref!r}")

    def _exists(self, ref: Selection) -> bool:
        try:
            self._resolve(ref)
        except ItemNotFoundError:
            return False
        return True

    def _prune_selection(self) -> None:
        self.selection = [ref for ref in self.selection if self._exists(ref)]

    def _with_track(self, track_id: str, replacement: Optional[Track]) -> List[Track]:
        """Track list with ``track_id`` swapped for ``replacement`` (or dropped)."""

        self._track(track_id)
        tracks: List[Track] = []
        for track in self._document.tracks:
            if track.id != track_id:
                tracks.append(track)
            elif replacement is not None:
                tracks.append(replacement)
        return tracks

    def _with_route(self, route_id: str, replacement: Optional[Route]) -> List[Route]:
        self._route(route_id)
        routes: List[Route] = []
        for route in self._document.routes:
            if route.id != route_id:
                routes.append(route)
            elif replacement is not None:
                routes.append(replacement)
        return routes

    def _with_waypoint(
        self, waypoint_id: str, replacement: Optional[Waypoint]
    ) -> List[Waypoint]:
        self._waypoint(waypoint_id)
        waypoints: List[Waypoint] = []
        for waypoint in self._document.waypoints:
            if waypoint.id != waypoint_id:
                waypoints.append(waypoint)
            elif replacement is not None:
                waypoints.append(replacement)
        return waypoints

    # ------------------------------------------------------------------
    # Loading / exporting
    # ------------------------------------------------------------------
    def load_from_string(
        self, text: str, filename: Optional[str] = None, fmt: Optional[str] = None
    ) -> Document:
        """Replace the document with parsed ``text`` and reset the history."""

        document, cursor = parse_document(text, fmt, self.cursor, filename)
        document.filename = filename
        document.modified = False
        self._document = document
        self.cursor = cursor
        self.selection = []
        self.history.clear()
        self._log.info(
            "Loaded %s: %d tracks, %d routes, %d waypoints",
            filename or "document",
            len(document.tracks),
            len(document.routes),
            len(document.waypoints),
        )
        return document

    def merge_from_string(
        self, text: str, source_name: Optional[str] = None, fmt: Optional[str] = None
    ) -> Dict[str, int]:
        incoming, _ = parse_document(text, fmt, PaletteCursor(), source_name)
        return self.merge_document(incoming, source_name)

    def merge_document(
        self, incoming: Document, source_name: Optional[str] = None
    ) -> Dict[str, int]:
        """Append copies of everything in ``incoming`` under one batch color.

        An empty ``incoming`` document changes nothing.
        """

        if not (incoming.tracks or incoming.routes or incoming.waypoints):
            self._log.info("Nothing to import from %s", source_name or "document")
            return {"tracks": 0, "routes": 0, "waypoints": 0}
        batch_color, cursor = self.cursor.next_color()
        source_file = source_name or "Imported File"

        tracks = []
        for track in incoming.tracks:
            clone = operations.copy_track(track)
            clone.name = track.name or source_name or "Imported Track"
            clone.color = batch_color
            clone.source_file = source_file
            tracks.append(clone)
        routes = []
        for route in incoming.routes:
            clone = operations.copy_route(route)
            clone.name = route.name or source_name or "Imported Route"
            clone.color = batch_color
            clone.source_file = source_file
            routes.append(clone)
        waypoints = []
        for waypoint in incoming.waypoints:
            clone = operations.copy_waypoint(waypoint)
            clone.color = batch_color
            clone.source_file = source_file
            waypoints.append(clone)

        document = self._replace(
            tracks=self._document.tracks + tracks,
            routes=self._document.routes + routes,
            waypoints=self._document.waypoints + waypoints,
        )
        self._commit(
            document,
            f"merge of {source_file}",
            modified=MARK_MODIFIED_ON_IMPORT or self._document.modified,
        )
        self.cursor = cursor
        counts = {"tracks": len(tracks), "routes": len(routes), "waypoints": len(waypoints)}
        self._log.info("Imported %s: %s", source_file, counts)
        return counts

    def export_to_string(self, fmt: str = GPX) -> str:
        return export_document(self._document, fmt)

    def clear(self) -> None:
        self._commit(Document(), "clear", modified=False)
        self.selection = []

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def undo(self) -> bool:
        snapshot = self.history.undo(self._document)
        if snapshot is None:
            return False
        self._document = snapshot
        self._prune_selection()
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo(self._document)
        if snapshot is None:
            return False
        self._document = snapshot
        self._prune_selection()
        return True

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select(self, ref: Selection) -> None:
        self._resolve(ref)
        self.selection = [ref]

    def add_to_selection(self, ref: Selection) -> None:
        self._resolve(ref)
        if ref not in self.selection:
            self.selection = self.selection + [ref]

    def toggle_selection(self, ref: Selection) -> None:
        if ref in self.selection:
            self.selection = [s for s in self.selection if s != ref]
        else:
            self.add_to_selection(ref)

    def select_all(self) -> None:
        doc = self._document
        self.selection = (
            [WaypointRef(w.id) for w in doc.waypoints]
            + [RouteRef(r.id) for r in doc.routes]
            + [TrackRef(t.id) for t in doc.tracks]
        )

    def clear_selection(self) -> None:
        self.selection = []

    def select_in_bounds(self, bounds: BoundingBox) -> int:
        """Select every enabled item with at least one point inside ``bounds``."""

        selected: List[Selection] = []
        for waypoint in self._document.waypoints:
            if waypoint.enabled and bounds.contains(waypoint.lat, waypoint.lon):
                selected.append(WaypointRef(waypoint.id))
        for route in self._document.routes:
            if route.enabled and points_in_box(route.points, bounds).any():
                selected.append(RouteRef(route.id))
        for track in self._document.tracks:
            if track.enabled and any(
                segment.enabled and points_in_box(segment.points, bounds).any()
                for segment in track.segments
            ):
                selected.append(TrackRef(track.id))
        self.selection = selected
        return len(selected)

    # ------------------------------------------------------------------
    # Clipboard
    # ------------------------------------------------------------------
    def copy_selected(self) -> int:
        """Copy the selected items; a selected segment becomes a one-segment track."""

        items: List[ClipboardItem] = []
        for ref in self.selection:
            try:
                items.append(copy.deepcopy(self._resolve(ref)))
            except ItemNotFoundError:
                self._log.debug("Skipping stale selection %r", ref)
        self.clipboard = items
        return len(items)

    def cut_selected(self) -> int:
        count = self.copy_selected()
        if count:
            self.delete_selected()
        return count

    def has_clipboard(self) -> bool:
        return bool(self.clipboard)

    def paste(self) -> int:
        if not self.clipboard:
            return 0
        tracks: List[Track] = []
        routes: List[Route] = []
        waypoints: List[Waypoint] = []
        for item in self.clipboard:
            if isinstance(item, Track):
                tracks.append(operations.copy_track(item, " (copy)"))
            elif isinstance(item, Route):
                routes.append(operations.copy_route(item, " (copy)"))
            elif isinstance(item, Waypoint):
                waypoints.append(operations.copy_waypoint(item, " (copy)"))
            else:
                raise TypeError(f"Unsupported clipboard item: {item!r}")
        document = self._replace(
            tracks=self._document.tracks + tracks,
            routes=self._document.routes + routes,
            waypoints=self._document.waypoints + waypoints,
        )
        self._commit(document, "paste")
        return len(self.clipboard)

    def delete_selected(self) -> int:
        """Delete every selected item. Segment refs remove just that segment."""

        track_ids = {r.id for r in self.selection if isinstance(r, TrackRef)}
        route_ids = {r.id for r in self.selection if isinstance(r, RouteRef)}
        waypoint_ids = {r.id for r in self.selection if isinstance(r, WaypointRef)}
        segment_ids: Dict[str, set] = {}
        for ref in self.selection:
            if isinstance(ref, SegmentRef):
                segment_ids.setdefault(ref.track_id, set()).add(ref.segment_id)
            elif not isinstance(ref, (TrackRef, RouteRef, WaypointRef)):
                raise TypeError(f"Unsupported selection reference: {ref!r}")

        removed = 0
        tracks: List[Track] = []
        for track in self._document.tracks:
            if track.id in track_ids:
                removed += 1
                continue
            doomed = segment_ids.get(track.id)
            if doomed:
                kept = [s for s in track.segments if s.id not in doomed]
                removed += len(track.segments) - len(kept)
                if kept:
                    tracks.append(dataclasses.replace(track, segments=kept))
                continue
            tracks.append(track)
        routes = [r for r in self._document.routes if r.id not in route_ids]
        waypoints = [w for w in self._document.waypoints if w.id not in waypoint_ids]
        removed += len(self._document.routes) - len(routes)
        removed += len(self._document.waypoints) - len(waypoints)

        if removed:
            self._commit(
                self._replace(tracks=tracks, routes=routes, waypoints=waypoints),
                "delete selection",
            )
        self.selection = []
        return removed

    # ------------------------------------------------------------------
    # Tracks
    # ------------------------------------------------------------------
    def add_track(self, track: Track) -> str:
        track = copy.deepcopy(track)
        cursor = self.cursor
        if not track.color:
            track.color, cursor = self.cursor.next_color()
        self._commit(self._replace(tracks=self._document.tracks + [track]), "add track")
        self.cursor = cursor
        return track.id

    def update_track(self, track_id: str, **changes: Any) -> None:
        _reject_id_change(changes)
        updated = dataclasses.replace(self._track(track_id), **changes)
        self._commit(
            self._replace(tracks=self._with_track(track_id, updated)), "update track"
        )

    def delete_track(self, track_id: str) -> None:
        self._commit(self._replace(tracks=self._with_track(track_id, None)), "delete track")
        self._prune_selection()

    def toggle_track_enabled(self, track_id: str) -> None:
        track = self._track(track_id)
        updated = dataclasses.replace(track, enabled=not track.enabled)
        self._document = self._replace(tracks=self._with_track(track_id, updated))

    def toggle_track_expanded(self, track_id: str) -> None:
        track = self._track(track_id)
        updated = dataclasses.replace(track, expanded=not track.expanded)
        self._document = self._replace(tracks=self._with_track(track_id, updated))

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------
    def add_route(self, route: Route) -> str:
        route = copy.deepcopy(route)
        cursor = self.cursor
        if not route.color:
            route.color, cursor = self.cursor.next_color()
        self._commit(self._replace(routes=self._document.routes + [route]), "add route")
        self.cursor = cursor
        return route.id

    def update_route(self, route_id: str, **changes: Any) -> None:
        _reject_id_change(changes)
        updated = dataclasses.replace(self._route(route_id), **changes)
        self._commit(
            self._replace(routes=self._with_route(route_id, updated)), "update route"
        )

    def delete_route(self, route_id: str) -> None:
        self._commit(self._replace(routes=self._with_route(route_id, None)), "delete route")
        self._prune_selection()

    def toggle_route_enabled(self, route_id: str) -> None:
        route = self._route(route_id)
        updated = dataclasses.replace(route, enabled=not route.enabled)
        self._document = self._replace(routes=self._with_route(route_id, updated))

    # ------------------------------------------------------------------
    # Waypoints
    # ------------------------------------------------------------------
    def add_waypoint(self, waypoint: Waypoint) -> str:
        waypoint = copy.deepcopy(waypoint)
        self._commit(
            self._replace(waypoints=self._document.waypoints + [waypoint]), "add waypoint"
        )
        return waypoint.id

    def update_waypoint(self, waypoint_id: str, **changes: Any) -> None:
        """Change waypoint fields; bad coordinates raise ``ValidationError``."""

        _reject_id_change(changes)
        updated = dataclasses.replace(self._waypoint(waypoint_id), **changes)
        self._commit(
            self._replace(waypoints=self._with_waypoint(waypoint_id, updated)),
            "update waypoint",
        )

    def delete_waypoint(self, waypoint_id: str) -> None:
        self._commit(
            self._replace(waypoints=self._with_waypoint(waypoint_id, None)),
            "delete waypoint",
        )
        self._prune_selection()

    def toggle_waypoint_enabled(self, waypoint_id: str) -> None:
        waypoint = self._waypoint(waypoint_id)
        updated = dataclasses.replace(waypoint, enabled=not waypoint.enabled)
        self._document = self._replace(
            waypoints=self._with_waypoint(waypoint_id, updated)
        )

    # ------------------------------------------------------------------
    # Track / route operations
    # ------------------------------------------------------------------
    def reverse_track(self, track_id: str) -> None:
        reversed_track = operations.reverse_track(self._track(track_id))
        self._commit(
            self._replace(tracks=self._with_track(track_id, reversed_track)),
            "reverse track",
        )

    def reverse_route(self, route_id: str) -> None:
        reversed_route = operations.reverse_route(self._route(route_id))
        self._commit(
            self._replace(routes=self._with_route(route_id, reversed_route)),
            "reverse route",
        )

    def _replace_joined(self, sources: List[Track], action: str) -> str:
        joined = sources[0]
        for track in sources[1:]:
            joined = operations.join_tracks(joined, track)
        source_ids = {t.id for t in sources}
        tracks = [t for t in self._document.tracks if t.id not in source_ids]
        self._commit(self._replace(tracks=tracks + [joined]), action)
        self.selection = []
        return joined.id

    def join_tracks(self, first_id: str, second_id: str) -> str:
        """Replace two tracks with their concatenation; returns the new id."""

        if first_id == second_id:
            raise ValidationError("Cannot join a track with itself")
        return self._replace_joined(
            [self._track(first_id), self._track(second_id)], "join tracks"
        )

    def join_selected_tracks(self) -> str:
        sources: List[Track] = []
        for ref in self.selection:
            if isinstance(ref, TrackRef):
                track = self._document.find_track(ref.id)
                if track is not None and all(t.id != track.id for t in sources):
                    sources.append(track)
        if len(sources) < 2:
            raise ValidationError("Select at least two tracks to join")
        return self._replace_joined(sources, "join selected tracks")

    def merge_track_segments(self, track_id: str) -> None:
        merged = operations.merge_track_segments(self._track(track_id))
        self._commit(
            self._replace(tracks=self._with_track(track_id, merged)), "merge segments"
        )
        self._prune_selection()

    def convert_route_to_track(self, route_id: str) -> str:
        track = operations.route_to_track(self._route(route_id))
        self._commit(
            self._replace(
                routes=self._with_route(route_id, None),
                tracks=self._document.tracks + [track],
            ),
            "convert route to track",
        )
        self.selection = []
        return track.id

    def convert_track_to_route(self, track_id: str) -> str:
        route = operations.track_to_route(self._track(track_id))
        self._commit(
            self._replace(
                tracks=self._with_track(track_id, None),
                routes=self._document.routes + [route],
            ),
            "convert track to route",
        )
        self.selection = []
        return route.id

    def create_route_from_waypoints(
        self, waypoint_ids: List[str], name: Optional[str] = None
    ) -> str:
        """Build a route through the given waypoints; unknown ids are ignored."""

        waypoints = [
            w
            for w in (self._document.find_waypoint(i) for i in waypoint_ids)
            if w is not None
        ]
        color, cursor = self.cursor.next_color()
        route = operations.route_from_waypoints(waypoints, name=name, color=color)
        self._commit(
            self._replace(routes=self._document.routes + [route]),
            "create route from waypoints",
        )
        self.cursor = cursor
        self.selection = [RouteRef(route.id)]
        return route.id

    def split_track(self, track_id: str, segment_id: str, index: int) -> Tuple[str, str]:
        """Split in place; both halves take the original track's position."""

        color, cursor = self.cursor.next_color()
        first, second = operations.split_track(
            self._track(track_id), segment_id, index, second_color=color
        )
        tracks: List[Track] = []
        for track in self._document.tracks:
            if track.id == track_id:
                tracks.extend([first, second])
            else:
                tracks.append(track)
        self._commit(self._replace(tracks=tracks), "split track")
        self.cursor = cursor
        self._prune_selection()
        return first.id, second.id

    def simplify_track(self, track_id: str, tolerance: float) -> Tuple[int, int]:
        """Returns the point count before and after."""

        track = self._track(track_id)
        simplified = operations.simplify_track(track, tolerance)
        self._commit(
            self._replace(tracks=self._with_track(track_id, simplified)),
            "simplify track",
        )
        self._prune_selection()
        return track.point_count, simplified.point_count

    def simplify_route(self, route_id: str, tolerance: float) -> Tuple[int, int]:
        route = self._route(route_id)
        simplified = operations.simplify_route(route, tolerance)
        self._commit(
            self._replace(routes=self._with_route(route_id, simplified)),
            "simplify route",
        )
        return len(route.points), len(simplified.points)

    def delete_track_point(self, track_id: str, segment_id: str, index: int) -> None:
        """Remove one point; the track is deleted with its last point."""

        result = operations.delete_track_point(self._track(track_id), segment_id, index)
        self._commit(
            self._replace(tracks=self._with_track(track_id, result)), "delete point"
        )
        self._prune_selection()

    def delete_points_in_bounds(
        self,
        bounds: BoundingBox,
        include_waypoints: bool = True,
        include_tracks: bool = True,
    ) -> Dict[str, int]:
        """Delete every point inside ``bounds``.

        Tracks and routes are split at each removed span rather than
        stitched back together. ``include_tracks`` covers routes as well.
        """

        stats = {"deleted_points": 0, "deleted_waypoints": 0, "new_segments": 0, "new_routes": 0}
        doc = self._document

        waypoints = doc.waypoints
        if include_waypoints:
            waypoints = [w for w in doc.waypoints if not bounds.contains(w.lat, w.lon)]
            stats["deleted_waypoints"] = len(doc.waypoints) - len(waypoints)

        routes = doc.routes
        tracks = doc.tracks
        if include_tracks:
            routes = []
            for route in doc.routes:
                mask = points_in_box(route.points, bounds)
                stats["deleted_points"] += int(mask.sum())
                pieces = operations.delete_points_from_route(route, mask)
                stats["new_routes"] += max(len(pieces) - 1, 0)
                routes.extend(pieces)
            tracks = []
            for track in doc.tracks:
                mask = points_in_box(list(track.points()), bounds)
                stats["deleted_points"] += int(mask.sum())
                result = operations.delete_points_from_track(track, mask)
                if result is not None:
                    stats["new_segments"] += max(len(result.segments) - len(track.segments), 0)
                    tracks.append(result)

        if stats["deleted_points"] or stats["deleted_waypoints"]:
            self._commit(
                self._replace(waypoints=waypoints, routes=routes, tracks=tracks),
                "delete points in bounds",
            )
            self.selection = []
        return stats

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------
    def sort_tracks(self, by: str) -> None:
        self._commit(
            self._replace(tracks=operations.sort_tracks(self._document.tracks, by)),
            f"sort tracks by {by}",
        )

    def sort_routes(self, by: str) -> None:
        self._commit(
            self._replace(routes=operations.sort_routes(self._document.routes, by)),
            f"sort routes by {by}",
        )

    def sort_waypoints(self, by: str) -> None:
        self._commit(
            self._replace(
                waypoints=operations.sort_waypoints(self._document.waypoints, by)
            ),
            f"sort waypoints by {by}",
        )

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------
    def statistics_for(self, ref: Selection) -> TrackStatistics:
        if isinstance(ref, TrackRef):
            return track_statistics(self._track(ref.id))
        if isinstance(ref, RouteRef):
            return route_statistics(self._route(ref.id))
        if isinstance(ref, WaypointRef):
            return calculate_statistics([self._waypoint(ref.id)])
        if isinstance(ref, SegmentRef):
            track = self._resolve(ref)
            return calculate_statistics(track.segments[0].points)
        raise TypeError(f"Unsupported selection reference: {ref!r}")

    def set_modified(self, modified: bool) -> None:
        self._document = self._replace(modified=modified)


def _reject_id_change(changes: Dict[str, Any]) -> None:
    if "id" in changes:
        raise ValidationError("Identifiers cannot be changed")


__all__ = ["DocumentStore"]
