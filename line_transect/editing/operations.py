"""Structural edits on a line transect with event-sourced undo/redo."""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Mapping, Sequence

from line_transect.editing.errors import (
    AmbiguousPointError,
    DistanceOutOfRangeError,
    LastSegmentError,
    SegmentsNotContiguousError,
    ShiftTargetError,
    TransectValidationError,
)
from line_transect.editing.point_edit_session import PointEditSession
from line_transect.geometry.measure import locate_distance, total_length
from line_transect.model.edit_events import (
    ACTIVE,
    CREATE,
    DELETE,
    EDIT,
    INSERT,
    MERGE,
    MOVE,
    EditEvent,
    describe_events,
)
from line_transect.model.geometry_io import (
    Feature,
    Geometry,
    Point,
    feature_geometry,
    geometry_to_lines,
    line_geometry,
    lines_to_geometry,
    make_feature,
    normalize_point,
)
from line_transect.model.geometry_store import (
    GeometryStore,
    IdxTuple,
    following_segment,
    preceding_segment,
)
from line_transect.model.history import HistoryLog, HistoryStep
from line_transect.model.invariants import InvariantError, assert_lines_valid

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[list[EditEvent]], None]
Resolve = Callable[[IdxTuple], None]
Chooser = Callable[[IdxTuple, IdxTuple, Resolve], None]
RebuildListener = Callable[[str], None]

REBUILD_LOAD = "load"
REBUILD_EDIT = "edit"
REBUILD_DRAG = "drag"
REBUILD_UNDO = "undo"
REBUILD_REDO = "redo"

Lines = list[list[Point]]


class LineTransectEditor:
    """
    Owns the store and the history and applies every structural edit.

    Each operation works on a copy of the current lines, validates the
    result and then commits it in one step: a history entry, a store
    rebuild and a single ``on_change`` call. A rejected operation raises a
    :class:`TransectValidationError` before anything is touched.
    """

    def __init__(
        self,
        store: GeometryStore,
        history: HistoryLog | None = None,
        on_change: ChangeHandler | None = None,
        chooser: Chooser | None = None,
        endpoint_snap_distance: float = 20.0,
    ) -> None:
        self.store = store
        self.history = history or HistoryLog()
        self.on_change = on_change
        self.chooser = chooser
        self.endpoint_snap_distance = endpoint_snap_distance
        self.active_idx: int | None = None
        self.point_edit: PointEditSession | None = None
        self._properties: dict[str, Any] = {}
        self._feature_id: str | int | None = None
        self._rebuild_listeners: list[RebuildListener] = []

    # ------------------------------------------------------------------
    # Loading and output
    # ------------------------------------------------------------------
    def add_rebuild_listener(self, listener: RebuildListener) -> None:
        self._rebuild_listeners.append(listener)

    def remove_rebuild_listener(self, listener: RebuildListener) -> None:
        if listener in self._rebuild_listeners:
            self._rebuild_listeners.remove(listener)

    def load_feature(
        self, feature_or_geometry: Mapping[str, Any], active_idx: int | None = None
    ) -> None:
        """Start editing a new transect; history restarts at the loaded geometry."""
        if feature_or_geometry.get("type") == "Feature":
            self._properties = dict(feature_or_geometry.get("properties") or {})
            self._feature_id = feature_or_geometry.get("id")
        else:
            self._properties = {}
            self._feature_id = None
        lines = geometry_to_lines(feature_geometry(feature_or_geometry))
        assert_lines_valid(lines)

        self.point_edit = None
        self.active_idx = active_idx
        self.store.load_lines(lines)
        self.history.reset(self.store.to_geometry())
        logger.info(
            "Loaded transect with %d line(s) and %d segment(s)",
            self.store.line_count,
            len(self.store.all_segments),
        )
        self._notify_rebuild(REBUILD_LOAD)

    def feature(self) -> Feature:
        return self._feature_for(self.store.lines)

    def to_geometry(self) -> Geometry:
        return self.store.to_geometry()

    def _feature_for(self, lines: Sequence[Sequence[Point]]) -> Feature:
        return make_feature(lines_to_geometry(lines), self._properties, self._feature_id)

    def set_geometry(
        self,
        geometry: Mapping[str, Any],
        events: Sequence[EditEvent] | None = None,
        active_change: tuple[int, int] | None = None,
        reason: str = REBUILD_EDIT,
    ) -> None:
        """Rebuild from ``geometry``; with ``events`` a history entry is pushed first."""
        lines = geometry_to_lines(geometry)
        assert_lines_valid(lines)
        if events is not None:
            self.history.push(lines_to_geometry(lines), events, active_change)
        if reason != REBUILD_DRAG:
            self.point_edit = None
        self.store.load_lines(lines)
        self._notify_rebuild(reason)

    def _notify_rebuild(self, reason: str) -> None:
        for listener in list(self._rebuild_listeners):
            listener(reason)

    def _emit(self, events: list[EditEvent]) -> None:
        if events and self.on_change is not None:
            # hosts get their own copies; history keeps the originals for redo
            self.on_change(copy.deepcopy(list(events)))

    def _commit(
        self,
        operation: str,
        lines: Lines,
        events: list[EditEvent],
        active_after: int | None = None,
        reason: str = REBUILD_EDIT,
    ) -> list[EditEvent]:
        active_change = None
        if active_after is not None and active_after != self.active_idx:
            active_change = (self.active_idx, active_after)
            self.active_idx = active_after
            events = [*events, EditEvent(ACTIVE, idx=active_after)]

        self.set_geometry(lines_to_geometry(lines), events, active_change, reason)
        logger.debug(
            "%s committed: %s (history %d/%d)",
            operation,
            describe_events(events),
            self.history.pointer,
            len(self.history) - 1,
        )
        self._emit(events)
        return events

    def _rejected(
        self, operation: str, error: TransectValidationError
    ) -> TransectValidationError:
        logger.info("%s rejected: %s", operation, error)
        return error

    def _event(
        self,
        event_type: str,
        idx: int,
        lines: Lines,
        prev_feature: Feature,
        with_geometry: bool = True,
    ) -> EditEvent:
        return EditEvent(
            event_type,
            idx=idx,
            geometry=line_geometry(lines[idx]) if with_geometry else None,
            feature=self._feature_for(lines),
            prev_feature=prev_feature,
        )

    # ------------------------------------------------------------------
    # Split and insert
    # ------------------------------------------------------------------
    def split_segment(self, segment: IdxTuple, split_point: Point) -> list[EditEvent]:
        """Cut the line at ``split_point``; the part after the cut becomes line ``l + 1``."""
        self.store.segment(segment)
        line_idx, segment_idx = segment
        point = normalize_point(split_point)
        lines = self.store.lines
        line = lines[line_idx]

        start, end = line[segment_idx], line[segment_idx + 1]
        same = self.store.same_point
        if same(point, start):
            cut = segment_idx
        elif same(point, end):
            cut = segment_idx + 1
        else:
            cut = None

        if cut is None:
            head = [*line[: segment_idx + 1], point]
            tail = [point, *line[segment_idx + 1 :]]
        elif 0 < cut < len(line) - 1:
            head = line[: cut + 1]
            tail = line[cut:]
        else:
            raise self._rejected(
                "split_segment",
                TransectValidationError(
                    f"Split point of segment {line_idx}-{segment_idx} is a line endpoint."
                ),
            )

        prev_feature = self.feature()
        lines[line_idx] = head
        lines.insert(line_idx + 1, tail)
        events = [
            self._event(EDIT, line_idx, lines, prev_feature),
            self._event(INSERT, line_idx + 1, lines, prev_feature),
        ]
        active_after = None
        if self.active_idx is not None and line_idx < self.active_idx:
            active_after = self.active_idx + 1
        return self._commit("split_segment", lines, events, active_after)

    def insert_point(self, segment: IdxTuple, point: Point) -> list[EditEvent]:
        """Subdivide a segment in place."""
        self.store.segment(segment)
        line_idx, segment_idx = segment
        prev_feature = self.feature()
        lines = self.store.lines
        lines[line_idx].insert(segment_idx + 1, normalize_point(point))
        return self._commit(
            "insert_point", lines, [self._event(EDIT, line_idx, lines, prev_feature)]
        )

    def split_at_distance(self, distance: float) -> list[EditEvent]:
        """Split the transect ``distance`` units from its start, in line order."""
        lines = self.store.lines
        geo_ops = self.store.geo_ops
        try:
            flat_idx, remaining = locate_distance(lines, distance, geo_ops)
        except ValueError:
            raise self._rejected(
                "split_at_distance",
                DistanceOutOfRangeError(
                    f"Distance {distance} must be between 0 and "
                    f"{total_length(lines, geo_ops):.1f}."
                ),
            )
        segment = self.store.segment_at_flat(flat_idx)
        record = self.store.segment(segment)
        bearing = geo_ops.bearing(record.start, record.end)
        return self.split_segment(segment, geo_ops.destination(record.start, bearing, remaining))

    # ------------------------------------------------------------------
    # Removal and merging
    # ------------------------------------------------------------------
    def _remove_point_step(
        self, lines: Lines, point: IdxTuple, active_idx: int | None
    ) -> tuple[list[EditEvent], int | None]:
        """Remove ``point`` from ``lines`` in place; returns events and corrected active index."""
        same = self.store.same_point
        line_idx, point_idx = point
        preceding = preceding_segment(lines, point, same)
        following = following_segment(lines, point, same)
        prev_feature = self._feature_for(lines)
        removed_slot: int | None = None
        merged_into: int | None = None

        if preceding is not None and following is not None and preceding[0] == following[0]:
            del lines[line_idx][point_idx]
            events = [self._event(EDIT, line_idx, lines, prev_feature)]
        elif preceding is not None and following is not None:
            kept, removed = preceding[0], following[0]
            lines[kept] = [*lines[kept][:-1], *lines[removed][1:]]
            del lines[removed]
            removed_slot, merged_into = removed, kept
            merged = self._feature_for(lines)
            events = [
                EditEvent(
                    MERGE,
                    idxs=(kept, removed),
                    geometry=line_geometry(lines[kept]),
                    feature=merged,
                    prev_feature=prev_feature,
                )
            ]
        elif preceding is not None or following is not None:
            if len(lines[line_idx]) > 2:
                del lines[line_idx][point_idx]
                events = [self._event(EDIT, line_idx, lines, prev_feature)]
            elif len(lines) > 1:
                del lines[line_idx]
                removed_slot = line_idx
                events = [self._event(DELETE, line_idx, lines, prev_feature, with_geometry=False)]
            else:
                raise LastSegmentError("Cannot remove the last segment of the transect.")
        else:
            raise InvariantError(f"Point {line_idx}-{point_idx} has no neighbouring segment.")

        if active_idx is not None and removed_slot is not None:
            if active_idx > removed_slot:
                active_idx -= 1
            elif active_idx == removed_slot:
                active_idx = merged_into if merged_into is not None else min(active_idx, len(lines) - 1)
        return events, active_idx

    def remove_point(self, point: IdxTuple) -> list[EditEvent]:
        self.store.point(point)
        lines = self.store.lines
        try:
            events, active_after = self._remove_point_step(lines, point, self.active_idx)
        except TransectValidationError as exc:
            self._rejected("remove_point", exc)
            raise
        return self._commit("remove_point", lines, events, active_after)

    def merge_range(self, first_segment: IdxTuple, last_segment: IdxTuple) -> list[EditEvent]:
        """
        Join every segment between two segments (inclusive) into one.

        The segments must form an unbroken chain in flat order. Interior
        points are removed from the far end back to the near end so the
        pre-edit index of each point stays valid while removing.
        """
        first, last = sorted(
            (self.store.flat_segment_index(first_segment), self.store.flat_segment_index(last_segment))
        )
        if first == last:
            return []

        segments = self.store.all_segments
        for flat_idx in range(first + 1, last + 1):
            if not self.store.same_point(segments[flat_idx].start, segments[flat_idx - 1].end):
                raise self._rejected(
                    "merge_range",
                    SegmentsNotContiguousError(
                        f"Segments {first}..{last} are not connected between "
                        f"{flat_idx - 1} and {flat_idx}."
                    ),
                )

        lines = self.store.lines
        active_idx = self.active_idx
        events: list[EditEvent] = []
        for flat_idx in range(last, first, -1):
            step_events, active_idx = self._remove_point_step(
                lines, segments[flat_idx].idx, active_idx
            )
            events.extend(step_events)
        return self._commit("merge_range", lines, events, active_idx)

    # ------------------------------------------------------------------
    # Re-rooting
    # ------------------------------------------------------------------
    def shift_group_start(self, point: IdxTuple) -> list[EditEvent]:
        """Rotate the first group so it starts at the line boundary ``point``."""
        if not self.store.can_shift_to(point):
            raise self._rejected(
                "shift_group_start",
                ShiftTargetError(
                    f"Point {point[0]}-{point[1]} is not the first or last point of a line "
                    "in the first group."
                ),
            )
        line_idx, point_idx = point
        start_line = line_idx if point_idx == 0 else line_idx + 1
        group_size = len(self.store.group_lines(0))
        if start_line in (0, group_size):
            return []

        prev_feature = self.feature()
        lines = self.store.lines
        head, tail = lines[:start_line], lines[start_line:group_size]
        lines = [*tail, *head, *lines[group_size:]]
        feature = self._feature_for(lines)
        events = [
            EditEvent(MOVE, idx=group_size - 1, target=0, feature=feature, prev_feature=prev_feature)
            for _ in tail
        ]

        active_after = None
        if self.active_idx is not None and self.active_idx < group_size:
            if self.active_idx < start_line:
                active_after = self.active_idx + len(tail)
            else:
                active_after = self.active_idx - start_line
        return self._commit("shift_group_start", lines, events, active_after)

    # ------------------------------------------------------------------
    # Lines and active index
    # ------------------------------------------------------------------
    def add_line(self, coordinates: Sequence[Sequence[float]]) -> list[EditEvent]:
        line = [normalize_point(raw) for raw in coordinates]
        if len(line) < 2:
            raise self._rejected("add_line", TransectValidationError("A new line needs at least two points."))
        prev_feature = self.feature()
        lines = self.store.lines
        lines.append(line)
        return self._commit(
            "add_line", lines, [self._event(CREATE, len(lines) - 1, lines, prev_feature)]
        )

    def set_active(self, line_idx: int) -> list[EditEvent]:
        if not 0 <= line_idx < self.store.line_count:
            raise InvariantError(f"Line {line_idx} does not exist.")
        self.active_idx = line_idx
        events = [EditEvent(ACTIVE, idx=line_idx)]
        self._emit(events)
        return events

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def undo(self) -> list[EditEvent]:
        self.point_edit = None
        step = self.history.undo()
        if step is None:
            return []
        return self._apply_history_step(step, REBUILD_UNDO)

    def redo(self) -> list[EditEvent]:
        self.point_edit = None
        step = self.history.redo()
        if step is None:
            return []
        return self._apply_history_step(step, REBUILD_REDO)

    def _apply_history_step(self, step: HistoryStep, reason: str) -> list[EditEvent]:
        if step.active_idx is not None:
            self.active_idx = step.active_idx
        self.set_geometry(step.geometry, reason=reason)
        logger.debug(
            "%s: %s (history %d/%d)",
            reason,
            describe_events(step.events),
            self.history.pointer,
            len(self.history) - 1,
        )
        self._emit(step.events)
        return step.events

    # ------------------------------------------------------------------
    # Overlap disambiguation
    # ------------------------------------------------------------------
    def resolve_point(self, point: IdxTuple, action: Callable[[IdxTuple], Any]) -> Any:
        """
        Run ``action`` on ``point`` once it is unambiguous.

        If ``point`` coincides with an unrelated point the chooser picks one
        of ``(first, last)`` and ``action`` runs with the pick, possibly
        later. The other candidate is the paired overlap partner, or the
        first other point of a larger cluster. A pick made after the store
        has been rebuilt is dropped.
        """
        self.store.point(point)
        coord = self.store.coord(point)
        candidates = [
            other
            for other in self.store.coincident_with(point)
            if self.store.has_point(other) and self.store.same_point(self.store.coord(other), coord)
        ]
        if not candidates:
            return action(point)
        partner = self.store.nonadjacent_overlap(point)
        if partner not in candidates:
            partner = candidates[0]

        if self.chooser is None:
            error = AmbiguousPointError(point, partner)
            logger.info("Point resolution rejected: %s", error)
            raise error

        first, last = sorted((partner, point))
        generation = self.store.generation

        def resolve(choice: IdxTuple) -> None:
            if self.store.generation != generation:
                logger.warning(
                    "Ignoring choice %s for %s: the transect changed meanwhile", choice, point
                )
                return
            if tuple(choice) not in (first, last):
                raise InvariantError(f"{choice} is neither {first} nor {last}.")
            action(tuple(choice))

        self.chooser(first, last, resolve)
        return None

    # ------------------------------------------------------------------
    # Point editing
    # ------------------------------------------------------------------
    def begin_point_edit(self, point: IdxTuple) -> PointEditSession:
        if self.point_edit is not None:
            if self.point_edit.point == point:
                return self.point_edit
            self.end_point_edit()
        self.point_edit = PointEditSession(
            self.store, point, self.feature(), self.endpoint_snap_distance
        )
        logger.debug("Point edit started at %s", point)
        return self.point_edit

    def commit_point_drag(self) -> list[EditEvent]:
        """Record the drag so far as one history entry; the edit stays open."""
        session = self.point_edit
        if session is None or not session.changed:
            return []
        lines = self.store.lines
        feature = self._feature_for(lines)
        events = [
            EditEvent(
                EDIT,
                idx=line_idx,
                geometry=line_geometry(lines[line_idx]),
                feature=feature,
                prev_feature=session.feature_before,
            )
            for line_idx in session.affected_lines()
        ]
        committed = self._commit("point_drag", lines, events, reason=REBUILD_DRAG)
        session.rebase(self.feature())
        return committed

    def end_point_edit(self) -> list[EditEvent]:
        """Close the point edit, committing any movement not yet recorded."""
        session = self.point_edit
        if session is None:
            return []
        session.end_drag()
        events = self.commit_point_drag()
        self.point_edit = None
        logger.debug("Point edit at %s closed", session.point)
        return events

