from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Literal

from line_transect.editing.errors import SegmentsNotContiguousError, TransectValidationError
from line_transect.editing.operations import REBUILD_DRAG
from line_transect.geometry.corridor import cut_line_for
from line_transect.rendering.adapter import push_styles
from line_transect.rendering.style_map import ModeSnapshot
from line_transect.services.settings_store import EditorSettings

if TYPE_CHECKING:
    from line_transect.editing.operations import LineTransectEditor
    from line_transect.geometry.geo_ops import Point
    from line_transect.model.edit_events import EditEvent
    from line_transect.model.geometry_store import GeometryStore, IdxTuple
    from line_transect.rendering.adapter import RenderingAdapter
    from line_transect.rendering.style_map import FeatureStyleHook
    from line_transect.ui.scheduler import ScheduledCall, Scheduler

logger = logging.getLogger(__name__)

IDLE = "idle"
EDITING_POINT = "editing_point"
DRAGGING = "dragging"
SPLITTING = "splitting"
SELECTING = "selecting"
SHIFTING_START = "shifting_start"

SPLIT_LINE = "split"
ADD_POINT = "add_point"

SelectMode = Literal["segment", "line"]
OnSelect = Callable[["IdxTuple"], bool]
ErrorHandler = Callable[[TransectValidationError], None]


@dataclass(frozen=True)
class HitTarget:
    kind: Literal["point", "segment", "corridor", "drag_handle", "map"]
    idx: "IdxTuple | None" = None


@dataclass(frozen=True)
class SplitPreview:
    segment: "IdxTuple"
    point: "Point"
    cut_line: tuple["Point", "Point"]


class InteractionController:
    """
    Gesture state machine between pointer input and the transect editor.

    Only one gesture is active at a time. Every index tuple held here is
    cleared when the store is rebuilt by anything other than this
    controller's own drag commit.
    """

    def __init__(
        self,
        editor: "LineTransectEditor",
        scheduler: "Scheduler",
        settings: EditorSettings | None = None,
        renderer: "RenderingAdapter | None" = None,
        feature_style: "FeatureStyleHook | None" = None,
        on_error: ErrorHandler | None = None,
        editable: bool = True,
        print_mode: bool = False,
    ) -> None:
        self.editor = editor
        self.scheduler = scheduler
        self.settings = settings or EditorSettings()
        self.renderer = renderer
        self.feature_style = feature_style
        self.on_error = on_error
        self.print_mode = print_mode
        self.editable = editable and not print_mode

        self.pointer: "Point | None" = None
        self.hover: "IdxTuple | None" = None
        self.closeby_point: "IdxTuple | None" = None
        self.dragging = False
        self.split_kind: str | None = None
        self.locked_split_segment: "IdxTuple | None" = None
        self.split_preview: SplitPreview | None = None
        self.select_mode: SelectMode | None = None
        self.merge_first: "IdxTuple | None" = None
        self.shift_mode = False
        self._on_select: OnSelect | None = None
        self._pending_click: "ScheduledCall | None" = None
        self._drag_teardown: "ScheduledCall | None" = None

        editor.add_rebuild_listener(self._on_rebuild)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def store(self) -> "GeometryStore":
        return self.editor.store

    @property
    def state(self) -> str:
        if self.dragging:
            return DRAGGING
        if self.editor.point_edit is not None:
            return EDITING_POINT
        if self.split_kind is not None:
            return SPLITTING
        if self.select_mode is not None:
            return SELECTING
        if self.shift_mode:
            return SHIFTING_START
        return IDLE

    def mode_snapshot(self) -> ModeSnapshot:
        session = self.editor.point_edit
        return ModeSnapshot(
            active_idx=self.editor.active_idx,
            hover=self.hover,
            edit_point=session.point if session is not None else None,
            edit_segments=tuple(session.affected_segments()) if session is not None else (),
            split_segment=self.split_preview.segment if self.split_preview else None,
            merge_first=self.merge_first,
            select_mode=self.select_mode,
            shift_mode=self.shift_mode,
            closeby_point=self.closeby_point,
            editable=self.editable,
            print_mode=self.print_mode,
        )

    def refresh_styles(self) -> None:
        if self.renderer is None:
            return
        push_styles(self.renderer, self.store, self.mode_snapshot(), self.feature_style)

    def _on_rebuild(self, reason: str) -> None:
        if reason != REBUILD_DRAG:
            self._clear_transient()
        self.refresh_styles()

    def _clear_transient(self) -> None:
        self._stop_dragging()
        self.hover = None
        self.closeby_point = None
        self.split_preview = None
        self.locked_split_segment = None
        self.merge_first = None
        self._cancel_pending_click()
        if self._on_select == self._choose_last_merge_segment:
            self._on_select = self._choose_first_merge_segment

    def _report(self, error: TransectValidationError) -> None:
        if self.on_error is None:
            raise error
        self.on_error(error)

    # ------------------------------------------------------------------
    # Pointer input
    # ------------------------------------------------------------------
    def pointer_move(self, position: "Point") -> None:
        self.pointer = position
        session = self.editor.point_edit
        if self.dragging and session is not None:
            session.drag_to(position)
            return

        if self.split_kind is not None:
            self._update_split_preview(position)

        closeby = None
        if self.editable:
            nearest = self.store.nearest_point(position)
            if nearest is not None and nearest[1] <= self.settings.point_snap_distance:
                closeby = nearest[0]
        self.closeby_point = closeby
        self.refresh_styles()

    def pointer_over(self, target: HitTarget) -> None:
        if target.kind in ("segment", "corridor", "point") and target.idx is not None:
            self.hover = target.idx
            self.refresh_styles()

    def pointer_out(self, target: HitTarget) -> None:
        if self.hover is not None and self.hover == target.idx:
            self.hover = None
            self.refresh_styles()

    def pointer_down(self, target: HitTarget, position: "Point") -> None:
        session = self.editor.point_edit
        if not self.editable or session is None or self.dragging:
            return
        grabs_point = target.kind == "drag_handle" or (
            target.kind == "point" and target.idx == session.point
        )
        grabs_corridor = target.kind == "corridor" and target.idx in session.affected_segments()
        if not (grabs_point or grabs_corridor):
            return
        if self._drag_teardown is not None:
            self._drag_teardown.cancel()
            self._drag_teardown = None
        self.pointer = position
        session.begin_drag(position)
        self.dragging = True
        logger.debug("Drag started at %s", session.point)

    def pointer_up(self, position: "Point | None" = None) -> None:
        session = self.editor.point_edit
        if not self.dragging:
            return
        if session is None:
            self._stop_dragging()
            self.refresh_styles()
            return
        if position is not None:
            session.drag_to(position)
        session.end_drag()
        self.editor.commit_point_drag()
        # The click that follows this pointer-up belongs to the drag.
        self._drag_teardown = self.scheduler.call_soon(self._finish_drag)

    def _finish_drag(self) -> None:
        self._drag_teardown = None
        self.dragging = False
        self.refresh_styles()

    def _stop_dragging(self) -> None:
        if self._drag_teardown is not None:
            self._drag_teardown.cancel()
            self._drag_teardown = None
        self.dragging = False

    def click(self, target: HitTarget, position: "Point | None" = None) -> None:
        if self.dragging:
            return
        if position is not None:
            self.pointer = position
        if self._intercept_click():
            return

        if target.kind == "point" and target.idx is not None and self._is_coincident(target.idx):
            return

        if self.shift_mode:
            self._handle_click(target)
            return

        self._cancel_pending_click()
        if self.closeby_point is not None:
            self._pending_click = self.scheduler.call_later(
                self.settings.click_delay_ms, lambda: self._run_pending_click(target)
            )
        else:
            self._handle_click(target)

    def double_click(self, target: HitTarget, position: "Point | None" = None) -> None:
        self._cancel_pending_click()
        if not self.editable:
            return
        point = target.idx if target.kind == "point" else self.closeby_point
        if point is not None:
            self.request_edit_point(point)

    def cancel(self) -> None:
        """Commit an open point edit; abort split, selection and shift."""
        self._cancel_pending_click()
        if self.editor.point_edit is not None:
            # end_point_edit records a drag still in progress
            self.editor.end_point_edit()
        self._stop_dragging()
        if self.split_kind is not None:
            self.stop_split()
        if self.select_mode is not None:
            self.stop_selection()
        if self.shift_mode:
            self.stop_shift_start()
        self.refresh_styles()

    # ------------------------------------------------------------------
    # Click helpers
    # ------------------------------------------------------------------
    def _intercept_click(self) -> bool:
        if self.editor.point_edit is not None and not self.dragging:
            self.editor.end_point_edit()
            self.refresh_styles()
            return True
        if self.split_kind is not None:
            if self.pointer is not None:
                self._update_split_preview(self.pointer)
            self._commit_split()
            return True
        return False

    def _is_coincident(self, point: "IdxTuple") -> bool:
        return bool(self.store.coincident_with(point))

    def _run_pending_click(self, target: HitTarget) -> None:
        self._pending_click = None
        self._handle_click(target)

    def _cancel_pending_click(self) -> None:
        if self._pending_click is not None:
            self._pending_click.cancel()
            self._pending_click = None

    def _handle_click(self, target: HitTarget) -> None:
        if self.shift_mode:
            point = target.idx if target.kind == "point" else self.closeby_point
            if point is not None and self.store.can_shift_to(point):
                self.commit_shift_start(point)
            return

        if target.idx is None or target.kind in ("map", "drag_handle"):
            return
        if not self.store.has_point(target.idx) and not self.store.has_segment(target.idx):
            return

        if self.select_mode is not None and target.kind in ("segment", "corridor"):
            if self._on_select is not None and self._on_select(target.idx) is not False:
                self.stop_selection()
            self.refresh_styles()
            return

        line_idx = target.idx[0]
        if line_idx != self.editor.active_idx:
            self.editor.set_active(line_idx)
            self.refresh_styles()

    # ------------------------------------------------------------------
    # Split and point add
    # ------------------------------------------------------------------
    def start_split(self, segment: "IdxTuple | None" = None) -> None:
        self._start_split(SPLIT_LINE, segment)

    def start_point_add(self, segment: "IdxTuple | None" = None) -> None:
        self._start_split(ADD_POINT, segment)

    def _start_split(self, kind: str, segment: "IdxTuple | None") -> None:
        if not self.editable:
            return
        self._close_point_edit()
        self.split_kind = kind
        self.locked_split_segment = segment
        self.split_preview = None
        if self.pointer is not None:
            self._update_split_preview(self.pointer)
        self.refresh_styles()

    def stop_split(self) -> None:
        self.split_kind = None
        self.locked_split_segment = None
        self.split_preview = None
        self.refresh_styles()

    def _update_split_preview(self, position: "Point") -> None:
        store = self.store
        if self.locked_split_segment is not None and store.has_segment(self.locked_split_segment):
            record = store.segment(self.locked_split_segment)
            point = store.geo_ops.closest_point_on_segment(position, record.start, record.end)
        else:
            nearest = store.nearest_segment(position)
            if nearest is None:
                self.split_preview = None
                return
            record = store.segment(nearest[0])
            point = nearest[1]
        cut_line = cut_line_for(point, record.start, record.end, store.half_width, store.geo_ops)
        self.split_preview = SplitPreview(record.idx, point, cut_line)

    def _commit_split(self) -> None:
        preview = self.split_preview
        kind = self.split_kind
        self.stop_split()
        if preview is None:
            return
        operation = self.editor.split_segment if kind == SPLIT_LINE else self.editor.insert_point
        try:
            operation(preview.segment, preview.point)
        except TransectValidationError as exc:
            self._report(exc)

    # ------------------------------------------------------------------
    # Selection and merging
    # ------------------------------------------------------------------
    def start_selection(self, on_select: OnSelect, mode: SelectMode = "segment") -> None:
        """Call ``on_select`` with each clicked segment until it returns anything but False."""
        self._close_point_edit()
        self.select_mode = mode
        self._on_select = on_select
        self.refresh_styles()

    def stop_selection(self) -> None:
        self.select_mode = None
        self._on_select = None
        self.merge_first = None
        self.refresh_styles()

    def start_merge_selection(self) -> None:
        if not self.editable:
            return
        self.start_selection(self._choose_first_merge_segment)

    def _choose_first_merge_segment(self, segment: "IdxTuple") -> bool:
        self.merge_first = segment
        self._on_select = self._choose_last_merge_segment
        return False

    def _choose_last_merge_segment(self, segment: "IdxTuple") -> bool:
        first = self.merge_first
        if first is None:
            return True
        try:
            self.editor.merge_range(first, segment)
        except SegmentsNotContiguousError as exc:
            if self.on_error is not None:
                self.on_error(exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Shifting the start
    # ------------------------------------------------------------------
    def start_shift_start(self) -> None:
        if not self.editable:
            return
        self._close_point_edit()
        self.shift_mode = True
        self.refresh_styles()

    def stop_shift_start(self) -> None:
        self.shift_mode = False
        self.refresh_styles()

    def commit_shift_start(self, point: "IdxTuple") -> None:
        self.stop_shift_start()
        self._run_gated(point, self.editor.shift_group_start)

    # ------------------------------------------------------------------
    # Point-targeted requests
    # ------------------------------------------------------------------
    def request_remove_point(self, point: "IdxTuple") -> None:
        if not self.editable:
            return
        self._close_point_edit()
        self._run_gated(point, self.editor.remove_point)

    def request_edit_point(self, point: "IdxTuple") -> None:
        if not self.editable or self.shift_mode:
            return
        self._run_gated(point, self._begin_point_edit)

    def _begin_point_edit(self, point: "IdxTuple") -> None:
        self.editor.begin_point_edit(point)
        self.refresh_styles()

    def split_at_distance(self, distance: float) -> list["EditEvent"]:
        if self.select_mode is not None:
            self.stop_selection()
        self._close_point_edit()
        try:
            return self.editor.split_at_distance(distance)
        except TransectValidationError as exc:
            self._report(exc)
            return []

    def _run_gated(self, point: "IdxTuple", action: Callable[["IdxTuple"], object]) -> None:
        def guarded(choice: "IdxTuple") -> None:
            try:
                action(choice)
            except TransectValidationError as exc:
                self._report(exc)

        try:
            self.editor.resolve_point(point, guarded)
        except TransectValidationError as exc:
            self._report(exc)

    def _close_point_edit(self) -> None:
        if self.editor.point_edit is not None:
            self.editor.end_point_edit()
