from __future__ import annotations

import pytest

from line_transect.editing.errors import ShiftTargetError
from line_transect.editing.operations import LineTransectEditor
from line_transect.model.edit_events import ACTIVE, MOVE, replay_events
from line_transect.model.geometry_store import GeometryStore

A = [(0.0, 0.0), (0.0, 10.0)]
B = [(0.0, 10.0), (10.0, 10.0)]
C = [(10.0, 10.0), (0.0, 0.0)]
D = [(50.0, 50.0), (60.0, 60.0)]


def _editor(*lines, active_idx=None) -> LineTransectEditor:
    editor = LineTransectEditor(GeometryStore())
    editor.load_feature(
        {"type": "MultiLineString", "coordinates": [[list(p) for p in line] for line in lines]},
        active_idx=active_idx,
    )
    return editor


def test_shift_rotates_first_group_to_start_at_line() -> None:
    editor = _editor(A, B, C, D)
    before = editor.store.lines

    events = editor.shift_group_start((1, 0))

    assert editor.store.lines == [B, C, A, D]
    assert [(event.type, event.idx, event.target) for event in events] == [
        (MOVE, 2, 0),
        (MOVE, 2, 0),
    ]
    assert replay_events(before, events) == editor.store.lines
    assert editor.store.group_lines(0) == [0, 1, 2]


def test_shift_from_line_end_starts_at_next_line() -> None:
    editor = _editor(A, B, C, D)

    editor.shift_group_start((1, 1))

    assert editor.store.lines == [C, A, B, D]


def test_shift_undo_restores_order() -> None:
    editor = _editor(A, B, C, D)

    editor.shift_group_start((2, 0))
    editor.undo()

    assert editor.store.lines == [A, B, C, D]


@pytest.mark.parametrize("point", [(0, 0), (2, 1)])
def test_shift_to_current_group_boundary_is_a_no_op(point) -> None:
    editor = _editor(A, B, C, D)

    assert editor.shift_group_start(point) == []
    assert editor.store.lines == [A, B, C, D]
    assert len(editor.history) == 1


@pytest.mark.parametrize("point", [(3, 0), (0, 5)])
def test_shift_target_outside_first_group_is_rejected(point) -> None:
    editor = _editor(A, B, C, D)

    with pytest.raises(ShiftTargetError):
        editor.shift_group_start(point)


def test_shift_to_interior_point_is_rejected() -> None:
    editor = _editor([(0, 0), (0, 5), (0, 10)], B, C)

    with pytest.raises(ShiftTargetError):
        editor.shift_group_start((0, 1))


def test_shift_remaps_active_line() -> None:
    editor = _editor(A, B, C, D, active_idx=0)

    events = editor.shift_group_start((1, 0))

    assert editor.active_idx == 2
    assert events[-1].type == ACTIVE


def test_shift_leaves_active_line_in_other_group() -> None:
    editor = _editor(A, B, C, D, active_idx=3)

    editor.shift_group_start((1, 0))

    assert editor.active_idx == 3
