from __future__ import annotations

import pytest

from line_transect.editing.errors import DistanceOutOfRangeError, TransectValidationError
from line_transect.editing.operations import LineTransectEditor
from line_transect.model.edit_events import ACTIVE, EDIT, INSERT, replay_events
from line_transect.model.geometry_store import GeometryStore

STRAIGHT = {"type": "LineString", "coordinates": [[0, 0], [0, 10], [0, 20]]}


def _editor(geometry=STRAIGHT, active_idx=None) -> LineTransectEditor:
    editor = LineTransectEditor(GeometryStore())
    editor.load_feature(geometry, active_idx=active_idx)
    return editor


def test_split_segment_creates_new_line_after_cut() -> None:
    editor = _editor()
    before = editor.store.lines

    events = editor.split_segment((0, 0), (0, 5))

    assert editor.store.lines == [
        [(0.0, 0.0), (0.0, 5.0)],
        [(0.0, 5.0), (0.0, 10.0), (0.0, 20.0)],
    ]
    assert [(event.type, event.idx) for event in events] == [(EDIT, 0), (INSERT, 1)]
    assert replay_events(before, events) == editor.store.lines
    assert editor.store.group_count == 1


def test_split_then_merge_restores_original_line() -> None:
    editor = _editor()
    original = editor.to_geometry()

    editor.split_segment((0, 0), (0, 5))
    editor.merge_range((0, 0), (1, 0))

    assert editor.to_geometry() == original


def test_split_at_existing_vertex_cuts_there() -> None:
    editor = _editor()

    editor.split_segment((0, 0), (0, 10))

    assert editor.store.lines == [[(0.0, 0.0), (0.0, 10.0)], [(0.0, 10.0), (0.0, 20.0)]]


def test_split_at_line_endpoint_is_rejected() -> None:
    editor = _editor()

    with pytest.raises(TransectValidationError):
        editor.split_segment((0, 0), (0, 0))

    assert editor.store.line_count == 1
    assert len(editor.history) == 1


def test_split_before_active_line_shifts_active_index() -> None:
    editor = _editor(
        {"type": "MultiLineString", "coordinates": [[[0, 0], [0, 10]], [[0, 10], [0, 20]]]},
        active_idx=1,
    )

    events = editor.split_segment((0, 0), (0, 4))

    assert editor.active_idx == 2
    assert events[-1].type == ACTIVE
    assert events[-1].idx == 2

    editor.undo()
    assert editor.active_idx == 1


def test_split_of_active_line_keeps_active_index() -> None:
    editor = _editor(active_idx=0)

    events = editor.split_segment((0, 1), (0, 15))

    assert editor.active_idx == 0
    assert ACTIVE not in [event.type for event in events]


def test_insert_point_subdivides_in_place() -> None:
    editor = _editor()

    events = editor.insert_point((0, 0), (3, 5))

    assert editor.store.lines == [[(0.0, 0.0), (3.0, 5.0), (0.0, 10.0), (0.0, 20.0)]]
    assert [(event.type, event.idx) for event in events] == [(EDIT, 0)]
    assert editor.store.line_count == 1


def test_split_at_distance_walks_segments_in_order() -> None:
    editor = _editor()

    editor.split_at_distance(15)

    lines = editor.store.lines
    assert len(lines) == 2
    assert lines[0][:2] == [(0.0, 0.0), (0.0, 10.0)]
    assert lines[0][2] == pytest.approx((0.0, 15.0))
    assert lines[1][1] == (0.0, 20.0)


@pytest.mark.parametrize("distance", [0, 20, -5, 25])
def test_split_at_distance_out_of_range(distance: float) -> None:
    editor = _editor()

    with pytest.raises(DistanceOutOfRangeError):
        editor.split_at_distance(distance)

    assert editor.store.line_count == 1


def test_split_and_merge_round_trip_on_single_segment_line() -> None:
    editor = _editor({"type": "LineString", "coordinates": [[0, 0], [0, 10]]})

    editor.split_segment((0, 0), (0, 4))
    assert editor.store.line_count == 2
    editor.merge_range((0, 0), (1, 0))

    assert editor.store.lines == [[(0.0, 0.0), (0.0, 10.0)]]
    assert len(editor.store.all_segments) == 1
