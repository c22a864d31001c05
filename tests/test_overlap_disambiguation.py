from __future__ import annotations

import pytest

from line_transect.editing.errors import AmbiguousPointError
from line_transect.editing.operations import LineTransectEditor
from line_transect.model.geometry_store import GeometryStore
from line_transect.model.invariants import InvariantError

LOOP = {"type": "LineString", "coordinates": [[0, 0], [0, 10], [10, 10], [0, 0]]}


class _FakeChooser:
    def __init__(self) -> None:
        self.requests: list[tuple] = []

    def __call__(self, first, last, resolve) -> None:
        self.requests.append((first, last, resolve))


def _editor(chooser=None) -> LineTransectEditor:
    editor = LineTransectEditor(GeometryStore(), chooser=chooser)
    editor.load_feature(LOOP)
    return editor


def test_closed_loop_endpoints_are_nonadjacent() -> None:
    editor = _editor()

    assert editor.store.nonadjacent_overlap((0, 0)) == (0, 3)
    assert editor.store.nonadjacent_overlap((0, 3)) == (0, 0)
    assert editor.store.adjacent_overlaps == {}


def test_unambiguous_point_runs_immediately() -> None:
    chooser = _FakeChooser()
    editor = _editor(chooser)

    editor.resolve_point((0, 1), editor.remove_point)

    assert chooser.requests == []
    assert editor.store.lines == [[(0.0, 0.0), (10.0, 10.0), (0.0, 0.0)]]


def test_ambiguous_point_without_chooser_is_rejected() -> None:
    editor = _editor()

    with pytest.raises(AmbiguousPointError) as excinfo:
        editor.resolve_point((0, 3), editor.remove_point)

    assert excinfo.value.partner == (0, 0)
    assert len(editor.history) == 1


def test_chooser_gets_sorted_pair_and_choice_runs_action() -> None:
    chooser = _FakeChooser()
    editor = _editor(chooser)

    editor.resolve_point((0, 3), editor.remove_point)

    first, last, resolve = chooser.requests[0]
    assert (first, last) == ((0, 0), (0, 3))

    resolve(last)

    assert editor.store.lines == [[(0.0, 0.0), (0.0, 10.0), (10.0, 10.0)]]


def test_choosing_first_removes_the_start() -> None:
    editor = _editor(lambda first, last, resolve: resolve(first))

    editor.resolve_point((0, 3), editor.remove_point)

    assert editor.store.lines == [[(0.0, 10.0), (10.0, 10.0), (0.0, 0.0)]]


def test_choice_after_rebuild_is_ignored() -> None:
    chooser = _FakeChooser()
    editor = _editor(chooser)
    editor.resolve_point((0, 0), editor.remove_point)
    _first, last, resolve = chooser.requests[0]

    editor.insert_point((0, 1), (5, 10))
    lines = editor.store.lines
    resolve(last)

    assert editor.store.lines == lines


def test_choice_outside_the_pair_is_an_invariant_error() -> None:
    chooser = _FakeChooser()
    editor = _editor(chooser)
    editor.resolve_point((0, 0), editor.remove_point)
    _first, _last, resolve = chooser.requests[0]

    with pytest.raises(InvariantError):
        resolve((0, 1))


CROSSING = {
    "type": "MultiLineString",
    "coordinates": [[[0, 0], [5, 5]], [[9, 9], [5, 5]], [[1, 1], [5, 5]]],
}


def test_third_point_at_a_crossing_still_asks_the_chooser() -> None:
    chooser = _FakeChooser()
    editor = LineTransectEditor(GeometryStore(), chooser=chooser)
    editor.load_feature(CROSSING)
    ran: list = []

    editor.resolve_point((2, 1), ran.append)

    assert ran == []
    first, last, resolve = chooser.requests[0]
    assert (first, last) == ((0, 1), (2, 1))

    resolve(last)
    assert ran == [(2, 1)]


def test_third_point_at_a_crossing_without_chooser_is_rejected() -> None:
    editor = LineTransectEditor(GeometryStore())
    editor.load_feature(CROSSING)

    with pytest.raises(AmbiguousPointError) as excinfo:
        editor.resolve_point((2, 1), editor.remove_point)

    assert excinfo.value.partner == (0, 1)
    assert editor.store.line_count == 3
