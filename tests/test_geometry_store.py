from __future__ import annotations

import pytest

from line_transect.model.geometry_io import GeometryFormatError
from line_transect.model.geometry_store import (
    CORRIDOR,
    POINT,
    SEGMENT,
    GeometryStore,
    classify_overlaps,
    coincident_points,
    group_indices,
    point_matcher,
)
from line_transect.model.invariants import InvariantError, validate_store


def _multi(*lines):
    return {"type": "MultiLineString", "coordinates": [list(map(list, line)) for line in lines]}


class _FakeRenderer:
    def __init__(self) -> None:
        self.rebuilds = 0
        self.shapes: list[tuple[int, list]] = []

    def rebuild(self, store) -> None:
        self.rebuilds += 1

    def update_shape(self, handle, coordinates) -> None:
        self.shapes.append((handle.id, list(coordinates)))

    def update_style(self, handle, style) -> None:
        pass


def test_load_builds_aligned_arrays_per_line() -> None:
    store = GeometryStore()
    store.load(_multi([(0, 0), (0, 10), (0, 20)], [(0, 20), (10, 20)]))

    assert store.line_count == 2
    assert [len(row) for row in store.segments] == [2, 1]
    assert [len(row) for row in store.points] == [3, 2]
    assert [len(row) for row in store.corridors] == [2, 1]
    assert len(store.all_segments) == 3
    validate_store(store)


def test_line_string_round_trips_as_line_string() -> None:
    store = GeometryStore()
    store.load({"type": "LineString", "coordinates": [[0, 0], [5, 5]]})

    assert store.to_geometry() == {"type": "LineString", "coordinates": [[0.0, 0.0], [5.0, 5.0]]}


def test_handles_resolve_to_index_tuples_and_go_stale_on_rebuild() -> None:
    store = GeometryStore()
    store.load(_multi([(0, 0), (0, 10)], [(0, 10), (0, 20)]))
    point = store.point((1, 1))
    segment = store.segment((1, 0))

    assert store.index_of(point.handle) == (1, 1)
    assert store.kind_of(point.handle) == POINT
    assert store.kind_of(segment.handle) == SEGMENT
    assert store.kind_of(store.corridor((0, 0)).handle) == CORRIDOR

    store.load(_multi([(0, 0), (0, 10)]))

    with pytest.raises(InvariantError):
        store.index_of(point.handle)


def test_missing_indices_raise_invariant_error() -> None:
    store = GeometryStore()
    store.load(_multi([(0, 0), (0, 10)]))

    with pytest.raises(InvariantError):
        store.segment((0, 1))
    with pytest.raises(InvariantError):
        store.point((1, 0))
    assert not store.has_point((0, 2))
    assert store.has_segment((0, 0))


def test_flat_indices_follow_line_order() -> None:
    store = GeometryStore()
    store.load(_multi([(0, 0), (0, 10), (0, 20)], [(0, 20), (10, 20), (20, 20)]))

    assert store.flat_segment_index((1, 0)) == 2
    assert store.segment_at_flat(3) == (1, 1)
    assert store.flat_point_index((1, 0)) == 3
    assert store.point_at_flat(4) == (1, 1)


def test_neighbour_segments_cross_seams_only() -> None:
    store = GeometryStore()
    store.load(_multi([(0, 0), (0, 10)], [(0, 10), (0, 20)], [(50, 50), (60, 60)]))

    assert store.following_segment((0, 1)) == (1, 0)
    assert store.preceding_segment((1, 0)) == (0, 0)
    assert store.following_segment((1, 1)) is None
    assert store.preceding_segment((2, 0)) is None
    assert store.preceding_segment((0, 0)) is None


def test_groups_split_where_lines_do_not_continue() -> None:
    store = GeometryStore()
    store.load(_multi([(0, 0), (0, 10)], [(0, 10), (0, 20)], [(50, 50), (60, 60)]))

    assert [store.line_group(i) for i in range(3)] == [0, 0, 1]
    assert store.group_lines(0) == [0, 1]
    assert store.group_count == 2
    assert store.is_group_endpoint((0, 0))
    assert store.is_group_endpoint((1, 1))
    assert not store.is_group_endpoint((0, 1))
    assert store.is_group_endpoint((2, 0))


def test_can_shift_to_only_line_boundaries_of_first_group() -> None:
    store = GeometryStore()
    store.load(_multi([(0, 0), (0, 5), (0, 10)], [(0, 10), (0, 20)], [(50, 50), (60, 60)]))

    assert store.can_shift_to((0, 2))
    assert store.can_shift_to((1, 0))
    assert not store.can_shift_to((0, 1))
    assert not store.can_shift_to((2, 0))
    assert not store.can_shift_to((9, 0))


def test_seams_are_adjacent_and_crossings_nonadjacent() -> None:
    lines = [
        [(0.0, 0.0), (0.0, 10.0)],
        [(0.0, 10.0), (10.0, 10.0), (10.0, 0.0), (0.0, 5.0)],
        [(20.0, 20.0), (0.0, 0.0)],
    ]

    adjacent, nonadjacent = classify_overlaps(lines)

    assert adjacent == {"0-1": (1, 0), "1-0": (0, 1)}
    assert nonadjacent == {"0-0": (2, 1), "2-1": (0, 0)}


def test_overlap_maps_stay_symmetric_with_three_coincident_points() -> None:
    lines = [
        [(0.0, 0.0), (5.0, 5.0)],
        [(9.0, 9.0), (5.0, 5.0)],
        [(1.0, 1.0), (5.0, 5.0)],
    ]

    _adjacent, nonadjacent = classify_overlaps(lines)

    assert nonadjacent == {"0-1": (1, 1), "1-1": (0, 1)}


def test_coincident_points_cover_the_whole_cluster() -> None:
    lines = [
        [(0.0, 0.0), (5.0, 5.0)],
        [(9.0, 9.0), (5.0, 5.0)],
        [(1.0, 1.0), (5.0, 5.0)],
    ]

    coincident = coincident_points(lines)

    assert coincident == {
        "0-1": ((1, 1), (2, 1)),
        "1-1": ((0, 1), (2, 1)),
        "2-1": ((0, 1), (1, 1)),
    }


def test_coincident_points_leave_out_seam_partners() -> None:
    lines = [
        [(0.0, 0.0), (0.0, 10.0)],
        [(0.0, 10.0), (10.0, 10.0)],
        [(5.0, 5.0), (0.0, 10.0)],
    ]

    coincident = coincident_points(lines)

    assert coincident == {
        "0-1": ((2, 1),),
        "1-0": ((2, 1),),
        "2-1": ((0, 1), (1, 0)),
    }


def test_overlap_tolerance_clusters_nearby_points() -> None:
    store = GeometryStore(overlap_tolerance=0.5)
    store.load(_multi([(0, 0), (0, 10)], [(0.2, 10.1), (0, 20)]))

    assert store.group_count == 1
    assert store.adjacent_overlap((0, 1)) == (1, 0)
    assert store.following_segment((0, 1)) == (1, 0)


def test_group_indices_with_exact_matcher() -> None:
    lines = [[(0, 0), (1, 1)], [(1, 1), (2, 2)], [(3, 3), (4, 4)], [(4, 4), (5, 5)]]

    assert group_indices(lines, point_matcher()) == [0, 0, 1, 1]


def test_nearest_point_and_segment() -> None:
    store = GeometryStore()
    store.load(_multi([(0, 0), (0, 10), (10, 10)]))

    idx, distance = store.nearest_point((2, 9))
    assert idx == (0, 1)
    assert distance == pytest.approx(5 ** 0.5)

    assert store.nearest_point((2, 9), exclude=[(0, 1)])[0] == (0, 2)

    segment, closest, distance = store.nearest_segment((5, 12))
    assert segment == (0, 1)
    assert closest == (5.0, 10.0)
    assert distance == pytest.approx(2.0)


def test_set_point_coords_keeps_handles_and_updates_corridors() -> None:
    renderer = _FakeRenderer()
    store = GeometryStore(renderer=renderer)
    store.load(_multi([(0, 0), (0, 10), (0, 20)]))
    handle = store.segment((0, 0)).handle
    corners_before = store.corridor((0, 1)).corners
    generation = store.generation

    touched = store.set_point_coords([(0, 1)], (5.0, 10.0))

    assert touched == [(0, 0), (0, 1)]
    assert store.segment((0, 0)).handle == handle
    assert store.segment((0, 0)).end == (5.0, 10.0)
    assert store.corridor((0, 1)).corners != corners_before
    assert store.lines[0][1] == (5.0, 10.0)
    assert store.generation == generation
    assert renderer.rebuilds == 1
    # one point plus two segments and two corridors
    assert len(renderer.shapes) == 5


def test_load_rejects_single_point_line() -> None:
    store = GeometryStore()

    with pytest.raises(GeometryFormatError):
        store.load(_multi([(0, 0)]))
