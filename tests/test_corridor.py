from __future__ import annotations

import pytest

from line_transect.geometry.corridor import corridor_for, cut_line_for
from line_transect.geometry.geo_ops import PlanarGeoOps, offset_by_drag


def _assert_points(actual, expected) -> None:
    assert len(actual) == len(expected)
    for (ax, ay), (ex, ey) in zip(actual, expected):
        assert ax == pytest.approx(ex, abs=1e-9)
        assert ay == pytest.approx(ey, abs=1e-9)


def test_bearing_is_clockwise_from_north() -> None:
    geo = PlanarGeoOps()

    assert geo.bearing((0, 0), (0, 10)) == pytest.approx(0.0)
    assert geo.bearing((0, 0), (10, 0)) == pytest.approx(90.0)
    assert geo.bearing((0, 0), (0, -10)) == pytest.approx(180.0)


def test_corridor_corners_for_northward_segment() -> None:
    corners = corridor_for((0, 0), (0, 10), 25, PlanarGeoOps())

    _assert_points(corners, [(-25, 0), (-25, 10), (25, 10), (25, 0)])


def test_corridor_corners_for_eastward_segment() -> None:
    corners = corridor_for((0, 0), (10, 0), 5, PlanarGeoOps())

    _assert_points(corners, [(0, 5), (10, 5), (10, -5), (0, -5)])


def test_cut_line_is_perpendicular_through_point() -> None:
    start, end = cut_line_for((0, 4), (0, 0), (0, 10), 25, PlanarGeoOps())

    _assert_points([start, end], [(-25, 4), (25, 4)])


def test_closest_point_clamps_to_segment() -> None:
    geo = PlanarGeoOps()

    assert geo.closest_point_on_segment((5, 20), (0, 0), (0, 10)) == (0.0, 10.0)
    assert geo.closest_point_on_segment((5, 4), (0, 0), (0, 10)) == (0.0, 4.0)
    assert geo.closest_point_on_segment((5, 4), (1, 1), (1, 1)) == (1, 1)


def test_offset_by_drag_applies_pointer_travel() -> None:
    geo = PlanarGeoOps()

    moved = offset_by_drag(geo, (100, 100), (0, 0), (3, 4))

    _assert_points([moved], [(103, 104)])
    assert offset_by_drag(geo, (100, 100), (1, 1), (1, 1)) == (100, 100)
