from __future__ import annotations

from line_transect.geometry.geo_ops import GeoOps, Point

DEFAULT_HALF_WIDTH = 25.0


def corridor_for(
    start: Point,
    end: Point,
    half_width: float,
    geo_ops: GeoOps,
) -> tuple[Point, Point, Point, Point]:
    """
    Return the buffer quadrilateral around the segment ``start -> end``.

    Corners are named as if the segment pointed north:
    ``[SW, NW, NE, SE]``.
    """
    theta = geo_ops.bearing(start, end)

    sw = geo_ops.destination(start, theta - 90, half_width)
    nw = geo_ops.destination(end, theta - 90, half_width)
    ne = geo_ops.destination(end, theta + 90, half_width)
    se = geo_ops.destination(start, theta + 90, half_width)

    return (sw, nw, ne, se)


def cut_line_for(
    point: Point,
    start: Point,
    end: Point,
    half_width: float,
    geo_ops: GeoOps,
) -> tuple[Point, Point]:
    """Perpendicular marker across the segment at ``point``, used while splitting."""
    theta = geo_ops.bearing(start, end)
    return (
        geo_ops.destination(point, theta - 90, half_width),
        geo_ops.destination(point, theta + 90, half_width),
    )
