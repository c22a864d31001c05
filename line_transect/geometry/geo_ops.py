from __future__ import annotations

import math
from typing import Protocol

Point = tuple[float, float]


class GeoOps(Protocol):
    """Geometry primitives consumed by the store, corridors and edit math."""

    def bearing(self, a: Point, b: Point) -> float:
        ...

    def destination(self, p: Point, bearing_deg: float, distance: float) -> Point:
        ...

    def closest_point_on_segment(self, p: Point, a: Point, b: Point) -> Point:
        ...

    def distance(self, a: Point, b: Point) -> float:
        ...


class PlanarGeoOps:
    """Euclidean primitives on ``(x, y)`` coordinates.

    Bearings are degrees clockwise from the +y axis ("north"), so a segment
    pointing along +x has bearing 90.
    """

    def bearing(self, a: Point, b: Point) -> float:
        dx, dy = b[0] - a[0], b[1] - a[1]
        if dx == 0 and dy == 0:
            return 0.0
        return math.degrees(math.atan2(dx, dy))

    def destination(self, p: Point, bearing_deg: float, distance: float) -> Point:
        theta = math.radians(bearing_deg)
        return (p[0] + distance * math.sin(theta), p[1] + distance * math.cos(theta))

    def closest_point_on_segment(self, p: Point, a: Point, b: Point) -> Point:
        ax, ay = a
        bx, by = b
        px, py = p

        vx = bx - ax
        vy = by - ay
        denom = vx * vx + vy * vy
        if denom <= 0:
            return (ax, ay)

        t = ((px - ax) * vx + (py - ay) * vy) / denom
        t = max(0.0, min(1.0, t))

        return (ax + t * vx, ay + t * vy)

    def distance(self, a: Point, b: Point) -> float:
        return math.hypot(a[0] - b[0], a[1] - b[1])


def offset_by_drag(
    geo_ops: GeoOps, origin: Point, drag_start: Point, drag_now: Point
) -> Point:
    """Move ``origin`` by the pointer travel from ``drag_start`` to ``drag_now``."""
    moved = geo_ops.distance(drag_start, drag_now)
    if moved == 0:
        return origin
    return geo_ops.destination(origin, geo_ops.bearing(drag_start, drag_now), moved)
