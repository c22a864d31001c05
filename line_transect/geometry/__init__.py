from .corridor import DEFAULT_HALF_WIDTH, corridor_for, cut_line_for
from .geo_ops import GeoOps, PlanarGeoOps, Point, offset_by_drag

__all__ = [
    "DEFAULT_HALF_WIDTH",
    "GeoOps",
    "PlanarGeoOps",
    "Point",
    "corridor_for",
    "cut_line_for",
    "offset_by_drag",
]
