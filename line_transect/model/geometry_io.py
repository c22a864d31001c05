"""Conversion between LineString/MultiLineString mappings and ordered lines."""

from __future__ import annotations

import copy
import math
from typing import Any, Mapping, Sequence

Point = tuple[float, float]
Line = list[Point]
Geometry = dict[str, Any]
Feature = dict[str, Any]

LINE_STRING = "LineString"
MULTI_LINE_STRING = "MultiLineString"


class GeometryFormatError(ValueError):
    """Raised when input geometry cannot be read as transect lines."""


def normalize_point(raw: Sequence[float]) -> Point:
    if len(raw) < 2:
        raise GeometryFormatError(f"Coordinate {raw!r} has fewer than two values.")
    try:
        x, y = float(raw[0]), float(raw[1])
    except (TypeError, ValueError) as exc:
        raise GeometryFormatError(f"Coordinate {raw!r} is not numeric.") from exc
    if not (math.isfinite(x) and math.isfinite(y)):
        raise GeometryFormatError(f"Coordinate {raw!r} is not finite.")
    # -0.0 == 0.0 already, but keys and output should not carry the sign.
    return (x + 0.0, y + 0.0)


def geometry_to_lines(geometry: Mapping[str, Any]) -> list[Line]:
    """Read a LineString or MultiLineString into a list of point lists."""
    if not isinstance(geometry, Mapping):
        raise GeometryFormatError("Geometry must be a mapping.")

    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if geometry_type == LINE_STRING:
        raw_lines = [coordinates]
    elif geometry_type == MULTI_LINE_STRING:
        raw_lines = coordinates
    else:
        raise GeometryFormatError(
            f"Unsupported geometry type {geometry_type!r}; expected LineString or MultiLineString."
        )

    if not isinstance(raw_lines, Sequence) or not raw_lines:
        raise GeometryFormatError("Geometry has no lines.")

    lines: list[Line] = []
    for line_idx, raw_line in enumerate(raw_lines):
        if not isinstance(raw_line, Sequence) or len(raw_line) < 2:
            raise GeometryFormatError(f"Line {line_idx} needs at least two points.")
        lines.append([normalize_point(raw) for raw in raw_line])
    return lines


def lines_to_geometry(lines: Sequence[Sequence[Point]]) -> Geometry:
    """Write lines back out; a single line becomes a LineString."""
    coordinates = [[[x, y] for x, y in line] for line in lines if line]
    if len(coordinates) > 1:
        return {"type": MULTI_LINE_STRING, "coordinates": coordinates}
    return {"type": LINE_STRING, "coordinates": coordinates[0] if coordinates else []}


def line_geometry(line: Sequence[Point]) -> Geometry:
    return {"type": LINE_STRING, "coordinates": [[x, y] for x, y in line]}


def geometry_line_coordinates(geometry: Mapping[str, Any], line_idx: int) -> list[list[float]]:
    """Coordinates of one line of a geometry regardless of its type."""
    if geometry.get("type") == LINE_STRING:
        if line_idx != 0:
            raise IndexError(f"LineString has no line {line_idx}.")
        return copy.deepcopy(geometry["coordinates"])
    return copy.deepcopy(geometry["coordinates"][line_idx])


def feature_geometry(feature_or_geometry: Mapping[str, Any]) -> Mapping[str, Any]:
    if feature_or_geometry.get("type") == "Feature":
        return feature_or_geometry.get("geometry") or {}
    return feature_or_geometry


def make_feature(
    geometry: Geometry,
    properties: Mapping[str, Any] | None = None,
    feature_id: str | int | None = None,
) -> Feature:
    feature: Feature = {
        "type": "Feature",
        "geometry": geometry,
        "properties": dict(properties) if properties is not None else {},
    }
    if feature_id is not None:
        feature["id"] = feature_id
    return feature
