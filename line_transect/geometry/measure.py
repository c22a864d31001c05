"""Length and distance helpers along a transect, in flat segment order."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from line_transect.geometry.geo_ops import GeoOps, Point

Lines = Sequence[Sequence[Point]]


@dataclass(frozen=True)
class DistanceTick:
    start: Point
    end: Point
    distance: float
    major: bool


def round_distance(value: float, accuracy: float | None = 1) -> float:
    """Round half up to the nearest whole unit, then to ``accuracy``."""
    if not accuracy:
        return value
    whole = math.floor(value + 0.5)
    return math.floor(whole / accuracy + 0.5) * accuracy


def segment_lengths(lines: Lines, geo_ops: GeoOps) -> np.ndarray:
    return np.array(
        [
            geo_ops.distance(line[i], line[i + 1])
            for line in lines
            for i in range(len(line) - 1)
        ],
        dtype=float,
    )


def line_lengths(lines: Lines, geo_ops: GeoOps) -> np.ndarray:
    return np.array(
        [segment_lengths([line], geo_ops).sum() for line in lines], dtype=float
    )


def total_length(lines: Lines, geo_ops: GeoOps) -> float:
    return float(segment_lengths(lines, geo_ops).sum())


def line_distance_range(
    lines: Lines,
    line_idx: int,
    geo_ops: GeoOps,
    accuracy: float | None = 1,
) -> tuple[float, float]:
    """Cumulative distance at the start and end of ``line_idx``.

    An index past the last line yields the range of the last line.
    """
    if not lines:
        return (0.0, 0.0)
    idx = min(line_idx, len(lines) - 1)
    cumulative = np.concatenate(([0.0], np.cumsum(line_lengths(lines, geo_ops))))
    start, end = float(cumulative[idx]), float(cumulative[idx + 1])
    return (round_distance(start, accuracy), round_distance(end, accuracy))


def locate_distance(lines: Lines, distance: float, geo_ops: GeoOps) -> tuple[int, float]:
    """
    Find the flat segment index containing ``distance`` along the transect.

    Returns the index and the distance remaining from that segment's start.
    Raises ``ValueError`` when the distance is outside ``(0, total_length)``.
    """
    lengths = segment_lengths(lines, geo_ops)
    cumulative = np.cumsum(lengths)
    total = float(cumulative[-1]) if len(cumulative) else 0.0
    if not 0 < distance < total:
        raise ValueError(f"Distance {distance} is outside the transect (0, {total}).")

    flat_idx = int(np.searchsorted(cumulative, distance, side="left"))
    before = float(cumulative[flat_idx - 1]) if flat_idx > 0 else 0.0
    return flat_idx, distance - before


def distance_ticks(
    lines: Lines,
    geo_ops: GeoOps,
    spacing: float = 100.0,
    half_width: float = 25.0,
) -> list[DistanceTick]:
    """
    Perpendicular tick marks every ``spacing`` units along the transect.

    The first tick sits at the very start; every fifth tick is major and
    twice as wide.
    """
    ticks: list[DistanceTick] = []
    if spacing <= 0:
        return ticks

    segments = [
        (line[i], line[i + 1]) for line in lines for i in range(len(line) - 1)
    ]
    lengths = segment_lengths(lines, geo_ops)

    unused = 0.0
    counter = 0
    travelled = 0.0
    for flat_idx, ((start, end), segment_length) in enumerate(zip(segments, lengths)):
        offsets: list[float] = [0.0] if flat_idx == 0 else []
        remaining = float(segment_length)
        while remaining + unused > spacing:
            step = spacing - unused
            remaining -= step
            offsets.append(step)
            unused = 0.0
        unused = float(segment_length) + unused - sum(offsets)

        theta = geo_ops.bearing(start, end)
        along = 0.0
        for step in offsets:
            major = counter == 0 or counter % 5 == 0
            along += step
            center = geo_ops.destination(start, theta, along)
            width = (2 if major else 1) * half_width
            ticks.append(
                DistanceTick(
                    start=geo_ops.destination(center, theta - 90, width),
                    end=geo_ops.destination(center, theta + 90, width),
                    distance=travelled + along,
                    major=major,
                )
            )
            counter += 1
        travelled += float(segment_length)

    return ticks
