"""Invariant checks for the transect geometry store."""

from __future__ import annotations

from math import isfinite
from typing import TYPE_CHECKING, Mapping, Sequence

if TYPE_CHECKING:
    from line_transect.model.geometry_store import GeometryStore

Point = tuple[float, float]


class InvariantError(ValueError):
    """Raised when the transect model violates a structural invariant."""


def assert_lines_valid(lines: Sequence[Sequence[Point]]) -> None:
    """Assert there is at least one line and every line has a segment.

    Coordinates must be finite numbers.
    """

    if not lines:
        raise InvariantError("A transect needs at least one line.")

    for line_idx, line in enumerate(lines):
        if len(line) < 2:
            raise InvariantError(
                f"Line {line_idx} has {len(line)} point(s); at least one segment is required."
            )
        for point_idx, (x, y) in enumerate(line):
            if not (isfinite(x) and isfinite(y)):
                raise InvariantError(
                    f"Point {line_idx}-{point_idx} has non-finite coordinates."
                )


def assert_counts_aligned(store: "GeometryStore") -> None:
    """Assert ``points == segments + 1`` and one corridor per segment, per line."""

    for line_idx in range(store.line_count):
        segments = store.segments[line_idx]
        points = store.points[line_idx]
        corridors = store.corridors[line_idx]
        if not segments:
            raise InvariantError(f"Line {line_idx} has no segments.")
        if len(points) != len(segments) + 1:
            raise InvariantError(
                f"Line {line_idx} has {len(points)} points for {len(segments)} segments."
            )
        if len(corridors) != len(segments):
            raise InvariantError(
                f"Line {line_idx} has {len(corridors)} corridors for {len(segments)} segments."
            )


def assert_overlaps_symmetric(overlaps: Mapping[str, tuple[int, int]], name: str) -> None:
    """Assert every ``A -> B`` entry is matched by ``B -> A``."""

    for key, partner in overlaps.items():
        partner_key = f"{partner[0]}-{partner[1]}"
        back = overlaps.get(partner_key)
        if back is None or f"{back[0]}-{back[1]}" != key:
            raise InvariantError(
                f"{name} overlap map is not symmetric: {key} -> {partner_key} -> {back}."
            )


def validate_store(store: "GeometryStore") -> None:
    """Run all store invariants."""

    assert_lines_valid(store.lines)
    assert_counts_aligned(store)
    assert_overlaps_symmetric(store.nonadjacent_overlaps, "Nonadjacent")
    assert_overlaps_symmetric(store.adjacent_overlaps, "Adjacent")
