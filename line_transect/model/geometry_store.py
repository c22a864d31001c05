"""Normalized, positionally indexed representation of a line transect."""

from __future__ import annotations

import bisect
import itertools
import logging
import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Sequence

from line_transect.geometry.corridor import DEFAULT_HALF_WIDTH, corridor_for
from line_transect.geometry.geo_ops import GeoOps, PlanarGeoOps
from line_transect.model.geometry_io import Geometry, Point, geometry_to_lines, lines_to_geometry
from line_transect.model.invariants import InvariantError, assert_lines_valid

if TYPE_CHECKING:
    from line_transect.rendering.adapter import RenderingAdapter

logger = logging.getLogger(__name__)

IdxTuple = tuple[int, int]
SamePoint = Callable[[Point, Point], bool]

SEGMENT = "segment"
CORRIDOR = "corridor"
POINT = "point"

_handle_ids = itertools.count(1)


# INVARIANT:
# Handles are minted on every rebuild and never reused. A handle from an
# earlier rebuild is stale; index tuples are the only identity that survives
# and only until the next structural edit renumbers lines or points.
@dataclass(frozen=True)
class Handle:
    id: int
    kind: str


@dataclass(frozen=True)
class SegmentRecord:
    idx: IdxTuple
    start: Point
    end: Point
    handle: Handle


@dataclass(frozen=True)
class CorridorRecord:
    idx: IdxTuple
    corners: tuple[Point, Point, Point, Point]
    handle: Handle


@dataclass(frozen=True)
class PointRecord:
    idx: IdxTuple
    coord: Point
    handle: Handle


def idx_tuple_key(idx: IdxTuple) -> str:
    return f"{idx[0]}-{idx[1]}"


def _new_handle(kind: str) -> Handle:
    return Handle(next(_handle_ids), kind)


def point_matcher(tolerance: float = 0.0) -> SamePoint:
    """Coordinate equality used for seams, groups and overlaps."""
    if tolerance <= 0:
        return lambda a, b: a[0] == b[0] and a[1] == b[1]
    return lambda a, b: math.hypot(a[0] - b[0], a[1] - b[1]) <= tolerance


def preceding_segment(
    lines: Sequence[Sequence[Point]], point: IdxTuple, same: SamePoint
) -> IdxTuple | None:
    """The segment ending at ``point``; crosses back over a seam only."""
    line_idx, point_idx = point
    if point_idx - 1 >= 0:
        return (line_idx, point_idx - 1)
    if line_idx - 1 >= 0:
        previous = lines[line_idx - 1]
        if same(previous[-1], lines[line_idx][point_idx]):
            return (line_idx - 1, len(previous) - 2)
    return None


def following_segment(
    lines: Sequence[Sequence[Point]], point: IdxTuple, same: SamePoint
) -> IdxTuple | None:
    """The segment starting at ``point``; crosses forward over a seam only."""
    line_idx, point_idx = point
    line = lines[line_idx]
    if point_idx < len(line) - 1:
        return (line_idx, point_idx)
    if line_idx + 1 <= len(lines) - 1:
        if same(lines[line_idx + 1][0], line[point_idx]):
            return (line_idx + 1, 0)
    return None


def group_indices(lines: Sequence[Sequence[Point]], same: SamePoint) -> list[int]:
    """Group index per line; a new group starts where a line does not continue the last."""
    groups: list[int] = []
    group_idx = 0
    previous_end: Point | None = None
    for line in lines:
        if previous_end is not None and not same(line[0], previous_end):
            group_idx += 1
        groups.append(group_idx)
        previous_end = line[-1]
    return groups


def _consecutive(lines: Sequence[Sequence[Point]], a: IdxTuple, b: IdxTuple) -> bool:
    (la, pa), (lb, pb) = sorted((a, b))
    if la == lb:
        return pb - pa == 1
    return lb == la + 1 and pa == len(lines[la]) - 1 and pb == 0


class _CoordinateClusters:
    """Bucket coincident coordinates, exactly or within a tolerance."""

    def __init__(self, tolerance: float) -> None:
        self._tolerance = tolerance
        self._cells: dict[tuple[int, int], list[Point]] = {}

    def key(self, point: Point) -> Point:
        if self._tolerance <= 0:
            return point
        cx = math.floor(point[0] / self._tolerance)
        cy = math.floor(point[1] / self._tolerance)
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for representative in self._cells.get((cx + dx, cy + dy), []):
                    if math.hypot(
                        representative[0] - point[0], representative[1] - point[1]
                    ) <= self._tolerance:
                        return representative
        self._cells.setdefault((cx, cy), []).append(point)
        return point


def _occurrences(lines: Sequence[Sequence[Point]], tolerance: float) -> list[list[IdxTuple]]:
    clusters = _CoordinateClusters(tolerance)
    occurrences: dict[Point, list[IdxTuple]] = {}
    for line_idx, line in enumerate(lines):
        for point_idx, coord in enumerate(line):
            occurrences.setdefault(clusters.key(coord), []).append((line_idx, point_idx))
    return [tuples for tuples in occurrences.values() if len(tuples) > 1]


def classify_overlaps(
    lines: Sequence[Sequence[Point]], tolerance: float = 0.0
) -> tuple[dict[str, IdxTuple], dict[str, IdxTuple]]:
    """
    Pair coincident points into ``(adjacent, nonadjacent)`` maps.

    Points are visited in traversal order and each occurrence is paired with
    the previous occurrence at the same coordinate. A pair of traversal
    neighbours (a seam or a zero-length segment) is adjacent, anything else
    is nonadjacent. A point already paired in a map is not re-paired in that
    map, which keeps both maps symmetric.
    """
    adjacent: dict[str, IdxTuple] = {}
    nonadjacent: dict[str, IdxTuple] = {}
    for tuples in _occurrences(lines, tolerance):
        for earlier, later in zip(tuples, tuples[1:]):
            target = adjacent if _consecutive(lines, earlier, later) else nonadjacent
            earlier_key, later_key = idx_tuple_key(earlier), idx_tuple_key(later)
            if earlier_key in target or later_key in target:
                continue
            target[earlier_key] = later
            target[later_key] = earlier
    return adjacent, nonadjacent


def coincident_points(
    lines: Sequence[Sequence[Point]], tolerance: float = 0.0
) -> dict[str, tuple[IdxTuple, ...]]:
    """
    Every other point sharing each point's coordinate, seam partners excluded.

    Unlike the pairing maps this covers whole clusters, so a third line
    crossing the same spot is listed too.
    """
    coincident: dict[str, tuple[IdxTuple, ...]] = {}
    for tuples in _occurrences(lines, tolerance):
        for point in tuples:
            others = tuple(
                other
                for other in tuples
                if other != point and not _consecutive(lines, point, other)
            )
            if others:
                coincident[idx_tuple_key(point)] = others
    return coincident


class GeometryStore:
    """
    Segments, corridors and points of a transect plus derived indices.

    The coordinate lists in ``lines`` are the source of truth; every other
    array is rebuilt from them by :meth:`load`. Only the editor mutates the
    store, through :meth:`load` and :meth:`set_point_coords`.
    """

    def __init__(
        self,
        geo_ops: GeoOps | None = None,
        half_width: float = DEFAULT_HALF_WIDTH,
        overlap_tolerance: float = 0.0,
        renderer: "RenderingAdapter | None" = None,
    ) -> None:
        self.geo_ops: GeoOps = geo_ops or PlanarGeoOps()
        self.half_width = half_width
        self.overlap_tolerance = overlap_tolerance
        self.same_point: SamePoint = point_matcher(overlap_tolerance)
        self.renderer = renderer
        self.generation = 0

        self._lines: list[list[Point]] = []
        self.segments: list[list[SegmentRecord]] = []
        self.corridors: list[list[CorridorRecord]] = []
        self.points: list[list[PointRecord]] = []
        self.all_segments: list[SegmentRecord] = []
        self.all_corridors: list[CorridorRecord] = []
        self.all_points: list[PointRecord] = []
        self.adjacent_overlaps: dict[str, IdxTuple] = {}
        self.nonadjacent_overlaps: dict[str, IdxTuple] = {}
        self.coincident: dict[str, tuple[IdxTuple, ...]] = {}

        self._handles: dict[int, tuple[str, IdxTuple]] = {}
        self._segment_offsets: list[int] = []
        self._point_offsets: list[int] = []
        self._line_groups: list[int] = []
        self._group_lines: dict[int, list[int]] = {}

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------
    def load(self, geometry: Mapping[str, object]) -> None:
        """Rebuild everything from a LineString/MultiLineString mapping."""
        self.load_lines(geometry_to_lines(geometry))

    def load_lines(self, lines: Sequence[Sequence[Point]]) -> None:
        assert_lines_valid(lines)
        self._lines = [list(line) for line in lines]
        self.generation += 1

        self._handles = {}
        self.segments, self.corridors, self.points = [], [], []
        for line_idx, line in enumerate(self._lines):
            segment_row: list[SegmentRecord] = []
            corridor_row: list[CorridorRecord] = []
            point_row: list[PointRecord] = []
            for segment_idx in range(len(line) - 1):
                segment, corridor = self._build_segment(
                    (line_idx, segment_idx), _new_handle(SEGMENT), _new_handle(CORRIDOR)
                )
                segment_row.append(segment)
                corridor_row.append(corridor)
            for point_idx, coord in enumerate(line):
                point_row.append(PointRecord((line_idx, point_idx), coord, _new_handle(POINT)))
            self.segments.append(segment_row)
            self.corridors.append(corridor_row)
            self.points.append(point_row)

        self.all_segments = [s for row in self.segments for s in row]
        self.all_corridors = [c for row in self.corridors for c in row]
        self.all_points = [p for row in self.points for p in row]
        for record in (*self.all_segments, *self.all_corridors, *self.all_points):
            self._handles[record.handle.id] = (record.handle.kind, record.idx)

        self._segment_offsets = list(
            itertools.accumulate((len(row) for row in self.segments), initial=0)
        )
        self._point_offsets = list(
            itertools.accumulate((len(row) for row in self.points), initial=0)
        )

        self._line_groups = group_indices(self._lines, self.same_point)
        self._group_lines = {}
        for line_idx, group_idx in enumerate(self._line_groups):
            self._group_lines.setdefault(group_idx, []).append(line_idx)

        self.adjacent_overlaps, self.nonadjacent_overlaps = classify_overlaps(
            self._lines, self.overlap_tolerance
        )
        self.coincident = coincident_points(self._lines, self.overlap_tolerance)

        logger.debug(
            "Rebuilt transect store: generation=%d lines=%d segments=%d groups=%d "
            "adjacent_overlaps=%d nonadjacent_overlaps=%d",
            self.generation,
            len(self._lines),
            len(self.all_segments),
            len(self._group_lines),
            len(self.adjacent_overlaps) // 2,
            len(self.nonadjacent_overlaps) // 2,
        )

        if self.renderer is not None:
            self.renderer.rebuild(self)

    def _build_segment(
        self, idx: IdxTuple, segment_handle: Handle, corridor_handle: Handle
    ) -> tuple[SegmentRecord, CorridorRecord]:
        line_idx, segment_idx = idx
        start = self._lines[line_idx][segment_idx]
        end = self._lines[line_idx][segment_idx + 1]
        corners = corridor_for(start, end, self.half_width, self.geo_ops)
        return (
            SegmentRecord(idx, start, end, segment_handle),
            CorridorRecord(idx, corners, corridor_handle),
        )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    @property
    def lines(self) -> list[list[Point]]:
        return [list(line) for line in self._lines]

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def to_geometry(self) -> Geometry:
        return lines_to_geometry(self._lines)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def index_of(self, handle: Handle | int) -> IdxTuple:
        handle_id = handle.id if isinstance(handle, Handle) else handle
        try:
            return self._handles[handle_id][1]
        except KeyError:
            raise InvariantError(f"Handle {handle_id} is not part of the current rebuild.") from None

    def kind_of(self, handle: Handle | int) -> str:
        handle_id = handle.id if isinstance(handle, Handle) else handle
        try:
            return self._handles[handle_id][0]
        except KeyError:
            raise InvariantError(f"Handle {handle_id} is not part of the current rebuild.") from None

    def _check_segment(self, idx: IdxTuple) -> None:
        line_idx, segment_idx = idx
        if not (0 <= line_idx < len(self._lines)) or not (
            0 <= segment_idx < len(self.segments[line_idx])
        ):
            raise InvariantError(f"Segment {idx_tuple_key(idx)} does not exist.")

    def _check_point(self, idx: IdxTuple) -> None:
        line_idx, point_idx = idx
        if not (0 <= line_idx < len(self._lines)) or not (
            0 <= point_idx < len(self._lines[line_idx])
        ):
            raise InvariantError(f"Point {idx_tuple_key(idx)} does not exist.")

    def has_point(self, idx: IdxTuple) -> bool:
        line_idx, point_idx = idx
        return 0 <= line_idx < len(self._lines) and 0 <= point_idx < len(self._lines[line_idx])

    def has_segment(self, idx: IdxTuple) -> bool:
        line_idx, segment_idx = idx
        return 0 <= line_idx < len(self._lines) and 0 <= segment_idx < len(
            self.segments[line_idx]
        )

    def segment(self, idx: IdxTuple) -> SegmentRecord:
        self._check_segment(idx)
        return self.segments[idx[0]][idx[1]]

    def corridor(self, idx: IdxTuple) -> CorridorRecord:
        self._check_segment(idx)
        return self.corridors[idx[0]][idx[1]]

    def point(self, idx: IdxTuple) -> PointRecord:
        self._check_point(idx)
        return self.points[idx[0]][idx[1]]

    def coord(self, idx: IdxTuple) -> Point:
        self._check_point(idx)
        return self._lines[idx[0]][idx[1]]

    def point_count(self, line_idx: int) -> int:
        return len(self._lines[line_idx])

    def segment_count(self, line_idx: int) -> int:
        return len(self.segments[line_idx])

    def flat_segment_index(self, idx: IdxTuple) -> int:
        self._check_segment(idx)
        return self._segment_offsets[idx[0]] + idx[1]

    def segment_at_flat(self, flat_idx: int) -> IdxTuple:
        if not 0 <= flat_idx < len(self.all_segments):
            raise InvariantError(f"Flat segment index {flat_idx} is out of range.")
        return self.all_segments[flat_idx].idx

    def flat_point_index(self, idx: IdxTuple) -> int:
        self._check_point(idx)
        return self._point_offsets[idx[0]] + idx[1]

    def point_at_flat(self, flat_idx: int) -> IdxTuple:
        if not 0 <= flat_idx < len(self.all_points):
            raise InvariantError(f"Flat point index {flat_idx} is out of range.")
        line_idx = bisect.bisect_right(self._point_offsets, flat_idx) - 1
        return (line_idx, flat_idx - self._point_offsets[line_idx])

    def preceding_segment(self, point: IdxTuple) -> IdxTuple | None:
        self._check_point(point)
        return preceding_segment(self._lines, point, self.same_point)

    def following_segment(self, point: IdxTuple) -> IdxTuple | None:
        self._check_point(point)
        return following_segment(self._lines, point, self.same_point)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------
    def line_group(self, line_idx: int) -> int:
        return self._line_groups[line_idx]

    def group_lines(self, group_idx: int) -> list[int]:
        return list(self._group_lines.get(group_idx, []))

    @property
    def group_count(self) -> int:
        return len(self._group_lines)

    def is_group_endpoint(self, point: IdxTuple) -> bool:
        self._check_point(point)
        line_idx, point_idx = point
        group = self._group_lines[self._line_groups[line_idx]]
        return (line_idx == group[0] and point_idx == 0) or (
            line_idx == group[-1] and point_idx == len(self._lines[line_idx]) - 1
        )

    def same_group(self, a: IdxTuple, b: IdxTuple) -> bool:
        return self._line_groups[a[0]] == self._line_groups[b[0]]

    def can_shift_to(self, point: IdxTuple) -> bool:
        """True for the first or last point of any line in group 0."""
        if not self.has_point(point):
            return False
        line_idx, point_idx = point
        return self._line_groups[line_idx] == 0 and (
            point_idx == 0 or point_idx == len(self._lines[line_idx]) - 1
        )

    # ------------------------------------------------------------------
    # Overlaps
    # ------------------------------------------------------------------
    def nonadjacent_overlap(self, point: IdxTuple) -> IdxTuple | None:
        return self.nonadjacent_overlaps.get(idx_tuple_key(point))

    def adjacent_overlap(self, point: IdxTuple) -> IdxTuple | None:
        return self.adjacent_overlaps.get(idx_tuple_key(point))

    def coincident_with(self, point: IdxTuple) -> tuple[IdxTuple, ...]:
        """Unrelated points at the same spot as ``point`` when the store was built."""
        return self.coincident.get(idx_tuple_key(point), ())

    def is_overlapping(self, point: IdxTuple) -> bool:
        key = idx_tuple_key(point)
        return key in self.nonadjacent_overlaps or key in self.adjacent_overlaps

    # ------------------------------------------------------------------
    # Proximity
    # ------------------------------------------------------------------
    def nearest_point(
        self, position: Point, exclude: Iterable[IdxTuple] = ()
    ) -> tuple[IdxTuple, float] | None:
        excluded = set(exclude)
        best: tuple[IdxTuple, float] | None = None
        for record in self.all_points:
            if record.idx in excluded:
                continue
            distance = self.geo_ops.distance(position, record.coord)
            if best is None or distance < best[1]:
                best = (record.idx, distance)
        return best

    def nearest_segment(self, position: Point) -> tuple[IdxTuple, Point, float] | None:
        best: tuple[IdxTuple, Point, float] | None = None
        for record in self.all_segments:
            closest = self.geo_ops.closest_point_on_segment(position, record.start, record.end)
            distance = self.geo_ops.distance(position, closest)
            if best is None or distance < best[2]:
                best = (record.idx, closest, distance)
        return best

    # ------------------------------------------------------------------
    # Live drag updates
    # ------------------------------------------------------------------
    def set_point_coords(
        self, points: Iterable[IdxTuple], coord: Point
    ) -> list[IdxTuple]:
        """
        Move the given points to ``coord`` without a rebuild.

        Touched segments and corridors are recomputed and pushed to the
        renderer; handles stay valid. Groups and overlaps are left as they
        were until the next :meth:`load`.
        """
        touched: list[IdxTuple] = []
        for point in points:
            self._check_point(point)
            line_idx, point_idx = point
            self._lines[line_idx][point_idx] = coord
            record = replace(self.points[line_idx][point_idx], coord=coord)
            self.points[line_idx][point_idx] = record
            if self.renderer is not None:
                self.renderer.update_shape(record.handle, [coord])
            for segment_idx in (point_idx - 1, point_idx):
                if 0 <= segment_idx < len(self.segments[line_idx]):
                    touched.append((line_idx, segment_idx))

        for idx in touched:
            line_idx, segment_idx = idx
            old_segment = self.segments[line_idx][segment_idx]
            old_corridor = self.corridors[line_idx][segment_idx]
            segment, corridor = self._build_segment(idx, old_segment.handle, old_corridor.handle)
            self.segments[line_idx][segment_idx] = segment
            self.corridors[line_idx][segment_idx] = corridor
            if self.renderer is not None:
                self.renderer.update_shape(segment.handle, [segment.start, segment.end])
                self.renderer.update_shape(corridor.handle, list(corridor.corners))

        self.all_segments = [s for row in self.segments for s in row]
        self.all_corridors = [c for row in self.corridors for c in row]
        self.all_points = [p for row in self.points for p in row]
        return touched
