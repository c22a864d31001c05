"""Drag state for a single point being edited."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from line_transect.geometry.geo_ops import Point, offset_by_drag
from line_transect.model.geometry_io import Feature

if TYPE_CHECKING:
    from line_transect.model.geometry_store import GeometryStore, IdxTuple

logger = logging.getLogger(__name__)


class PointEditSession:
    """
    Live state while one point is open for editing.

    The session moves the point (and its seam partner, if any) through
    :meth:`GeometryStore.set_point_coords`, so only the touched segments
    and corridors are recomputed on each pointer move. Committing is the
    editor's job; the session only remembers where the point started.
    """

    def __init__(
        self,
        store: "GeometryStore",
        point: "IdxTuple",
        feature_before: Feature,
        endpoint_snap_distance: float = 20.0,
    ) -> None:
        self._store = store
        self.point = point
        self.endpoint_snap_distance = endpoint_snap_distance
        self.preceding = store.preceding_segment(point)
        self.following = store.following_segment(point)
        self.partners = self._seam_partners()
        self.origin: Point = store.coord(point)
        self.feature_before = feature_before
        self._drag_point_start: Point | None = None
        self._drag_pointer_start: Point | None = None

    def _seam_partners(self) -> tuple["IdxTuple", ...]:
        line_idx = self.point[0]
        partners: list["IdxTuple"] = []
        if self.preceding is not None and self.preceding[0] != line_idx:
            partners.append((self.preceding[0], self.preceding[1] + 1))
        if self.following is not None and self.following[0] != line_idx:
            partners.append((self.following[0], 0))
        return tuple(partners)

    @property
    def coord(self) -> Point:
        return self._store.coord(self.point)

    @property
    def dragging(self) -> bool:
        return self._drag_pointer_start is not None

    @property
    def changed(self) -> bool:
        return self.coord != self.origin

    def affected_segments(self) -> list["IdxTuple"]:
        return [idx for idx in (self.preceding, self.following) if idx is not None]

    def affected_lines(self) -> list[int]:
        lines: list[int] = []
        for line_idx, _segment_idx in self.affected_segments():
            if line_idx not in lines:
                lines.append(line_idx)
        return lines

    def begin_drag(self, pointer: Point) -> None:
        self._drag_point_start = self.coord
        self._drag_pointer_start = pointer

    def drag_to(self, pointer: Point) -> Point:
        """Move the point by the pointer travel since :meth:`begin_drag`."""
        if self._drag_pointer_start is None or self._drag_point_start is None:
            return self.coord
        target = offset_by_drag(
            self._store.geo_ops, self._drag_point_start, self._drag_pointer_start, pointer
        )
        target = self._snap_to_open_endpoint(target)
        self._store.set_point_coords((self.point, *self.partners), target)
        return target

    def end_drag(self) -> None:
        self._drag_point_start = None
        self._drag_pointer_start = None

    def rebase(self, feature_before: Feature) -> None:
        """Treat the current position as the new starting point."""
        self.origin = self.coord
        self.feature_before = feature_before
        self.preceding = self._store.preceding_segment(self.point)
        self.following = self._store.following_segment(self.point)
        self.partners = self._seam_partners()

    def _snap_to_open_endpoint(self, target: Point) -> Point:
        store = self._store
        if self.endpoint_snap_distance <= 0 or not store.is_group_endpoint(self.point):
            return target
        nearest = store.nearest_point(target, exclude=(self.point, *self.partners))
        if nearest is None:
            return target
        candidate, distance = nearest
        if distance > self.endpoint_snap_distance:
            return target
        if not store.is_group_endpoint(candidate) or not store.same_group(self.point, candidate):
            return target
        if store.preceding_segment(candidate) is not None and store.following_segment(candidate) is not None:
            return target
        logger.debug("Snapping %s onto open endpoint %s", self.point, candidate)
        return store.coord(candidate)
