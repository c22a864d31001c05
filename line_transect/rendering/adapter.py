"""Interface between the transect core and whatever draws it."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence

from line_transect.geometry.measure import DistanceTick, distance_ticks
from line_transect.model.geometry_store import CORRIDOR, POINT, SEGMENT
from line_transect.rendering.style_map import FeatureStyleHook, ModeSnapshot, PathStyle, style_for

if TYPE_CHECKING:
    from line_transect.geometry.geo_ops import Point
    from line_transect.model.geometry_store import GeometryStore, Handle


class RenderingAdapter(Protocol):
    """Receives shapes and styles; the core never reads anything back."""

    def rebuild(self, store: "GeometryStore") -> None:
        ...

    def update_shape(self, handle: "Handle", coordinates: Sequence["Point"]) -> None:
        ...

    def update_style(self, handle: "Handle", style: PathStyle) -> None:
        ...


def push_styles(
    renderer: RenderingAdapter,
    store: "GeometryStore",
    snapshot: ModeSnapshot,
    feature_style: FeatureStyleHook | None = None,
) -> int:
    """Send the style of every segment, corridor and point; returns how many were sent."""
    sent = 0
    for kind, records in (
        (CORRIDOR, store.all_corridors),
        (SEGMENT, store.all_segments),
        (POINT, store.all_points),
    ):
        for record in records:
            renderer.update_style(
                record.handle, style_for(kind, record.idx, store, snapshot, feature_style)
            )
            sent += 1
    return sent


def print_ticks(store: "GeometryStore", spacing: float = 100.0) -> list[DistanceTick]:
    """Distance tick marks drawn across the transect in print mode."""
    return distance_ticks(store.lines, store.geo_ops, spacing, store.half_width)
