from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable

from PyQt5 import QtGui

from line_transect.model.geometry_store import CORRIDOR, POINT, SEGMENT, idx_tuple_key

if TYPE_CHECKING:
    from line_transect.model.geometry_store import GeometryStore, IdxTuple

NORMAL_COLOR = "#257ECA"
ACTIVE_COLOR = "#06840A"
EDIT_COLOR = "#FF0000"
POINT_COLOR = "#154EAA"
BLACK = "#000000"
ODD_AMOUNT = 30


def combine_colors(*colors: str, max_delta: int = 255) -> str:
    """
    Mix ``#RRGGBB`` colours channel by channel, halving towards each next colour.

    The result never strays more than ``max_delta`` from the first colour.
    """
    expanded = []
    for color in colors:
        if len(color) == 4:
            color = "#" + "".join(ch * 2 for ch in color[1:])
        expanded.append(color)

    channels = []
    for offset in (1, 3, 5):
        values = [int(color[offset : offset + 2], 16) for color in expanded]
        combined = values[0]
        for value in values[1:]:
            combined = math.floor(combined - (combined - value) / 2 + 0.5)
            combined = max(min(combined, 255), 0)
        initial = values[0]
        combined = max(min(combined, initial + max_delta), initial - max_delta)
        channels.append(combined)
    return "#{:02X}{:02X}{:02X}".format(*channels)


@dataclass(frozen=True)
class PathStyle:
    color: QtGui.QColor | None = None
    weight: float = 0.0
    opacity: float = 1.0
    fill_color: QtGui.QColor | None = None
    fill_opacity: float = 0.0
    radius: float | None = None


@dataclass(frozen=True)
class ModeSnapshot:
    """Transient interaction state the styles depend on."""

    active_idx: int | None = None
    hover: "IdxTuple | None" = None
    edit_point: "IdxTuple | None" = None
    edit_segments: tuple["IdxTuple", ...] = ()
    split_segment: "IdxTuple | None" = None
    merge_first: "IdxTuple | None" = None
    select_mode: str | None = None
    shift_mode: bool = False
    closeby_point: "IdxTuple | None" = None
    editable: bool = True
    print_mode: bool = False


FeatureStyleHook = Callable[[int, int, str, PathStyle], "PathStyle | None"]


def _color(hex_value: str) -> QtGui.QColor:
    return QtGui.QColor(hex_value)


_HOVER_COLOR = combine_colors(NORMAL_COLOR, ACTIVE_COLOR)

_LINE_STYLES: dict[str, PathStyle] = {
    "normal": PathStyle(color=_color(NORMAL_COLOR), weight=2),
    "active": PathStyle(color=_color(ACTIVE_COLOR), weight=2),
    "edit": PathStyle(color=_color(EDIT_COLOR), weight=2),
    "hover": PathStyle(color=_color(_HOVER_COLOR), weight=2),
}
_LINE_STYLES["odd"] = _LINE_STYLES["normal"]

_CORRIDOR_BASE = PathStyle(
    color=_color(NORMAL_COLOR), weight=0, fill_color=_color(NORMAL_COLOR), fill_opacity=0.6
)
_CORRIDOR_STYLES: dict[str, PathStyle] = {
    "normal": _CORRIDOR_BASE,
    "odd": replace(
        _CORRIDOR_BASE, weight=2, fill_color=_color(combine_colors(NORMAL_COLOR, BLACK, max_delta=ODD_AMOUNT))
    ),
    "active": replace(_CORRIDOR_BASE, fill_color=_color(ACTIVE_COLOR)),
    "edit": replace(_CORRIDOR_BASE, fill_color=_color(EDIT_COLOR), fill_opacity=0.5),
    "hover": replace(_CORRIDOR_BASE, fill_color=_color(_HOVER_COLOR)),
}

_POINT_BASE = PathStyle(weight=0, radius=3, fill_color=_color(POINT_COLOR), fill_opacity=1.0)
_EDITABLE_POINT = replace(_POINT_BASE, radius=5, fill_color=_color(EDIT_COLOR), fill_opacity=0.7)
_OVERLAPPING_POINT = replace(_POINT_BASE, radius=5, weight=3, color=_color(BLACK))
_CLOSEBY_POINT = replace(
    _POINT_BASE, radius=9, fill_color=_color(EDIT_COLOR), fill_opacity=_EDITABLE_POINT.fill_opacity
)
_POINT_STYLES: dict[str, PathStyle] = {
    "normal": _POINT_BASE,
    "odd": replace(_POINT_BASE, fill_color=_color(combine_colors(POINT_COLOR, BLACK, max_delta=ODD_AMOUNT))),
    "active": replace(_POINT_BASE, fill_color=_color(combine_colors(ACTIVE_COLOR, BLACK, max_delta=40))),
    "edit": replace(_POINT_BASE, fill_color=_color(EDIT_COLOR)),
    "editPoint": _EDITABLE_POINT,
    "hover": replace(_POINT_BASE, fill_color=_color(_HOVER_COLOR)),
    "closebyEdit": replace(_POINT_BASE, fill_color=_color(EDIT_COLOR), radius=9),
    "closeby": _CLOSEBY_POINT,
    "hint": replace(_CLOSEBY_POINT, radius=7),
    "seam": replace(_POINT_BASE, radius=7),
    "overlappingSeam": _OVERLAPPING_POINT,
    "firstOverlappingSeam": replace(_OVERLAPPING_POINT, fill_color=_color(EDIT_COLOR)),
}


def _hidden(styles: dict[str, PathStyle]) -> dict[str, PathStyle]:
    return {key: replace(style, opacity=0.0, fill_opacity=0.0) for key, style in styles.items()}


_PRINT_LINE_STYLES = _hidden(_LINE_STYLES)
_PRINT_LINE_STYLES["normal"] = PathStyle(color=_color(BLACK), weight=1)
_PRINT_LINE_STYLES["odd"] = _PRINT_LINE_STYLES["normal"]
_PRINT_CORRIDOR_STYLES = _hidden(_CORRIDOR_STYLES)
_PRINT_POINT_STYLES = _hidden(_POINT_STYLES)
_PRINT_POINT_STYLES["firstOverlappingSeam"] = replace(_POINT_STYLES["firstOverlappingSeam"], weight=0)
_PRINT_POINT_STYLES["overlappingSeam"] = replace(
    _OVERLAPPING_POINT, fill_color=_color("#FF7777"), weight=0
)

PRINT_TICK_STYLE = PathStyle(color=_color(BLACK), weight=1)

_STYLE_TABLES = {
    SEGMENT: (_LINE_STYLES, _PRINT_LINE_STYLES),
    CORRIDOR: (_CORRIDOR_STYLES, _PRINT_CORRIDOR_STYLES),
    POINT: (_POINT_STYLES, _PRINT_POINT_STYLES),
}


def _is_first_overlapping_endpoint(idx: "IdxTuple", store: "GeometryStore") -> bool:
    overlaps = store.nonadjacent_overlaps
    if "0-0" not in overlaps:
        return idx == (0, 0)
    return idx == (0, 0) or next(iter(overlaps)) == idx_tuple_key(idx)


def style_for(
    kind: str,
    idx: "IdxTuple",
    store: "GeometryStore",
    snapshot: ModeSnapshot,
    feature_style: FeatureStyleHook | None = None,
) -> PathStyle:
    """Style of one segment, corridor or point; pure in its arguments."""
    line_idx, sub_idx = idx
    styles = _STYLE_TABLES[kind][1 if snapshot.print_mode else 0]
    editable = snapshot.editable and not snapshot.print_mode
    is_point = kind == POINT
    last_point_idx = store.point_count(line_idx) - 1

    is_active = line_idx == snapshot.active_idx and (
        not is_point or 0 < sub_idx < last_point_idx
    )
    hover_line, hover_sub = snapshot.hover if snapshot.hover is not None else (None, None)
    on_hovered_line = line_idx == hover_line

    is_edit_point = is_point and idx == snapshot.edit_point
    is_hint_point = is_point and snapshot.shift_mode and store.can_shift_to(idx)
    is_closeby_point = (
        is_point
        and idx == snapshot.closeby_point
        and (not snapshot.shift_mode or is_hint_point)
    )
    is_first_overlapping = is_point and _is_first_overlapping_endpoint(idx, store)
    is_overlapping = (
        is_point
        and not is_first_overlapping
        and bool(store.coincident_with(idx))
    )
    is_seam = is_point and idx_tuple_key(idx) in store.adjacent_overlaps

    if is_point:
        is_edit = is_edit_point
    else:
        is_edit = (
            idx == snapshot.split_segment
            or idx == snapshot.merge_first
            or idx in snapshot.edit_segments
            or (snapshot.select_mode == "segment" and on_hovered_line and sub_idx == hover_sub)
            or (snapshot.select_mode == "line" and on_hovered_line)
        )

    if snapshot.split_segment or snapshot.merge_first or snapshot.select_mode:
        is_hover = False
    elif is_point:
        is_hover = not is_seam and not is_overlapping and on_hovered_line and not is_active
    else:
        is_hover = on_hovered_line and not is_active

    if is_edit_point and is_closeby_point and editable:
        return styles["closebyEdit"]
    if is_closeby_point and editable:
        return styles["closeby"]
    if is_hint_point:
        return styles["hint"]
    if is_edit_point:
        return styles["editPoint"]
    if is_first_overlapping:
        return styles["firstOverlappingSeam"]
    if is_overlapping:
        return styles["overlappingSeam"]
    if is_seam:
        return styles["seam"]
    if is_edit and editable:
        return styles["edit"]
    if is_hover and editable:
        return styles["hover"]
    if is_active and editable:
        return styles["active"]
    if feature_style is not None:
        custom = feature_style(line_idx, sub_idx, kind, styles["normal"])
        if custom is not None:
            return custom
    return styles["normal"] if line_idx % 2 == 0 else styles["odd"]
