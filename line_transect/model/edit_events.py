"""Edit events emitted to the host and their derived inverses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from line_transect.model.geometry_io import (
    Feature,
    Geometry,
    Point,
    feature_geometry,
    geometry_line_coordinates,
    normalize_point,
)
from line_transect.model.invariants import InvariantError

CREATE = "create"
EDIT = "edit"
DELETE = "delete"
INSERT = "insert"
MERGE = "merge"
MOVE = "move"
ACTIVE = "active"

EVENT_TYPES = frozenset({CREATE, EDIT, DELETE, INSERT, MERGE, MOVE, ACTIVE})


@dataclass(frozen=True)
class EditEvent:
    """One change to the transect's line list.

    ``geometry`` is the LineString of the affected line after the change.
    ``prev_feature`` is the whole feature before the change and is what the
    inverse is derived from.
    """

    type: str
    idx: int | None = None
    idxs: tuple[int, int] | None = None
    target: int | None = None
    geometry: Geometry | None = None
    feature: Feature | None = None
    prev_feature: Feature | None = None

    def __post_init__(self) -> None:
        if self.type not in EVENT_TYPES:
            raise InvariantError(f"Unknown edit event type {self.type!r}.")


def _prev_line(event: EditEvent, line_idx: int) -> Geometry:
    if event.prev_feature is None:
        raise InvariantError(
            f"{event.type} event at {line_idx} carries no previous feature to invert from."
        )
    geometry = feature_geometry(event.prev_feature)
    return {
        "type": "LineString",
        "coordinates": geometry_line_coordinates(geometry, line_idx),
    }


def invert_event(event: EditEvent) -> list[EditEvent]:
    """Inverse of a single forward event, in the order it was derived."""
    if event.type in (CREATE, INSERT):
        return [EditEvent(DELETE, idx=event.idx, feature=event.prev_feature)]
    if event.type == DELETE:
        return [
            EditEvent(
                INSERT,
                idx=event.idx,
                feature=event.prev_feature,
                geometry=_prev_line(event, event.idx),
            )
        ]
    if event.type == EDIT:
        return [
            EditEvent(
                EDIT,
                idx=event.idx,
                feature=event.prev_feature,
                geometry=_prev_line(event, event.idx),
            )
        ]
    if event.type == MERGE:
        if event.idxs is None:
            raise InvariantError("merge event without line indices.")
        kept, removed = event.idxs
        return [
            EditEvent(
                EDIT,
                idx=kept,
                feature=event.prev_feature,
                geometry=_prev_line(event, kept),
            ),
            EditEvent(
                INSERT,
                idx=removed,
                feature=event.prev_feature,
                geometry=_prev_line(event, removed),
            ),
        ]
    if event.type == MOVE:
        if event.idx is None or event.target is None or event.target > event.idx:
            raise InvariantError(
                f"move event {event.idx}->{event.target} cannot be inverted."
            )
        return [EditEvent(MOVE, idx=event.target, target=event.idx + 1)]
    return []


def invert_events(events: Iterable[EditEvent]) -> list[EditEvent]:
    """Inverses of ``events`` in derivation order; emit them reversed."""
    inverted: list[EditEvent] = []
    for event in events:
        inverted.extend(invert_event(event))
    return inverted


def _event_line(event: EditEvent) -> list[Point]:
    if event.geometry is None:
        raise InvariantError(f"{event.type} event at {event.idx} carries no geometry.")
    return [normalize_point(raw) for raw in event.geometry["coordinates"]]


def replay_events(
    lines: Sequence[Sequence[Point]], events: Iterable[EditEvent]
) -> list[list[Point]]:
    """Apply ``events`` to a copy of ``lines`` the way a host would."""
    result = [list(line) for line in lines]
    for event in events:
        if event.type in (CREATE, INSERT):
            result.insert(event.idx, _event_line(event))
        elif event.type == DELETE:
            del result[event.idx]
        elif event.type == EDIT:
            result[event.idx] = _event_line(event)
        elif event.type == MERGE:
            kept, removed = event.idxs
            result[kept] = _event_line(event)
            del result[removed]
        elif event.type == MOVE:
            line = result[event.idx]
            result.insert(event.target, line)
            del result[event.idx + 1 if event.target <= event.idx else event.idx]
    return result


def describe_events(events: Iterable[EditEvent]) -> str:
    parts: list[str] = []
    for event in events:
        if event.type == MERGE:
            parts.append(f"{event.type}{event.idxs}")
        elif event.type == MOVE:
            parts.append(f"{event.type}({event.idx}->{event.target})")
        else:
            parts.append(f"{event.type}({event.idx})")
    return ", ".join(parts)


def event_payload(event: EditEvent) -> dict[str, Any]:
    """Plain mapping of the set fields, for hosts that serialize events."""
    payload: dict[str, Any] = {"type": event.type}
    for key in ("idx", "target", "geometry", "feature"):
        value = getattr(event, key)
        if value is not None:
            payload[key] = value
    if event.idxs is not None:
        payload["idxs"] = list(event.idxs)
    if event.prev_feature is not None:
        payload["prevFeature"] = event.prev_feature
    return payload
