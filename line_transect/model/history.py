"""Pointer-addressed undo/redo log over transect geometries."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Sequence

from line_transect.model.edit_events import ACTIVE, EditEvent, invert_events
from line_transect.model.geometry_io import Geometry
from line_transect.model.invariants import InvariantError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """One undoable step: the geometry after it plus the events both ways."""

    geometry: Geometry
    undo_events: tuple[EditEvent, ...] = ()
    redo_events: tuple[EditEvent, ...] = ()
    active_change: tuple[int, int] | None = None


@dataclass(frozen=True)
class HistoryStep:
    """Result of an undo or redo: what to rebuild and what to announce."""

    geometry: Geometry
    events: list[EditEvent] = field(default_factory=list)
    active_idx: int | None = None


class HistoryLog:
    """
    Linear history with a pointer.

    Entry 0 is the initial load and carries no events. Pushing after an
    undo drops every entry beyond the pointer.
    """

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []
        self._pointer = -1

    def reset(self, geometry: Geometry) -> None:
        self._entries = [HistoryEntry(copy.deepcopy(geometry))]
        self._pointer = 0

    @property
    def pointer(self) -> int:
        return self._pointer

    def __len__(self) -> int:
        return len(self._entries)

    def current(self) -> HistoryEntry:
        if not 0 <= self._pointer < len(self._entries):
            raise InvariantError("History has not been initialized with a geometry.")
        return self._entries[self._pointer]

    def can_undo(self) -> bool:
        return self._pointer > 0

    def can_redo(self) -> bool:
        return 0 <= self._pointer < len(self._entries) - 1

    def push(
        self,
        geometry: Geometry,
        forward_events: Sequence[EditEvent],
        active_change: tuple[int, int] | None = None,
    ) -> HistoryEntry:
        """Record an edit; ``active`` events are not kept."""
        if self._pointer < 0:
            raise InvariantError("Cannot push onto an empty history; reset it first.")

        recorded = tuple(event for event in forward_events if event.type != ACTIVE)
        entry = HistoryEntry(
            geometry=copy.deepcopy(geometry),
            undo_events=tuple(invert_events(recorded)),
            redo_events=recorded,
            active_change=active_change,
        )
        dropped = len(self._entries) - self._pointer - 1
        del self._entries[self._pointer + 1 :]
        self._entries.append(entry)
        self._pointer += 1
        if dropped:
            logger.debug("History push discarded %d redo entr%s", dropped, "y" if dropped == 1 else "ies")
        return entry

    def undo(self) -> HistoryStep | None:
        if not self.can_undo():
            return None
        undone = self._entries[self._pointer]
        self._pointer -= 1
        events = list(reversed(undone.undo_events))
        active_idx = None
        if undone.active_change is not None:
            active_idx = undone.active_change[0]
            events.append(EditEvent(ACTIVE, idx=active_idx))
        return HistoryStep(copy.deepcopy(self._entries[self._pointer].geometry), events, active_idx)

    def redo(self) -> HistoryStep | None:
        if not self.can_redo():
            return None
        self._pointer += 1
        redone = self._entries[self._pointer]
        events = list(redone.redo_events)
        active_idx = None
        if redone.active_change is not None:
            active_idx = redone.active_change[1]
            events.append(EditEvent(ACTIVE, idx=active_idx))
        return HistoryStep(copy.deepcopy(redone.geometry), events, active_idx)
