from .edit_events import EditEvent, invert_events, replay_events
from .geometry_io import GeometryFormatError, geometry_to_lines, lines_to_geometry
from .geometry_store import GeometryStore, Handle
from .history import HistoryEntry, HistoryLog
from .invariants import InvariantError, validate_store

__all__ = [
    "EditEvent",
    "GeometryFormatError",
    "GeometryStore",
    "Handle",
    "HistoryEntry",
    "HistoryLog",
    "InvariantError",
    "geometry_to_lines",
    "invert_events",
    "lines_to_geometry",
    "replay_events",
    "validate_store",
]
