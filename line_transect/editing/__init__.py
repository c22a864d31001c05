from .errors import (
    AmbiguousPointError,
    DistanceOutOfRangeError,
    LastSegmentError,
    SegmentsNotContiguousError,
    ShiftTargetError,
    TransectValidationError,
)
from .operations import LineTransectEditor
from .point_edit_session import PointEditSession

__all__ = [
    "AmbiguousPointError",
    "DistanceOutOfRangeError",
    "LastSegmentError",
    "LineTransectEditor",
    "PointEditSession",
    "SegmentsNotContiguousError",
    "ShiftTargetError",
    "TransectValidationError",
]
