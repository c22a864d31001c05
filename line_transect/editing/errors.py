"""Recoverable validation errors raised by transect edit operations.

Every error here is raised before the store or history is touched, so a
caller can report it and let the user retry with another selection.
"""

from __future__ import annotations


class TransectValidationError(ValueError):
    """An edit was rejected; nothing was changed."""


class SegmentsNotContiguousError(TransectValidationError):
    """A merge range contains a gap between two consecutive segments."""


class ShiftTargetError(TransectValidationError):
    """The requested start point is not a line boundary in group 0."""


class LastSegmentError(TransectValidationError):
    """Removing the point would leave the transect without any segment."""


class DistanceOutOfRangeError(TransectValidationError):
    """A distance along the transect lies outside its length."""


class AmbiguousPointError(TransectValidationError):
    """A point coincides with an unrelated point and no chooser is available."""

    def __init__(self, point: tuple[int, int], partner: tuple[int, int]) -> None:
        super().__init__(
            f"Point {point[0]}-{point[1]} coincides with {partner[0]}-{partner[1]}; "
            "choose one of them first."
        )
        self.point = point
        self.partner = partner
