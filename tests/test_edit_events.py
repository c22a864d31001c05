from __future__ import annotations

import pytest

from line_transect.model.edit_events import (
    DELETE,
    EDIT,
    INSERT,
    MERGE,
    MOVE,
    EditEvent,
    describe_events,
    event_payload,
    invert_event,
    invert_events,
    replay_events,
)
from line_transect.model.geometry_io import lines_to_geometry, make_feature
from line_transect.model.invariants import InvariantError

BEFORE = [[(0.0, 0.0), (0.0, 10.0)], [(0.0, 10.0), (0.0, 20.0)]]


def _line(*points):
    return {"type": "LineString", "coordinates": [list(p) for p in points]}


def test_unknown_event_type_is_rejected() -> None:
    with pytest.raises(InvariantError):
        EditEvent("rename", idx=0)


def test_merge_inverse_restores_both_lines() -> None:
    merge = EditEvent(
        MERGE,
        idxs=(0, 1),
        geometry=_line((0, 0), (0, 20)),
        prev_feature=make_feature(lines_to_geometry(BEFORE)),
    )

    after = replay_events(BEFORE, [merge])
    assert after == [[(0.0, 0.0), (0.0, 20.0)]]

    inverse = invert_event(merge)
    assert [event.type for event in inverse] == [EDIT, INSERT]
    assert replay_events(after, inverse) == BEFORE


def test_delete_inverse_reinserts_previous_line() -> None:
    delete = EditEvent(DELETE, idx=1, prev_feature=make_feature(lines_to_geometry(BEFORE)))

    after = replay_events(BEFORE, [delete])
    restored = replay_events(after, invert_events([delete]))

    assert after == [BEFORE[0]]
    assert restored == BEFORE


def test_move_events_rotate_and_invert() -> None:
    lines = [[(0.0, 0.0), (1.0, 0.0)], [(1.0, 0.0), (2.0, 0.0)], [(2.0, 0.0), (3.0, 0.0)]]
    forward = [EditEvent(MOVE, idx=2, target=0), EditEvent(MOVE, idx=2, target=0)]

    rotated = replay_events(lines, forward)
    assert rotated == [lines[1], lines[2], lines[0]]

    undo = list(reversed(invert_events(forward)))
    assert all(event.type == MOVE and event.target == 3 for event in undo)
    assert replay_events(rotated, undo) == lines


def test_edit_without_previous_feature_cannot_be_inverted() -> None:
    with pytest.raises(InvariantError):
        invert_event(EditEvent(EDIT, idx=0, geometry=_line((0, 0), (1, 1))))


def test_describe_and_payload() -> None:
    events = [EditEvent(MERGE, idxs=(0, 1)), EditEvent(MOVE, idx=2, target=0), EditEvent(EDIT, idx=3)]

    assert describe_events(events) == "merge(0, 1), move(2->0), edit(3)"
    assert event_payload(events[0]) == {"type": "merge", "idxs": [0, 1]}
    assert event_payload(EditEvent(DELETE, idx=1, prev_feature={"type": "Feature"})) == {
        "type": "delete",
        "idx": 1,
        "prevFeature": {"type": "Feature"},
    }
