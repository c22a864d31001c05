"""Deferred callbacks on the host event loop."""

from __future__ import annotations

from typing import Callable, Protocol

from PyQt5 import QtCore


class ScheduledCall(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_soon(self, callback: Callable[[], None]) -> ScheduledCall:
        ...

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall:
        ...


class _TimerCall:
    def __init__(self, owner: "QtScheduler", timer: QtCore.QTimer) -> None:
        self._owner = owner
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()
        self._owner._release(self._timer)


class QtScheduler:
    """Single-shot ``QTimer`` callbacks; ``call_soon`` runs on the next loop pass."""

    def __init__(self, parent: QtCore.QObject | None = None) -> None:
        self._parent = parent
        self._pending: set[QtCore.QTimer] = set()

    def call_soon(self, callback: Callable[[], None]) -> _TimerCall:
        return self.call_later(0, callback)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> _TimerCall:
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)

        def fire() -> None:
            self._release(timer)
            callback()

        timer.timeout.connect(fire)
        self._pending.add(timer)
        timer.start(max(0, int(delay_ms)))
        return _TimerCall(self, timer)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _release(self, timer: QtCore.QTimer) -> None:
        if timer in self._pending:
            self._pending.discard(timer)
            timer.deleteLater()
