"""
Deferred execution on the Qt event loop.
"""

from typing import Callable, Optional, Set

from PyQt5.QtCore import QObject, QTimer


class QtScheduledCall:
    """Handle of a callback scheduled with QtScheduler."""

    def __init__(self, scheduler: "QtScheduler", timer: QTimer):
        self._scheduler = scheduler
        self._timer: Optional[QTimer] = timer

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def cancel(self) -> None:
        """Stop the timer; does nothing if it already fired."""
        if self._timer is None:
            return
        self._timer.stop()
        self._detach()

    def _detach(self) -> None:
        # The timer is deleted by Qt once released
        timer, self._timer = self._timer, None
        if timer is not None:
            self._scheduler._release(timer)


class QtScheduler(QObject):
    """
    Schedules callbacks with single-shot QTimers.

    Timers are kept alive until they fire or are cancelled. A delay of 0
    runs the callback on the next pass of the event loop.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._timers: Set[QTimer] = set()

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> QtScheduledCall:
        timer = QTimer(self)
        timer.setSingleShot(True)
        call = QtScheduledCall(self, timer)

        def fire():
            call._detach()
            callback()

        timer.timeout.connect(fire)
        self._timers.add(timer)
        timer.start(max(0, int(delay_ms)))
        return call

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    def _release(self, timer: QTimer) -> None:
        if timer in self._timers:
            self._timers.discard(timer)
            timer.deleteLater()
