"""
Signals exchanged between the find bar, the controller and the text layers.
"""

from PyQt5.QtCore import QObject, pyqtSignal

from .models import FindRequest


class FindEventBus(QObject):
    """Publish/subscribe hub for search events."""

    # Find bar -> controller
    find_requested = pyqtSignal(object)  # FindRequest
    find_bar_closed = pyqtSignal()

    # Controller -> views
    matches_updated = pyqtSignal(int)  # page index, ALL_PAGES for every page
    result_state_changed = pyqtSignal(object)  # FindResult
    matches_count_updated = pyqtSignal(object)  # MatchesCount

    def request_find(self, request: FindRequest) -> None:
        self.find_requested.emit(request)

    def close_find_bar(self) -> None:
        self.find_bar_closed.emit()
