"""
Page navigation state seen by the find controller.
"""

from typing import Set

from PyQt5.QtCore import QObject, pyqtSignal


class PageNavigator(QObject):
    """Tracks the current page and which pages are on screen."""

    # Signals
    page_changed = pyqtSignal(int)  # Emitted when current page changes

    def __init__(self, page_count: int = 0, parent=None):
        super().__init__(parent)
        self._page_count = page_count
        self._current_page = 0
        self._visible_pages: Set[int] = {0} if page_count else set()

    def set_document_info(self, page_count: int) -> None:
        """
        Reset navigation for a new document.

        Args:
            page_count: Total number of pages in the document
        """
        self._page_count = page_count
        self._current_page = 0
        self._visible_pages = {0} if page_count else set()

    @property
    def page_count(self) -> int:
        return self._page_count

    @property
    def current_page_index(self) -> int:
        return self._current_page

    def set_visible_pages(self, pages) -> None:
        """Record the pages currently shown by the view."""
        self._visible_pages = {p for p in pages if 0 <= p < self._page_count}

    def is_page_visible(self, page_index: int) -> bool:
        return page_index in self._visible_pages

    def go_to_page(self, page_index: int) -> None:
        """Make a page current and visible."""
        if not 0 <= page_index < self._page_count:
            return
        self._visible_pages = {page_index}
        if page_index != self._current_page:
            self._current_page = page_index
            self.page_changed.emit(page_index)
