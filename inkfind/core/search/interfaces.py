"""
Collaborators the find controller relies on.
"""

from typing import Callable, Protocol, Sequence, Tuple

# (text, ends a line)
TextItem = Tuple[str, bool]


class PageTextProvider(Protocol):
    """Source of extracted page text."""

    @property
    def page_count(self) -> int: ...

    def get_page_text(self, page_index: int) -> Sequence[TextItem]:
        """Text items of a page; may raise ExtractionFailure."""
        ...


class NavigationService(Protocol):
    """The viewer's page navigation."""

    @property
    def current_page_index(self) -> int: ...

    @property
    def page_count(self) -> int: ...

    def is_page_visible(self, page_index: int) -> bool: ...

    def go_to_page(self, page_index: int) -> None: ...


class ScheduledCall(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs callbacks later on the same thread."""

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall: ...
