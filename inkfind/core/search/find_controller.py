"""
Incremental search across the pages of a document.

Page text is extracted one page per event loop pass. Matches of a page are
computed as soon as its text is available, and navigation waits on the
page it needs when that page is not ready yet.
"""

from dataclasses import replace
from functools import partial
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

import regex
from PyQt5.QtCore import QObject

from inkfind.config import SearchConfig
from inkfind.utils.logger import get_logger

from .errors import ConcurrentResumeError, InvariantViolation, MalformedQuery
from .event_bus import FindEventBus
from .interfaces import NavigationService, PageTextProvider, Scheduler
from .match_index import PageMatchIndex
from .models import (
    ALL_PAGES,
    Cursor,
    FindOperation,
    FindRequest,
    FindResult,
    FindState,
    MatchesCount,
    SearchResult,
    Selection,
)
from .query_compiler import prepare_query
from .scheduler import QtScheduler

logger = get_logger(__name__)

WORDS_RE = regex.compile(r"\S+")

PreparedQuery = Union[str, Tuple[str, ...]]


class FindController(QObject):
    """
    Drives a search over the current document.

    Requests arrive through ``FindEventBus.find_requested`` (or ``find``);
    results are published on the same bus. Text layers read the matches of
    their page with ``page_matches`` when told their page changed.
    """

    def __init__(
        self,
        navigation: NavigationService,
        event_bus: FindEventBus,
        scheduler: Optional[Scheduler] = None,
        config: Optional[SearchConfig] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._navigation = navigation
        self._event_bus = event_bus
        self._scheduler = scheduler if scheduler is not None else QtScheduler(self)
        self._config = config or SearchConfig()
        self._index = PageMatchIndex()

        self._find_timeout = None
        self._extraction_call = None
        self._deferred: Set[object] = set()
        self._reset()

        event_bus.find_requested.connect(self.find)
        event_bus.find_bar_closed.connect(self.close_find_bar)

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def highlight_matches(self) -> bool:
        """Whether text layers should currently show matches."""
        return self._highlight_matches

    @property
    def selected(self) -> Selection:
        return Selection(self._selected.page_idx, self._selected.match_idx)

    @property
    def state(self) -> FindState:
        """Last published result state."""
        return self._find_state

    @property
    def request(self) -> Optional[FindRequest]:
        return self._request

    @property
    def index(self) -> PageMatchIndex:
        return self._index

    @property
    def matches_count(self) -> MatchesCount:
        return self._request_matches_count()

    @property
    def extraction_complete(self) -> bool:
        count = self._index.page_count
        return all(self._index.is_extracted(i) for i in range(count))

    def page_matches(self, page_index: int) -> List[SearchResult]:
        """Matches of a page, empty while not computed."""
        return self._index.matches(page_index) or []

    def page_state(self, page_index: int) -> FindState:
        """Progress of a single page."""
        if self._document is None or not self._extraction_started:
            return FindState.IDLE
        page = self._index.page(page_index)
        if page is None:
            return FindState.EXTRACTING
        if page.matches is None:
            return FindState.PENDING
        return FindState.FOUND if page.matches else FindState.NOT_FOUND

    # ------------------------------------------------------------------
    # Document & requests
    # ------------------------------------------------------------------

    def set_document(self, document: Optional[PageTextProvider]) -> None:
        """
        Switch to a new document (or to none).

        A request received before the first document was set is executed
        once the document is available.
        """
        if self._document is not None:
            self._reset()
        if document is None:
            return

        self._document = document
        self._index.reset(document.page_count)
        if self._request is not None:
            self._run_guarded(self._process_find)

    def find(self, request: Optional[FindRequest]) -> None:
        """Handle a request from the find bar."""
        if request is None:
            return
        request = self._check_deprecated(request)

        if self._request is None or self._should_dirty_match(request):
            self._dirty_match = True
        self._request = request

        if request.operation is not FindOperation.HIGHLIGHT_ALL_CHANGE:
            self._update_ui_state(FindState.PENDING)

        if self._document is None:
            logger.debug("No document yet, find request deferred")
            return
        self._run_guarded(self._process_find)

    def close_find_bar(self) -> None:
        """Hide highlights; computed matches stay cached for a reopen."""
        if self._document is None:
            return

        self._cancel_find_timeout()
        if self._resume_page_idx is not None:
            self._resume_page_idx = None
            self._dirty_match = True

        self._update_ui_state(FindState.FOUND)
        self._highlight_matches = False
        self._update_all_pages()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._highlight_matches = False
        self._scroll_matches = False
        self._document = None
        self._index.reset(0)
        self._visited_pages_count = 0
        self._request: Optional[FindRequest] = None
        self._prepared: Optional[Tuple[object, PreparedQuery]] = None
        self._selected = Selection()
        self._offset = Cursor(page_idx=0, match_idx=None, wrapped=False)
        self._extraction_started = False
        self._text_waiters: Dict[int, List[Callable[[], None]]] = {}
        self._matches_count_total = 0
        self._pages_to_search = 0
        self._pending_find_matches: Set[int] = set()
        self._resume_page_idx: Optional[int] = None
        self._dirty_match = False
        self._find_state = FindState.IDLE

        self._cancel_find_timeout()
        if self._extraction_call is not None:
            self._extraction_call.cancel()
            self._extraction_call = None
        for handle in list(self._deferred):
            handle.cancel()
        self._deferred.clear()

    @property
    def _query(self) -> PreparedQuery:
        """Current query in normalized form (a string or tuple of phrases)."""
        if self._request is None:
            raise InvariantViolation("Query state accessed before any find request")
        raw = self._request.raw_query
        if self._prepared is None or self._prepared[0] != raw:
            self._prepared = (raw, prepare_query(raw))
        return self._prepared[1]

    def _check_deprecated(self, request: FindRequest) -> FindRequest:
        if request.phrase_search is not False:
            return request

        error = MalformedQuery(
            "The `phrase_search` parameter was removed, please provide "
            "a list of strings in the `query` parameter instead."
        )
        logger.error("%s", error)
        query = request.query
        if isinstance(query, str):
            query = WORDS_RE.findall(query)
        return replace(request, query=query, phrase_search=None)

    def _should_dirty_match(self, request: FindRequest) -> bool:
        new_query = request.query
        prev_query = self._request.query

        if isinstance(new_query, str) != isinstance(prev_query, str):
            return True
        if isinstance(new_query, str):
            if new_query != prev_query:
                return True
        elif list(new_query) != list(prev_query):
            return True

        if request.operation is FindOperation.AGAIN:
            page_idx = self._selected.page_idx
            navigation = self._navigation
            # The user scrolled away from the selected match: start over
            # from the page being looked at.
            return (
                0 <= page_idx < navigation.page_count
                and page_idx != navigation.current_page_index
                and not navigation.is_page_visible(page_idx)
            )
        if request.operation is FindOperation.HIGHLIGHT_ALL_CHANGE:
            return False
        # Plain requests may carry new options.
        return True

    def _run_guarded(self, operation: Callable, *args) -> None:
        """Run an operation; an invariant violation only aborts that operation."""
        try:
            operation(*args)
        except InvariantViolation:
            logger.exception("Find operation aborted")
            self._resume_page_idx = None
            self._dirty_match = True

    def _process_find(self) -> None:
        request = self._request
        self._extract_text()

        find_bar_closed = not self._highlight_matches
        pending_timeout = self._find_timeout is not None
        self._cancel_find_timeout()

        operation = request.operation
        if operation is None:
            # Typing: wait for the user to pause.
            self._find_timeout = self._scheduler.schedule(
                self._config.find_timeout_ms, self._on_find_timeout
            )
        elif self._dirty_match:
            self._next_match()
        elif operation is FindOperation.AGAIN:
            self._next_match()
            if find_bar_closed and request.highlight_all:
                self._update_all_pages()
        elif operation is FindOperation.HIGHLIGHT_ALL_CHANGE:
            if pending_timeout:
                self._next_match()
            else:
                self._highlight_matches = True
            self._update_all_pages()

    def _on_find_timeout(self) -> None:
        self._find_timeout = None
        self._run_guarded(self._next_match)

    def _cancel_find_timeout(self) -> None:
        if self._find_timeout is not None:
            self._find_timeout.cancel()
            self._find_timeout = None

    def _defer(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on the next scheduler pass."""
        handle = None

        def run():
            self._deferred.discard(handle)
            callback()

        handle = self._scheduler.schedule(0, run)
        self._deferred.add(handle)

    # --- Text extraction ---

    def _extract_text(self) -> None:
        if self._extraction_started:
            return
        self._extraction_started = True
        self._schedule_extraction(self._document, 0)

    def _schedule_extraction(self, document, page_index: int) -> None:
        if page_index >= self._index.page_count:
            self._extraction_call = None
            logger.debug("Text extracted for all %d pages", self._index.page_count)
            return
        self._extraction_call = self._scheduler.schedule(
            0, partial(self._extract_page_text, document, page_index)
        )

    def _extract_page_text(self, document, page_index: int) -> None:
        if document is not self._document:
            return

        try:
            items = document.get_page_text(page_index)
            text = "".join(
                f"{string}\n" if end_of_line else string for string, end_of_line in items
            )
            self._index.set_page_text(page_index, text)
        except Exception as e:
            logger.error("Unable to get text content for page %d: %s", page_index + 1, e)
            self._index.set_page_failed(page_index)

        # Pages are requested one after the other.
        self._schedule_extraction(document, page_index + 1)

        for callback in self._text_waiters.pop(page_index, []):
            callback()

    def _when_text_extracted(self, page_index: int, callback: Callable[[], None]) -> None:
        if self._index.is_extracted(page_index):
            self._defer(callback)
        else:
            self._text_waiters.setdefault(page_index, []).append(callback)

    def _on_page_text_ready(self, document, page_index: int) -> None:
        if document is not self._document:
            return
        self._pending_find_matches.discard(page_index)
        self._run_guarded(self._calculate_match, page_index)

    # --- Matching ---

    def _calculate_match(self, page_index: int) -> None:
        query = self._query
        if not query:
            return

        request = self._request
        matches = self._index.compute(page_index, query, request.options)
        page_matches_count = len(matches)
        self._matches_count_total += page_matches_count
        self._visited_pages_count += 1

        if request.highlight_all:
            self._update_page(page_index)

        if self._resume_page_idx == page_index:
            self._resume_page_idx = None
            self._next_page_match()

        if self._config.update_matches_count_on_progress:
            if page_matches_count > 0:
                self._update_ui_results_count()
        elif self._visited_pages_count == self._navigation.page_count:
            self._update_ui_results_count()

    # --- Navigation ---

    def _next_match(self) -> None:
        previous = self._request.find_previous
        num_pages = self._navigation.page_count
        current_page_index = min(max(self._navigation.current_page_index, 0), max(num_pages - 1, 0))

        self._highlight_matches = True

        if self._dirty_match:
            # Start over from the current page.
            self._dirty_match = False
            self._selected = Selection()
            self._offset = Cursor(page_idx=current_page_index, match_idx=None, wrapped=False)
            self._resume_page_idx = None
            self._index.clear_matches()
            self._visited_pages_count = 0
            self._matches_count_total = 0

            self._update_all_pages()

            document = self._document
            for i in range(num_pages):
                if i in self._pending_find_matches:
                    continue
                self._pending_find_matches.add(i)
                self._when_text_extracted(i, partial(self._on_page_text_ready, document, i))

        if not self._query:
            self._visited_pages_count = num_pages
            self._update_ui_state(FindState.FOUND)
            return

        if num_pages == 0:
            self._update_ui_state(FindState.NOT_FOUND)
            return

        # Navigation resumes once the awaited page is computed.
        if self._resume_page_idx is not None:
            return

        offset = self._offset
        self._pages_to_search = num_pages

        if offset.match_idx is not None:
            num_page_matches = len(self.page_matches(offset.page_idx))
            if (not previous and offset.match_idx + 1 < num_page_matches) or (
                previous and offset.match_idx > 0
            ):
                offset.match_idx += -1 if previous else 1
                self._update_match(True)
                return
            self._advance_offset_page(previous)

        self._next_page_match()

    def _matches_ready(self, matches: List[SearchResult]) -> bool:
        offset = self._offset
        num_matches = len(matches)
        previous = self._request.find_previous

        if num_matches:
            offset.match_idx = num_matches - 1 if previous else 0
            self._update_match(True)
            return True

        self._advance_offset_page(previous)
        if offset.wrapped:
            offset.match_idx = None
            if self._pages_to_search < 0:
                # Went around the whole document without a match.
                self._update_match(False)
                return True
        return False

    def _next_page_match(self) -> None:
        if self._resume_page_idx is not None:
            raise ConcurrentResumeError(self._resume_page_idx, self._offset.page_idx)

        while True:
            page_idx = self._offset.page_idx
            matches = self._index.matches(page_idx)
            if matches is None:
                # Not computed yet, continue from _calculate_match.
                self._resume_page_idx = page_idx
                break
            if self._matches_ready(matches):
                break

    def _advance_offset_page(self, previous: bool) -> None:
        offset = self._offset
        num_pages = self._navigation.page_count

        offset.page_idx = offset.page_idx - 1 if previous else offset.page_idx + 1
        offset.match_idx = None
        self._pages_to_search -= 1

        if offset.page_idx >= num_pages or offset.page_idx < 0:
            offset.page_idx = num_pages - 1 if previous else 0
            offset.wrapped = True

    def _update_match(self, found: bool = False) -> None:
        state = FindState.NOT_FOUND
        wrapped = self._offset.wrapped
        self._offset.wrapped = False

        if found:
            previous_page = self._selected.page_idx
            self._selected = Selection(self._offset.page_idx, self._offset.match_idx)
            state = FindState.WRAPPED if wrapped else FindState.FOUND

            # Clear the old selection highlight.
            if previous_page != -1 and previous_page != self._selected.page_idx:
                self._update_page(previous_page)

        self._update_ui_state(state, self._request.find_previous)
        if self._selected.page_idx != -1:
            self._scroll_matches = True
            self._update_page(self._selected.page_idx)

    # --- Notifications ---

    def _update_page(self, page_index: int) -> None:
        if self._scroll_matches and self._selected.page_idx == page_index:
            self._scroll_matches = False
            self._navigation.go_to_page(page_index)
        self._event_bus.matches_updated.emit(page_index)

    def _update_all_pages(self) -> None:
        self._event_bus.matches_updated.emit(ALL_PAGES)

    def _request_matches_count(self) -> MatchesCount:
        page_idx, match_idx = self._selected.page_idx, self._selected.match_idx
        current = 0
        total = self._matches_count_total
        if match_idx != -1:
            current = self._index.matches_before(page_idx) + match_idx + 1
        if current < 1 or current > total:
            current = total = 0
        return MatchesCount(current=current, total=total)

    def _update_ui_results_count(self) -> None:
        self._event_bus.matches_count_updated.emit(self._request_matches_count())

    def _update_ui_state(self, state: FindState, previous: bool = False) -> None:
        if not self._config.update_matches_count_on_progress and (
            self._visited_pages_count != self._navigation.page_count
            or state is FindState.PENDING
        ):
            return

        self._find_state = state
        raw_query = self._request.raw_query if self._request is not None else None
        self._event_bus.result_state_changed.emit(
            FindResult(
                state=state,
                previous=previous,
                matches_count=self._request_matches_count(),
                raw_query=raw_query,
            )
        )
