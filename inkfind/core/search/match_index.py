"""
Per-page text and match storage.
"""

from typing import List, Optional, Tuple, Union

from .char_types import get_character_type
from .models import (
    EMPTY_TEXT,
    NormalizedText,
    PageSearchState,
    QueryOptions,
    SearchResult,
)
from .normalizer import is_diacritic, normalize, strip_line_breaks
from .query_compiler import compile_prepared


def _char_before(content: str, index: int) -> Optional[str]:
    """Nearest non-diacritic character before ``index``."""
    for pos in range(index - 1, -1, -1):
        if not is_diacritic(content[pos]):
            return content[pos]
    return None


def _char_after(content: str, index: int) -> Optional[str]:
    """Nearest non-diacritic character at or after ``index``."""
    for pos in range(index, len(content)):
        if not is_diacritic(content[pos]):
            return content[pos]
    return None


def is_entire_word(content: str, start: int, length: int) -> bool:
    """
    Check that a match does not continue a word on either side.

    The characters around the match are compared by type: a letter next to
    a letter, or a Han character next to a Han character, means the match
    is only part of a word.
    """
    limit = _char_before(content, start)
    if limit is not None:
        if get_character_type(content[start]) == get_character_type(limit):
            return False

    limit = _char_after(content, start + length)
    if limit is not None:
        last = content[start + length - 1]
        if get_character_type(last) == get_character_type(limit):
            return False

    return True


def compute_matches(
    page: NormalizedText, pattern, entire_word: bool = False
) -> List[Tuple[int, int]]:
    """
    Find every occurrence of ``pattern`` in a page.

    Args:
        page: Normalized page text
        pattern: Compiled pattern, or None for an empty query
        entire_word: Only keep matches that are whole words

    Returns:
        ``(offset, length)`` pairs in original space, in document order
    """
    if pattern is None:
        return []

    content = page.text
    matches = []
    for match in pattern.finditer(content):
        start, end = match.span()
        if start == end:
            continue
        if entire_word and not is_entire_word(content, start, end - start):
            continue

        offset, length = page.original_span(start, end - start)
        # Nothing left once mapped back: the match only covered
        # characters that normalization introduced.
        if length > 0:
            matches.append((offset, length))
    return matches


class PageMatchIndex:
    """
    Text and matches of every page of the current document.

    Arrays are sized once per document; a page's entry fills in when its
    text has been extracted, and its matches once they are computed.
    """

    def __init__(self, page_count: int = 0):
        self._pages: List[Optional[PageSearchState]] = []
        self.reset(page_count)

    def reset(self, page_count: int) -> None:
        """Drop everything and prepare for a document of ``page_count`` pages."""
        self._pages = [None] * page_count

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def set_page_text(self, page_index: int, raw_text: str) -> PageSearchState:
        """
        Store extracted text for a page.

        Args:
            page_index: 0-based page index
            raw_text: Extracted text, line breaks marked with ``"\\n"``
        """
        state = PageSearchState(raw_text=raw_text, normalized=normalize(raw_text))
        self._pages[page_index] = state
        return state

    def set_page_failed(self, page_index: int) -> PageSearchState:
        """Store an empty page for text that could not be extracted."""
        state = PageSearchState(raw_text="", normalized=EMPTY_TEXT)
        self._pages[page_index] = state
        return state

    def is_extracted(self, page_index: int) -> bool:
        return self._pages[page_index] is not None

    def page(self, page_index: int) -> Optional[PageSearchState]:
        return self._pages[page_index]

    def original_text(self, page_index: int) -> str:
        """Page text as the text layer sees it (no line break markers)."""
        state = self._pages[page_index]
        return strip_line_breaks(state.raw_text) if state else ""

    def compute(
        self,
        page_index: int,
        query: Union[str, Tuple[str, ...]],
        options: QueryOptions,
    ) -> List[SearchResult]:
        """
        Compute and store a page's matches.

        Args:
            page_index: 0-based page index, text must be extracted
            query: Query already passed through ``prepare_query``
            options: Case, diacritics and entire-word options
        """
        state = self._pages[page_index]
        normalized = state.normalized
        pattern = compile_prepared(query, options, normalized.has_diacritics)
        state.matches = [
            SearchResult(page_index=page_index, offset=offset, length=length)
            for offset, length in compute_matches(
                normalized, pattern, options.entire_word
            )
        ]
        return state.matches

    def matches(self, page_index: int) -> Optional[List[SearchResult]]:
        """Matches of a page, None while not computed."""
        state = self._pages[page_index]
        return state.matches if state else None

    def clear_matches(self) -> None:
        """Forget every computed match, keep extracted text."""
        for state in self._pages:
            if state is not None:
                state.matches = None

    def matches_before(self, page_index: int) -> int:
        """Number of computed matches on pages before ``page_index``."""
        total = 0
        for state in self._pages[:page_index]:
            if state is not None and state.matches:
                total += len(state.matches)
        return total

    @property
    def total_matches(self) -> int:
        return self.matches_before(len(self._pages))
