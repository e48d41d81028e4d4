from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

# ==============================================================================
# Types
# ==============================================================================


class FindState(Enum):
    """Result state of a find operation (also used per page)."""

    IDLE = "idle"  # Nothing requested yet
    EXTRACTING = "extracting"  # Page text requested, not ready
    PENDING = "pending"  # Waiting for match computation
    FOUND = "found"
    MATCHED = "found"  # Alias of FOUND
    NOT_FOUND = "not_found"
    WRAPPED = "wrapped"  # Found after crossing the last/first page


class FindOperation(Enum):
    """Explicit operation carried by a find request."""

    AGAIN = "again"  # Find next/previous
    HIGHLIGHT_ALL_CHANGE = "highlightallchange"


ALL_PAGES = -1


# ==============================================================================
# Normalized Text
# ==============================================================================


@dataclass(frozen=True)
class NormalizedText:
    """
    Page text in search form plus the table mapping it back to the original.

    ``diffs`` holds ``(normalized_offset, shift)`` pairs sorted by offset; the
    original offset of a normalized position is that position plus the shift
    of the last entry at or before it.
    """

    text: str
    diffs: Tuple[Tuple[int, int], ...] = ((0, 0),)
    has_diacritics: bool = False

    def __post_init__(self):
        diffs = tuple(tuple(entry) for entry in self.diffs)
        object.__setattr__(self, "diffs", diffs)
        object.__setattr__(self, "_offsets", [pos for pos, _ in diffs])

    def original_offset(self, offset: int) -> int:
        """Map a single normalized offset to original space."""
        idx = bisect_right(self._offsets, offset) - 1
        return offset + self.diffs[max(idx, 0)][1]

    def original_span(self, offset: int, length: int) -> Tuple[int, int]:
        """
        Map a normalized ``(offset, length)`` span to original space.

        Start and end are looked up independently, so a span covering
        expanded or removed characters resolves to the original characters
        it was built from.

        Returns:
            ``(original_offset, original_length)``
        """
        if len(self.diffs) == 1 and self.diffs[0][1] == 0:
            return offset, length

        end = offset + length - 1
        old_start = self.original_offset(offset)
        old_end = self.original_offset(end)
        return old_start, old_end + 1 - old_start


EMPTY_TEXT = NormalizedText("")


# ==============================================================================
# Results
# ==============================================================================


@dataclass(frozen=True)
class SearchResult:
    """A single match, in original text space."""

    page_index: int
    offset: int
    length: int


@dataclass(frozen=True)
class MatchesCount:
    """Ordinal of the selected match among all matches (0/0 if none)."""

    current: int = 0
    total: int = 0


@dataclass(frozen=True)
class FindResult:
    """Payload of a result-state notification."""

    state: FindState
    previous: bool
    matches_count: MatchesCount
    raw_query: Optional[Union[str, Tuple[str, ...]]] = None


# ==============================================================================
# Requests & Navigation State
# ==============================================================================


@dataclass(frozen=True)
class QueryOptions:
    """Options that change which matches a query produces."""

    case_sensitive: bool = False
    entire_word: bool = False
    match_diacritics: bool = False


@dataclass
class FindRequest:
    """A search request as sent by the find bar."""

    query: Union[str, Sequence[str]] = ""
    operation: Optional[FindOperation] = None
    case_sensitive: bool = False
    entire_word: bool = False
    highlight_all: bool = False
    find_previous: bool = False
    match_diacritics: bool = False
    phrase_search: Optional[bool] = None  # Deprecated, use a list query

    def __post_init__(self):
        if self.query is None:
            self.query = ""
        if isinstance(self.operation, str):
            self.operation = FindOperation(self.operation)

    @property
    def options(self) -> QueryOptions:
        return QueryOptions(
            case_sensitive=self.case_sensitive,
            entire_word=self.entire_word,
            match_diacritics=self.match_diacritics,
        )

    @property
    def raw_query(self) -> Union[str, Tuple[str, ...]]:
        if isinstance(self.query, str):
            return self.query
        return tuple(self.query)


@dataclass
class Cursor:
    """Tentative position while walking through matches."""

    page_idx: int = 0
    match_idx: Optional[int] = None
    wrapped: bool = False


@dataclass
class Selection:
    """Last committed match."""

    page_idx: int = -1
    match_idx: int = -1

    @property
    def is_empty(self) -> bool:
        return self.match_idx == -1


@dataclass
class PageSearchState:
    """Everything the index knows about one page."""

    raw_text: str = ""
    normalized: NormalizedText = EMPTY_TEXT
    matches: Optional[List[SearchResult]] = field(default=None)
