"""
Full-text search for paginated documents.
"""

from .errors import (
    ConcurrentResumeError,
    ExtractionFailure,
    FindError,
    InvariantViolation,
    MalformedQuery,
)
from .event_bus import FindEventBus
from .find_controller import FindController
from .match_index import PageMatchIndex, compute_matches, is_entire_word
from .models import (
    ALL_PAGES,
    FindOperation,
    FindRequest,
    FindResult,
    FindState,
    MatchesCount,
    NormalizedText,
    QueryOptions,
    SearchResult,
)
from .normalizer import normalize
from .query_compiler import compile_query
from .scheduler import QtScheduler
from .search_highlight import SearchHighlight

__all__ = [
    "ALL_PAGES",
    "ConcurrentResumeError",
    "ExtractionFailure",
    "FindController",
    "FindError",
    "FindEventBus",
    "FindOperation",
    "FindRequest",
    "FindResult",
    "FindState",
    "InvariantViolation",
    "MalformedQuery",
    "MatchesCount",
    "NormalizedText",
    "PageMatchIndex",
    "QtScheduler",
    "QueryOptions",
    "SearchHighlight",
    "SearchResult",
    "compile_query",
    "compute_matches",
    "is_entire_word",
    "normalize",
]
