"""
Translation of user queries into patterns over normalized text.
"""

from functools import lru_cache
from typing import Optional, Sequence, Tuple, Union

import regex

from .models import QueryOptions
from .normalizer import DIACRITICS_EXCEPTION, normalize_query

# Groups: regex metacharacter, punctuation, whitespace run, combining mark,
# letter.
SPECIAL_CHARS_RE = regex.compile(
    r"([.*+?^${}()|[\]\\])|(\p{P})|(\s+)|(\p{M})|(\p{L})"
)

TRAILING_SPACES = "[ ]*"

DIACRITICS_EXCEPTION_STR = "".join(sorted(DIACRITICS_EXCEPTION))

Query = Union[str, Sequence[str]]


def convert_to_regex_string(
    query: str, options: QueryOptions, has_diacritics: bool
) -> str:
    """
    Turn an already normalized literal into a pattern string.

    Spaces and punctuation are matched loosely since text extraction often
    adds or drops spaces around punctuation.
    """
    match_diacritics = options.match_diacritics

    def replace(match) -> str:
        meta, punct, space, mark, letter = match.groups()
        if meta:
            return f"[ ]*\\{meta}[ ]*"
        if punct:
            return f"[ ]*{regex.escape(punct)}[ ]*"
        if space:
            return "[ ]+"
        if match_diacritics:
            return mark or letter
        if mark:
            return mark if mark in DIACRITICS_EXCEPTION else ""
        if has_diacritics:
            return f"{letter}\\p{{M}}*"
        return letter

    pattern = SPECIAL_CHARS_RE.sub(replace, query)
    if pattern.endswith(TRAILING_SPACES):
        pattern = pattern[: -len(TRAILING_SPACES)]

    if match_diacritics and has_diacritics:
        # An unaccented query must not stop right before an accent that
        # turns the letter into another one.
        pattern += f"(?=[{DIACRITICS_EXCEPTION_STR}]|[^\\p{{M}}]|$)"
    return pattern


@lru_cache(maxsize=256)
def _compile(
    query: Union[str, Tuple[str, ...]], options: QueryOptions, has_diacritics: bool
) -> Optional["regex.Pattern"]:
    if isinstance(query, str):
        pattern = convert_to_regex_string(query, options, has_diacritics)
    else:
        # Longer phrases sort after their prefixes; reversing makes the
        # alternation prefer them.
        pattern = "|".join(
            f"({convert_to_regex_string(phrase, options, has_diacritics)})"
            for phrase in sorted(query, reverse=True)
        )

    if not pattern:
        return None

    flags = regex.V0
    if not options.case_sensitive:
        flags |= regex.IGNORECASE
    return regex.compile(pattern, flags)


def prepare_query(query: Query) -> Union[str, Tuple[str, ...]]:
    """Normalize a literal or phrase list; empty phrases are dropped."""
    if isinstance(query, str):
        return normalize_query(query)
    return tuple(normalize_query(phrase) for phrase in (query or ()) if phrase)


def compile_query(
    query: Query, options: QueryOptions, has_diacritics: bool = False
) -> Optional["regex.Pattern"]:
    """
    Compile a query for one page.

    Args:
        query: A literal string or a list of phrases
        options: Case and diacritics sensitivity
        has_diacritics: Whether the page text contains combining marks

    Returns:
        Compiled pattern, or None for an empty query
    """
    return _compile(prepare_query(query), options, has_diacritics)


def compile_prepared(
    query: Union[str, Tuple[str, ...]], options: QueryOptions, has_diacritics: bool
) -> Optional["regex.Pattern"]:
    """Same as compile_query for a query already passed through prepare_query."""
    return _compile(query, options, has_diacritics)
