"""
Conversion of extracted page text into search form.

The normalized text is what queries are matched against. Every character of
it remembers which original character it came from, so a match can be
highlighted at its exact place in the extracted text.
"""

import unicodedata
from functools import lru_cache
from typing import FrozenSet, List

import regex

from .models import EMPTY_TEXT, NormalizedText

# Typographic characters folded to their plain ASCII counterparts.
CHARACTERS_TO_NORMALIZE = {
    "‐": "-",  # Hyphen
    "‘": "'",  # Left single quotation mark
    "’": "'",  # Right single quotation mark
    "‚": "'",  # Single low-9 quotation mark
    "‛": "'",  # Single high-reversed-9 quotation mark
    "“": '"',  # Left double quotation mark
    "”": '"',  # Right double quotation mark
    "„": '"',  # Double low-9 quotation mark
    "‟": '"',  # Double high-reversed-9 quotation mark
    "¼": "1/4",  # Vulgar fraction one quarter
    "½": "1/2",  # Vulgar fraction one half
    "¾": "3/4",  # Vulgar fraction three quarters
}

# Combining marks that change the meaning of a word (viramas, Japanese
# voicing marks, ...). They are never ignored, even when diacritics are.
DIACRITICS_EXCEPTION: FrozenSet[str] = frozenset(
    chr(code)
    for code in (
        0x3099, 0x309A,
        0x094D, 0x09CD, 0x0A4D, 0x0ACD, 0x0B4D, 0x0BCD, 0x0C4D, 0x0CCD,
        0x0D3B, 0x0D3C, 0x0D4D, 0x0DCA, 0x0E3A, 0x0EBA, 0x0F84, 0x1039,
        0x103A, 0x1714, 0x1734, 0x17D2, 0x1A60, 0x1B44, 0x1BAA, 0x1BAB,
        0x1BF2, 0x1BF3, 0x2D7F, 0xA806, 0xA82C, 0xA8C4, 0xA953, 0xA9C0,
        0xAAF6, 0xABED,
        0x0C56, 0x0F71, 0x0F72, 0x0F7A, 0x0F7B, 0x0F7C, 0x0F7D, 0x0F80,
        0x0F74,
    )
)

# Japanese voicing marks that may end up alone before a line break.
HK_DIACRITICS = ("\u3099", "\u309a")

CJK_RE = regex.compile("[\\p{Ideographic}\u3040-\u30ff]")

LINE_BREAK = "\n"


def is_diacritic(char: str) -> bool:
    """True for any combining mark (Unicode category M*)."""
    return unicodedata.category(char).startswith("M")


@lru_cache(maxsize=None)
def get_normalize_with_nfkc() -> FrozenSet[str]:
    """
    BMP characters that need compatibility normalization.

    These are left untouched by canonical decomposition (ligatures,
    full-width forms, super/subscripts, ...) but fold to something else
    under NFKC.
    """
    chars = set()
    for code in range(0x80, 0x10000):
        if 0xD800 <= code <= 0xDFFF:
            continue
        char = chr(code)
        if char in CHARACTERS_TO_NORMALIZE or is_diacritic(char):
            continue
        if unicodedata.normalize("NFD", char) != char:
            continue
        if unicodedata.normalize("NFKC", char) != char:
            chars.add(char)
    return frozenset(chars)


@lru_cache(maxsize=8192)
def _replacement(char: str) -> str:
    """Search form of a single character (one or more characters)."""
    replacement = CHARACTERS_TO_NORMALIZE.get(char)
    if replacement is not None:
        return replacement
    if char in get_normalize_with_nfkc():
        return unicodedata.normalize("NFD", unicodedata.normalize("NFKC", char))
    # Canonical decomposition also splits Hangul syllables into jamo.
    return unicodedata.normalize("NFD", char)


def _is_cjk(char: str) -> bool:
    return bool(char) and CJK_RE.match(char) is not None


def _build_diffs(origins: List[int]) -> List[tuple]:
    """Compress per-character origins into (offset, shift) entries."""
    diffs = [(0, 0)]
    shift = 0
    for pos, origin in enumerate(origins):
        delta = origin - pos
        if delta == shift:
            continue
        if pos == 0:
            diffs[0] = (0, delta)
        else:
            diffs.append((pos, delta))
        shift = delta
    return diffs


def _reorder_marks(chars: List[str], origins: List[int]) -> None:
    """
    Put every run of combining marks in canonical order, in place.

    Characters are decomposed one at a time, so marks coming from a
    precomposed letter and marks stored after it in the raw text can be
    out of order. Origins of a run stay ascending so the run still maps
    onto the original characters it came from.
    """
    length = len(chars)
    start = 0
    while start < length:
        if not unicodedata.combining(chars[start]):
            start += 1
            continue
        end = start + 1
        while end < length and unicodedata.combining(chars[end]):
            end += 1
        if end - start > 1:
            chars[start:end] = sorted(chars[start:end], key=unicodedata.combining)
            origins[start:end] = sorted(origins[start:end])
        start = end


def normalize(text: str) -> NormalizedText:
    """
    Normalize extracted page text for searching.

    ``"\\n"`` in ``text`` marks an end of line inserted during extraction.
    Line breaks do not count as original characters: original offsets
    index into ``text`` with every line break removed.

    Args:
        text: Extracted text with line break markers

    Returns:
        NormalizedText with the search text, its diff table and whether
        it contains combining marks
    """
    if not text:
        return EMPTY_TEXT
    if text.isascii() and LINE_BREAK not in text:
        return NormalizedText(text)

    chars: List[str] = []
    origins: List[int] = []
    has_diacritics = False

    origin = 0
    i = 0
    length = len(text)
    while i < length:
        char = text[i]

        if char == LINE_BREAK:
            last = chars[-1] if chars else ""
            # Line breaks after a voicing mark or a CJK character are
            # layout only: the text continues on the next line.
            if last not in HK_DIACRITICS and not _is_cjk(last):
                chars.append(" ")
                origins.append(origin)
            i += 1
            continue

        if (
            char == "-"
            and i > 0
            and i + 1 < length
            and text[i + 1] == LINE_BREAK
            and not text[i - 1].isspace()
        ):
            # Word hyphenated at the end of a line.
            origin += 1
            i += 2
            continue

        for part in _replacement(char):
            chars.append(part)
            origins.append(origin)
            if not has_diacritics and is_diacritic(part):
                has_diacritics = True
        origin += 1
        i += 1

    if has_diacritics:
        _reorder_marks(chars, origins)

    return NormalizedText(
        text="".join(chars),
        diffs=tuple(_build_diffs(origins)),
        has_diacritics=has_diacritics,
    )


def normalize_query(query: str) -> str:
    """Apply the same character folding to a query (text only)."""
    return normalize(query).text


def strip_line_breaks(text: str) -> str:
    """Original-space view of extracted text."""
    return text.replace(LINE_BREAK, "")
