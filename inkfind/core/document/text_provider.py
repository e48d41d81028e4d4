"""
Page text extraction for the search subsystem.
"""

from typing import List, Optional, Tuple

import fitz  # PyMuPDF

from inkfind.core.search.errors import ExtractionFailure
from inkfind.utils.logger import get_logger

logger = get_logger(__name__)


class PyMuPDFTextProvider:
    """
    Extracts page text from a PyMuPDF document as (text, end of line) items.

    One item is produced per span; the last span of every line carries the
    end-of-line flag so the normalizer can join hyphenated words and turn
    other line breaks into spaces.
    """

    # Keep ligatures and whitespace as they are in the file: the normalizer
    # folds them, and highlight offsets must match the text layer.
    TEXT_FLAGS = fitz.TEXT_PRESERVE_WHITESPACE | fitz.TEXT_PRESERVE_LIGATURES

    def __init__(self, doc: fitz.Document):
        self.doc = doc

    @classmethod
    def open(cls, file_path: str) -> "PyMuPDFTextProvider":
        return cls(fitz.open(file_path))

    @property
    def page_count(self) -> int:
        return self.doc.page_count

    def close(self) -> None:
        if self.doc is not None:
            self.doc.close()
            self.doc = None

    def get_page_text(self, page_index: int) -> List[Tuple[str, bool]]:
        """
        Extract the text items of a page.

        Args:
            page_index: 0-based page index

        Returns:
            List of (text, end_of_line) tuples in reading order

        Raises:
            ExtractionFailure: If the page cannot be loaded or read
        """
        try:
            page = self.doc.load_page(page_index)
            text_dict = page.get_text("dict", flags=self.TEXT_FLAGS)
        except Exception as e:
            raise ExtractionFailure(page_index, str(e)) from e

        items: List[Tuple[str, bool]] = []
        for block_data in text_dict.get("blocks", []):
            # Skip image blocks
            if block_data.get("type") != 0:
                continue

            for line_data in block_data.get("lines", []):
                spans = [
                    span.get("text", "")
                    for span in line_data.get("spans", [])
                    if span.get("text")
                ]
                if not spans:
                    continue
                for span_text in spans[:-1]:
                    items.append((span_text, False))
                items.append((spans[-1], True))

        logger.debug("Page %d: %d text items", page_index + 1, len(items))
        return items

    def get_page_string(self, page_index: int) -> Optional[str]:
        """Page text without line markers, as used for highlight offsets."""
        try:
            return "".join(text for text, _ in self.get_page_text(page_index))
        except ExtractionFailure:
            return None
