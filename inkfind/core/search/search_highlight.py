from typing import List, Tuple

from .find_controller import FindController


class SearchHighlight:
    """Helper class for text layers painting search matches."""

    @staticmethod
    def get_highlights_for_page(
        controller: FindController, page_index: int
    ) -> Tuple[List[Tuple[int, int]], int]:
        """
        Get search highlights for a specific page.

        Args:
            controller: The find controller holding the matches
            page_index: Page to get highlights for

        Returns:
            Tuple of (list of (offset, length) spans in the page's original
            text, index of the selected match on this page or -1)
        """
        if not controller.highlight_matches:
            return [], -1

        selected = controller.selected
        request = controller.request
        highlight_all = request is not None and request.highlight_all

        spans = []
        current_idx_on_page = -1

        for i, result in enumerate(controller.page_matches(page_index)):
            is_selected = selected.page_idx == page_index and selected.match_idx == i
            if not highlight_all and not is_selected:
                continue

            spans.append((result.offset, result.length))

            # Check if this is the current result
            if is_selected:
                current_idx_on_page = len(spans) - 1

        return spans, current_idx_on_page

    @staticmethod
    def get_highlighted_text(
        controller: FindController, page_index: int
    ) -> List[str]:
        """Original text of each highlighted span, for tooltips and tests."""
        text = controller.index.original_text(page_index)
        spans, _ = SearchHighlight.get_highlights_for_page(controller, page_index)
        return [text[offset : offset + length] for offset, length in spans]
