import logging

import pytest

from conftest import ComputeSpy, FakeTextProvider
from inkfind.core.search import (
    ALL_PAGES,
    FindOperation,
    FindRequest,
    FindState,
    MatchesCount,
    SearchHighlight,
)
from inkfind.core.search.errors import ConcurrentResumeError, InvariantViolation
from inkfind.core.search.models import Selection

NEEDLE_PAGES = ["alpha needle", "beta needle", "gamma needle"]


def again(query="needle", **kwargs):
    return FindRequest(query=query, operation=FindOperation.AGAIN, **kwargs)


@pytest.fixture
def searched(make_controller):
    """Three pages with one match each, first search already run."""
    harness = make_controller(NEEDLE_PAGES)
    harness.controller.find(FindRequest(query="needle"))
    harness.scheduler.advance(250)
    return harness


class TestFindNext:
    def test_first_match_after_timeout(self, searched):
        controller = searched.controller
        recorder = searched.recorder

        assert controller.state is FindState.FOUND
        assert controller.selected == Selection(0, 0)
        assert recorder.states[0].state is FindState.PENDING
        assert recorder.last_state.state is FindState.FOUND
        assert recorder.last_state.matches_count == MatchesCount(1, 1)
        assert recorder.last_state.raw_query == "needle"
        # Counts keep coming while later pages are searched
        assert recorder.counts[-1] == MatchesCount(1, 3)
        assert controller.matches_count == MatchesCount(1, 3)

    def test_again_walks_pages_and_wraps(self, searched):
        controller = searched.controller
        recorder = searched.recorder

        controller.find(again())
        assert controller.selected == Selection(1, 0)
        assert recorder.last_state.matches_count == MatchesCount(2, 3)

        controller.find(again())
        assert controller.selected == Selection(2, 0)
        assert recorder.last_state.state is FindState.FOUND

        controller.find(again())
        assert controller.selected == Selection(0, 0)
        assert recorder.last_state.state is FindState.WRAPPED
        assert recorder.last_state.matches_count == MatchesCount(1, 3)
        assert controller.state is FindState.WRAPPED

        assert searched.navigation.visited == [0, 1, 2, 0]

    def test_find_previous_wraps_backwards(self, searched):
        controller = searched.controller

        controller.find(again(find_previous=True))
        result = searched.recorder.last_state
        assert controller.selected == Selection(2, 0)
        assert result.state is FindState.WRAPPED
        assert result.previous is True
        assert result.matches_count == MatchesCount(3, 3)

    def test_again_steps_through_matches_of_one_page(self, make_controller):
        harness = make_controller(["needle needle", "needle"])
        controller = harness.controller
        controller.find(FindRequest(query="needle"))
        harness.scheduler.advance(250)

        controller.find(again())
        assert controller.selected == Selection(0, 1)
        controller.find(again(find_previous=True))
        assert controller.selected == Selection(0, 0)

    def test_again_is_handled_without_delay(self, searched):
        pending_before = len(searched.scheduler.pending)
        searched.controller.find(again())
        assert searched.controller.selected == Selection(1, 0)
        assert len(searched.scheduler.pending) == pending_before

    def test_no_match(self, make_controller):
        harness = make_controller(["alpha", "beta"])
        harness.controller.find(FindRequest(query="needle"))
        harness.scheduler.advance(250)

        result = harness.recorder.last_state
        assert result.state is FindState.NOT_FOUND
        assert result.matches_count == MatchesCount(0, 0)
        assert harness.controller.selected.is_empty
        assert harness.navigation.visited == []

    def test_empty_query_is_found_without_matches(self, make_controller):
        harness = make_controller(NEEDLE_PAGES)
        harness.controller.find(FindRequest(query=""))
        harness.scheduler.advance(250)

        assert harness.recorder.last_state.state is FindState.FOUND
        assert harness.recorder.last_state.matches_count == MatchesCount(0, 0)
        assert SearchHighlight.get_highlights_for_page(harness.controller, 0) == ([], -1)

    def test_document_without_pages(self, make_controller):
        harness = make_controller([])
        harness.controller.find(FindRequest(query="needle"))
        harness.scheduler.advance(250)
        assert harness.recorder.last_state.state is FindState.NOT_FOUND


class TestDebounce:
    def test_typing_restarts_the_timer(self, make_controller, monkeypatch):
        harness = make_controller(["one two", "two", "one"])
        spy = ComputeSpy(harness.controller, monkeypatch)

        harness.controller.find(FindRequest(query="one"))
        harness.scheduler.advance(100)
        harness.controller.find(FindRequest(query="two"))
        harness.scheduler.advance(200)
        assert spy.calls == []

        harness.scheduler.advance(100)
        assert spy.calls == [(0, "two"), (1, "two"), (2, "two")]
        assert harness.controller.selected == Selection(0, 0)

    def test_configured_timeout(self, make_controller):
        harness = make_controller(NEEDLE_PAGES, find_timeout_ms=50)
        harness.controller.find(FindRequest(query="needle"))
        harness.scheduler.advance(50)
        assert harness.controller.state is FindState.FOUND


class TestHighlightAll:
    def test_only_selected_match_without_highlight_all(self, searched):
        controller = searched.controller
        assert SearchHighlight.get_highlights_for_page(controller, 0) == ([(6, 6)], 0)
        assert SearchHighlight.get_highlights_for_page(controller, 1) == ([], -1)

    def test_highlight_all_change_repaints_without_searching(self, searched, monkeypatch):
        spy = ComputeSpy(searched.controller, monkeypatch)
        searched.recorder.updated.clear()
        states_before = len(searched.recorder.states)

        searched.controller.find(FindRequest(
            query="needle",
            operation=FindOperation.HIGHLIGHT_ALL_CHANGE,
            highlight_all=True,
        ))

        assert spy.calls == []
        assert searched.recorder.updated == [ALL_PAGES]
        assert len(searched.recorder.states) == states_before
        assert SearchHighlight.get_highlights_for_page(searched.controller, 1) == ([(5, 6)], -1)
        assert SearchHighlight.get_highlighted_text(searched.controller, 2) == ["needle"]

    def test_every_match_is_returned_with_current_index(self, make_controller):
        harness = make_controller(["needle and needle"])
        controller = harness.controller
        controller.find(FindRequest(query="needle", highlight_all=True))
        harness.scheduler.advance(250)
        assert SearchHighlight.get_highlights_for_page(controller, 0) == (
            [(0, 6), (11, 6)], 0,
        )

        controller.find(again(highlight_all=True))
        spans, current = SearchHighlight.get_highlights_for_page(controller, 0)
        assert current == 1
        assert SearchHighlight.get_highlighted_text(controller, 0) == ["needle", "needle"]


class TestFindBar:
    def test_close_hides_highlights_and_keeps_matches(self, searched):
        controller = searched.controller
        searched.controller.close_find_bar()

        assert controller.highlight_matches is False
        assert SearchHighlight.get_highlights_for_page(controller, 0) == ([], -1)
        assert len(controller.page_matches(0)) == 1
        assert searched.recorder.last_state.state is FindState.FOUND
        assert searched.recorder.updated[-1] == ALL_PAGES

    def test_close_cancels_pending_search(self, make_controller, monkeypatch):
        harness = make_controller(NEEDLE_PAGES)
        spy = ComputeSpy(harness.controller, monkeypatch)

        harness.controller.find(FindRequest(query="needle"))
        harness.scheduler.advance(100)
        harness.bus.close_find_bar()
        harness.scheduler.advance(500)

        assert spy.calls == []

    def test_reopen_continues_from_selection(self, searched):
        controller = searched.controller
        controller.close_find_bar()
        controller.find(again())
        assert controller.highlight_matches is True
        assert controller.selected == Selection(1, 0)

    def test_requests_arrive_through_the_bus(self, make_controller):
        harness = make_controller(NEEDLE_PAGES)
        harness.bus.request_find(FindRequest(query="needle"))
        harness.scheduler.advance(250)
        assert harness.controller.selected == Selection(0, 0)


class TestDirtyMatch:
    def test_again_from_elsewhere_starts_at_current_page(self, searched):
        navigation = searched.navigation
        navigation.current_page_index = 2
        navigation.visible = {2}

        searched.controller.find(again())
        assert searched.controller.selected.is_empty

        # Matches were cleared; they are recomputed on the next pass
        searched.scheduler.advance(0)
        assert searched.controller.selected == Selection(2, 0)
        assert searched.recorder.last_state.matches_count == MatchesCount(3, 3)

    def test_again_with_selection_on_screen_is_not_dirty(self, searched, monkeypatch):
        spy = ComputeSpy(searched.controller, monkeypatch)
        searched.navigation.visible = {0, 1}
        searched.navigation.current_page_index = 1

        searched.controller.find(again())
        assert spy.calls == []
        assert searched.controller.selected == Selection(1, 0)

    def test_changed_options_recompute(self, searched, monkeypatch):
        spy = ComputeSpy(searched.controller, monkeypatch)
        searched.controller.find(FindRequest(query="needle", case_sensitive=True))
        searched.scheduler.advance(250)
        assert [page for page, _ in spy.calls] == [0, 1, 2]

    def test_phrase_list_change_is_dirty(self, searched, monkeypatch):
        spy = ComputeSpy(searched.controller, monkeypatch)
        searched.controller.find(again(query=["needle", "gamma"]))
        searched.scheduler.advance(0)
        assert spy.calls[0] == (0, ("needle", "gamma"))


class TestDocument:
    def test_request_before_document_is_replayed(self, make_controller):
        harness = make_controller(NEEDLE_PAGES, with_document=False)
        harness.controller.find(FindRequest(query="needle"))
        assert harness.scheduler.pending == []
        assert harness.provider.requests == []

        harness.controller.set_document(harness.provider)
        harness.scheduler.advance(250)
        assert harness.controller.selected == Selection(0, 0)

    def test_switching_document_drops_state(self, make_controller):
        harness = make_controller(NEEDLE_PAGES)
        controller = harness.controller
        controller.find(FindRequest(query="needle"))
        harness.scheduler.run_next()
        assert harness.provider.requests == [0]

        controller.set_document(FakeTextProvider(["other"]))
        assert harness.scheduler.pending == []
        assert controller.request is None
        assert controller.page_matches(0) == []
        assert controller.page_state(0) is FindState.IDLE
        assert harness.provider.requests == [0]

    def test_stale_extraction_is_ignored(self, make_controller):
        harness = make_controller(NEEDLE_PAGES)
        controller = harness.controller
        old_provider = harness.provider
        controller.find(FindRequest(query="needle"))

        new_provider = FakeTextProvider(["fresh"])
        controller.set_document(new_provider)
        controller._extract_page_text(old_provider, 0)
        assert not controller.index.is_extracted(0)


class TestExtraction:
    def test_pages_are_extracted_one_at_a_time(self, make_controller):
        harness = make_controller(NEEDLE_PAGES)
        controller = harness.controller
        assert controller.page_state(0) is FindState.IDLE

        controller.find(FindRequest(query="needle"))
        assert controller.page_state(0) is FindState.EXTRACTING

        harness.scheduler.run_next()
        assert harness.provider.requests == [0]
        assert controller.page_state(0) is FindState.PENDING
        assert controller.page_state(1) is FindState.EXTRACTING

        harness.scheduler.run_next()
        assert harness.provider.requests == [0, 1]
        assert not controller.extraction_complete

        harness.scheduler.run_next()
        assert controller.extraction_complete

    def test_failed_page_counts_as_empty(self, make_controller, caplog):
        harness = make_controller(
            ["needle", "broken", "needle"], failing={1}
        )
        controller = harness.controller
        with caplog.at_level(logging.ERROR):
            controller.find(FindRequest(query="needle"))
            harness.scheduler.advance(250)

        assert "page 2" in caplog.text
        assert controller.page_state(1) is FindState.NOT_FOUND
        assert controller.page_state(2) is FindState.FOUND
        assert controller.matches_count == MatchesCount(1, 2)

        controller.find(again())
        assert controller.selected == Selection(2, 0)


class TestProgressReporting:
    def test_results_published_once_all_pages_are_searched(self, make_controller):
        harness = make_controller(
            ["needle", "x", "needle"], update_matches_count_on_progress=False
        )
        harness.controller.find(FindRequest(query="needle"))
        harness.scheduler.advance(250)

        assert harness.recorder.states == []
        assert harness.recorder.counts == [MatchesCount(1, 2)]

        harness.controller.find(again())
        assert len(harness.recorder.states) == 1
        assert harness.recorder.last_state.state is FindState.FOUND
        assert harness.recorder.last_state.matches_count == MatchesCount(2, 2)


class TestErrors:
    def test_query_needs_a_request(self, make_controller):
        controller = make_controller(NEEDLE_PAGES).controller
        with pytest.raises(InvariantViolation):
            controller._query

    def test_second_resume_page_is_rejected(self, make_controller):
        controller = make_controller(NEEDLE_PAGES).controller
        controller._resume_page_idx = 1
        with pytest.raises(ConcurrentResumeError) as excinfo:
            controller._next_page_match()
        assert excinfo.value.pending_page == 1

    def test_invariant_violation_aborts_only_the_operation(self, make_controller, caplog):
        controller = make_controller(NEEDLE_PAGES).controller
        controller._resume_page_idx = 1
        with caplog.at_level(logging.ERROR):
            controller._run_guarded(controller._next_page_match)

        assert "Find operation aborted" in caplog.text
        assert controller._resume_page_idx is None
        assert controller._dirty_match is True

    def test_removed_phrase_search_parameter(self, make_controller, caplog):
        harness = make_controller(["bar and foo"])
        with caplog.at_level(logging.ERROR):
            harness.controller.find(FindRequest(query="foo bar", phrase_search=False))
        assert "phrase_search" in caplog.text
        assert harness.controller.request.query == ["foo", "bar"]

        harness.scheduler.advance(250)
        assert len(harness.controller.page_matches(0)) == 2

    def test_none_request_is_ignored(self, make_controller):
        harness = make_controller(NEEDLE_PAGES)
        harness.controller.find(None)
        assert harness.recorder.states == []
        assert harness.controller.request is None
