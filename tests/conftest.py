"""Test configuration: importable project modules and shared fakes."""

import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
ROOT_PATH = str(ROOT_DIR)

if ROOT_PATH not in sys.path:
    sys.path.insert(0, ROOT_PATH)

from PyQt5.QtCore import QCoreApplication  # noqa: E402

from inkfind.config import SearchConfig  # noqa: E402
from inkfind.core.search import FindController, FindEventBus  # noqa: E402
from inkfind.core.search.errors import ExtractionFailure  # noqa: E402


class ManualCall:
    def __init__(self, due, seq, callback):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by the test instead of an event loop."""

    def __init__(self):
        self.now = 0
        self._seq = 0
        self._calls = []

    def schedule(self, delay_ms, callback):
        self._seq += 1
        call = ManualCall(self.now + delay_ms, self._seq, callback)
        self._calls.append(call)
        return call

    @property
    def pending(self):
        return [c for c in self._calls if not c.cancelled]

    def run_next(self):
        """Run the earliest pending call, moving time forward if needed."""
        pending = self.pending
        if not pending:
            return False
        call = min(pending, key=lambda c: (c.due, c.seq))
        self._calls.remove(call)
        self.now = max(self.now, call.due)
        call.callback()
        return True

    def advance(self, ms):
        """Move time forward by ``ms``, running everything that becomes due."""
        target = self.now + ms
        while True:
            ready = [c for c in self.pending if c.due <= target]
            if not ready:
                break
            call = min(ready, key=lambda c: (c.due, c.seq))
            self._calls.remove(call)
            self.now = max(self.now, call.due)
            call.callback()
        self.now = target
        self._calls = self.pending


class FakeNavigation:
    def __init__(self, page_count, current=0):
        self.page_count = page_count
        self.current_page_index = current
        self.visible = {current}
        self.visited = []

    def is_page_visible(self, page_index):
        return page_index in self.visible

    def go_to_page(self, page_index):
        self.current_page_index = page_index
        self.visible = {page_index}
        self.visited.append(page_index)


class FakeTextProvider:
    """Pages given as strings; ``"\\n"`` separates lines."""

    def __init__(self, pages, failing=()):
        self.pages = list(pages)
        self.failing = set(failing)
        self.requests = []

    @property
    def page_count(self):
        return len(self.pages)

    def get_page_text(self, page_index):
        self.requests.append(page_index)
        if page_index in self.failing:
            raise ExtractionFailure(page_index, "broken content stream")
        lines = self.pages[page_index].split("\n")
        items = [(line, True) for line in lines[:-1]]
        items.append((lines[-1], False))
        return items


class BusRecorder:
    def __init__(self, bus):
        self.states = []
        self.counts = []
        self.updated = []
        bus.result_state_changed.connect(self.states.append)
        bus.matches_count_updated.connect(self.counts.append)
        bus.matches_updated.connect(self.updated.append)

    @property
    def last_state(self):
        return self.states[-1] if self.states else None


class ComputeSpy:
    """Records every per-page match computation of a controller."""

    def __init__(self, controller, monkeypatch):
        self.calls = []
        original = controller.index.compute

        def compute(page_index, query, options):
            self.calls.append((page_index, query))
            return original(page_index, query, options)

        monkeypatch.setattr(controller.index, "compute", compute)


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def make_controller(scheduler):
    """Build a controller over string pages; returns a small namespace."""

    class Harness:
        pass

    def factory(pages, current=0, failing=(), with_document=True, **config):
        harness = Harness()
        harness.scheduler = scheduler
        harness.navigation = FakeNavigation(len(pages), current)
        harness.bus = FindEventBus()
        harness.recorder = BusRecorder(harness.bus)
        harness.provider = FakeTextProvider(pages, failing)
        harness.controller = FindController(
            harness.navigation,
            harness.bus,
            scheduler=scheduler,
            config=SearchConfig(**config),
        )
        if with_document:
            harness.controller.set_document(harness.provider)
        return harness

    return factory
