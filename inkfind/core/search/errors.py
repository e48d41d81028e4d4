"""
Exceptions raised by the search subsystem.
"""


class FindError(Exception):
    """Base class for search errors."""


class ExtractionFailure(FindError):
    """Text of a page could not be extracted."""

    def __init__(self, page_index: int, reason: str = ""):
        self.page_index = page_index
        self.reason = reason
        message = f"Unable to get text content for page {page_index + 1}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvariantViolation(FindError):
    """Internal state of the find controller is inconsistent."""


class ConcurrentResumeError(InvariantViolation):
    """Navigation tried to wait on a second page while one is outstanding."""

    def __init__(self, pending_page: int, requested_page: int):
        self.pending_page = pending_page
        self.requested_page = requested_page
        super().__init__(
            f"There can only be one pending page (waiting on page "
            f"{pending_page + 1}, requested page {requested_page + 1})"
        )


class MalformedQuery(FindError):
    """A find request used a removed or invalid parameter."""
