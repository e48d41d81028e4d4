"""
Core logic of the inkfind search subsystem.
"""
from .document import PageNavigator, PyMuPDFTextProvider
from .search import FindController, FindEventBus, FindRequest, FindState

__all__ = [
    "FindController",
    "FindEventBus",
    "FindRequest",
    "FindState",
    "PageNavigator",
    "PyMuPDFTextProvider",
]
