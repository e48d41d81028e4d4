"""
Document access for the search subsystem.
"""
from .navigation import PageNavigator
from .text_provider import PyMuPDFTextProvider

__all__ = ['PageNavigator', 'PyMuPDFTextProvider']
