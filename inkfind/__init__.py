"""
inkfind: incremental, Unicode-aware search for paginated documents.
"""

__version__ = "0.1.0"
