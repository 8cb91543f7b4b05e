"""
Data models for pfind.

This module contains the core data structures shared across the system.
"""

from .search_query import SearchQuery
from .config import ExcludeMode, FinderConfig, OutputMode
from .search_results import EntryKind, ResultRecord

__all__ = [
    'SearchQuery',
    'ExcludeMode',
    'FinderConfig',
    'OutputMode',
    'EntryKind',
    'ResultRecord',
]
