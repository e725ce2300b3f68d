"""Incremental multi-cursor search."""

from .engine import SEARCH_COMMAND, SearchEngine
from .matching import Match, find_match, fold_case
from .state import SearchArgs, SearchState

__all__ = [
    "SEARCH_COMMAND",
    "SearchEngine",
    "SearchArgs",
    "SearchState",
    "Match",
    "find_match",
    "fold_case",
]
