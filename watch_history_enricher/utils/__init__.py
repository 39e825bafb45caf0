"""
Utility functions and helpers.

This module intentionally uses lazy attribute loading to avoid importing heavier
submodules (e.g., pandas) unless they are needed.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ProjectPaths",
    "RateLimiter",
    "RetryPolicy",
    "credential",
    "extract_year_hint",
    "format_episode_label",
    "fuzzy_score",
    "load_credentials",
    "normalize_title",
    "parse_season_episode",
    "parse_sources",
    "pick_best_match",
    "read_csv",
    "strip_year_hint",
    "write_csv",
]


def __getattr__(name: str) -> Any:  # pragma: no cover
    if name == "RetryPolicy":
        from .retry import RetryPolicy

        return RetryPolicy

    if name == "parse_sources":
        from .source_selection import parse_sources

        return parse_sources

    if name in __all__:
        from . import utilities as _u

        return getattr(_u, name)

    raise AttributeError(name)
