from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

from ..config import MATCHING
from ..errors import NotFound
from ..models import ProviderResult
from ..utils.utilities import extract_year_hint, pick_best_match, strip_year_hint


class MetadataProvider(Protocol):
    """
    Uniform lookup capability over one metadata source.

    Implementations raise only `errors.ProviderError` subclasses.
    """

    name: str

    def lookup(
        self, title: str, kind_hint: str | None, season_episode: str | None
    ) -> ProviderResult:
        ...


def search_terms(title: str) -> tuple[str, int | None]:
    """
    Split a scraped title into (query, year_hint).

    "Dune (2021)" -> ("Dune", 2021). Bare years inside titles ("Blade Runner 2049") stay in the
    query and do not count as a hint.
    """
    query = strip_year_hint(title)
    year_hint = extract_year_hint(title) if query != str(title or "").strip() else None
    return query, year_hint


def select_candidate(
    *,
    provider: str,
    query: str,
    candidates: list[dict[str, Any]],
    name_key: str,
    year_hint: int | None,
    year_getter: Callable[[dict[str, Any]], int | None],
    min_score: int = MATCHING.min_score,
) -> dict[str, Any]:
    """
    Pick the best search candidate or raise `NotFound` when nothing scores high enough.
    """
    if not candidates:
        raise NotFound(f"{provider}: no results for {query!r}")
    best, score = pick_best_match(
        query, candidates, name_key=name_key, year_hint=year_hint, year_getter=year_getter
    )
    if best is None or score < min_score:
        logging.debug(
            f"[{provider.upper()}] No confident match for '{query}' "
            f"(best={best.get(name_key) if best else None!r} score={score})"
        )
        raise NotFound(f"{provider}: no confident match for {query!r} (score={score})")
    return best
