from __future__ import annotations

from typing import Any

import requests

from ..config import MAL
from ..errors import Malformed
from ..models import MOVIE, SERIES, MediaIds, ProviderResult
from ..utils.utilities import RateLimiter
from .base import search_terms, select_candidate
from .http_client import ConfiguredHTTPJSONClient, HTTPJSONClient, HTTPRequestDefaults
from .parse import as_str, get_list_of_dicts, id_str, year_from_iso_date

MAL_API_URL = "https://api.myanimelist.net/v2"


class MALClient:
    """Anime database (MyAnimeList API v2, client-id auth). Optional."""

    name = "mal"

    def __init__(self, client_id: str, min_interval_s: float = MAL.min_interval_s):
        self._session = requests.Session()
        self.client_id = client_id
        self.stats: dict[str, int] = {
            "lookups": 0,
            "http_get": 0,
        }
        self.ratelimiter = RateLimiter(min_interval_s=min_interval_s)
        self._base_http = HTTPJSONClient(self._session, stats=self.stats)
        self._http = ConfiguredHTTPJSONClient(
            self._base_http,
            HTTPRequestDefaults(
                ratelimiter=self.ratelimiter,
                headers={"X-MAL-CLIENT-ID": client_id},
                counter_key="http_get",
                context_prefix="MAL",
            ),
        )

    def format_stats(self) -> str:
        return f"lookups={self.stats['lookups']} " + HTTPJSONClient.format_timing(
            self.stats, key="http_get"
        )

    @staticmethod
    def _year_of(item: dict[str, Any]) -> int | None:
        return year_from_iso_date(item.get("start_date"))

    @staticmethod
    def _kind_of(node: dict[str, Any]) -> str:
        return MOVIE if as_str(node.get("media_type")).lower() == "movie" else SERIES

    @staticmethod
    def _candidates(payload: Any) -> list[dict[str, Any]]:
        """One candidate per known title (romaji and English) of every returned node."""
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise Malformed("MAL: anime search response without data")
        out: list[dict[str, Any]] = []
        for wrapper in get_list_of_dicts(payload["data"]):
            node = wrapper.get("node")
            if not isinstance(node, dict):
                continue
            alt = node.get("alternative_titles")
            english = as_str(alt.get("en")) if isinstance(alt, dict) else ""
            for t in (as_str(node.get("title")), english):
                if t:
                    out.append({**node, "_title": t})
        return out

    @staticmethod
    def to_result(node: dict[str, Any]) -> ProviderResult:
        mal_id = id_str(node.get("id"))
        if mal_id is None:
            raise Malformed("MAL: anime node without id")
        return ProviderResult(
            provider="mal",
            ids=MediaIds(mal=mal_id),
            canonical_title=as_str(node.get("title")),
            year=MALClient._year_of(node),
            kind=MALClient._kind_of(node),
        )

    def lookup(
        self, title: str, kind_hint: str | None, season_episode: str | None
    ) -> ProviderResult:
        self._base_http.bump("lookups")
        query, year_hint = search_terms(title)
        data = self._http.get_json(
            f"{MAL_API_URL}/anime",
            params={
                "q": query[:64],
                "limit": MAL.search_limit,
                "fields": "start_date,media_type,alternative_titles",
            },
            context=f"anime q={query!r}",
        )
        candidates = self._candidates(data)
        if kind_hint in (MOVIE, SERIES):
            # A movie node never stands in for a watched episode, nor the reverse.
            candidates = [c for c in candidates if self._kind_of(c) == kind_hint]
        best = select_candidate(
            provider=self.name,
            query=query,
            candidates=candidates,
            name_key="_title",
            year_hint=year_hint,
            year_getter=self._year_of,
        )
        return self.to_result(best)
