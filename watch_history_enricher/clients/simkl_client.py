from __future__ import annotations

from typing import Any

import requests

from ..config import SIMKL
from ..errors import Malformed, NotFound
from ..models import MOVIE, SERIES, MediaIds, ProviderResult
from ..utils.utilities import RateLimiter
from .base import search_terms, select_candidate
from .http_client import ConfiguredHTTPJSONClient, HTTPJSONClient, HTTPRequestDefaults
from .parse import as_str, get_list_of_dicts, id_str, year_from_iso_date

SIMKL_API_URL = "https://api.simkl.com"

# Simkl keeps anime in its own catalog; series lookups fall back to it.
_SEARCH_TYPES = {MOVIE: ("movie",), SERIES: ("tv", "anime")}


class SimklClient:
    """Primary catalog: the Simkl id is the identifier of record for exported rows."""

    name = "simkl"

    def __init__(
        self,
        client_id: str,
        access_token: str = "",
        min_interval_s: float = SIMKL.min_interval_s,
    ):
        self._session = requests.Session()
        self.client_id = client_id
        self.stats: dict[str, int] = {
            "lookups": 0,
            # HTTP request counters (attempts, including retries).
            "http_get": 0,
        }
        headers = {"simkl-api-key": client_id, "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self.ratelimiter = RateLimiter(min_interval_s=min_interval_s)
        self._base_http = HTTPJSONClient(self._session, stats=self.stats)
        self._http = ConfiguredHTTPJSONClient(
            self._base_http,
            HTTPRequestDefaults(
                ratelimiter=self.ratelimiter,
                headers=headers,
                counter_key="http_get",
                context_prefix="SIMKL",
            ),
        )

    def format_stats(self) -> str:
        return f"lookups={self.stats['lookups']} " + HTTPJSONClient.format_timing(
            self.stats, key="http_get"
        )

    def _search(self, query: str, search_type: str, year_hint: int | None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "q": query,
            "extended": "full",
            "limit": SIMKL.search_limit,
            "client_id": self.client_id,
        }
        if year_hint is not None:
            params["year"] = year_hint
        try:
            data = self._http.get_json(
                f"{SIMKL_API_URL}/search/{search_type}",
                params=params,
                context=f"search/{search_type} q={query!r}",
            )
        except NotFound:
            return []
        if data is None:
            return []
        if not isinstance(data, list):
            raise Malformed(f"SIMKL: search/{search_type} returned {type(data).__name__}")
        return get_list_of_dicts(data)

    @staticmethod
    def _year_of(item: dict[str, Any]) -> int | None:
        return year_from_iso_date(item.get("year"))

    @staticmethod
    def to_result(item: dict[str, Any], *, kind: str) -> ProviderResult:
        ids = item.get("ids")
        if not isinstance(ids, dict):
            raise Malformed("SIMKL: search item without ids")
        simkl_id = id_str(ids.get("simkl_id", ids.get("simkl")))
        if simkl_id is None:
            raise Malformed("SIMKL: search item without a simkl id")
        return ProviderResult(
            provider="simkl",
            ids=MediaIds(
                simkl=simkl_id,
                tmdb=id_str(ids.get("tmdb")),
                tvdb=id_str(ids.get("tvdb")),
                mal=id_str(ids.get("mal")),
                imdb=id_str(ids.get("imdb")),
            ),
            canonical_title=as_str(item.get("title")),
            year=SimklClient._year_of(item),
            kind=kind,
        )

    def lookup(
        self, title: str, kind_hint: str | None, season_episode: str | None
    ) -> ProviderResult:
        self._base_http.bump("lookups")
        query, year_hint = search_terms(title)
        kind = kind_hint or (SERIES if season_episode else MOVIE)
        for search_type in _SEARCH_TYPES[kind]:
            candidates = self._search(query, search_type, year_hint)
            try:
                best = select_candidate(
                    provider=self.name,
                    query=query,
                    candidates=candidates,
                    name_key="title",
                    year_hint=year_hint,
                    year_getter=self._year_of,
                )
            except NotFound:
                continue
            return self.to_result(best, kind=kind)
        raise NotFound(f"SIMKL: no match for {query!r} ({kind})")
