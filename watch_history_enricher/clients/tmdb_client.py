from __future__ import annotations

import logging
from typing import Any

import requests

from ..config import TMDB
from ..errors import Malformed, NotFound
from ..models import MOVIE, SERIES, MediaIds, ProviderResult
from ..utils.utilities import RateLimiter
from .base import search_terms, select_candidate
from .http_client import ConfiguredHTTPJSONClient, HTTPJSONClient, HTTPRequestDefaults
from .parse import as_str, get_list_of_dicts, id_str, year_from_iso_date

TMDB_API_URL = "https://api.themoviedb.org/3"


class TMDBClient:
    """
    Movie/TV database. Accepts either a v3 API key (sent as a query param) or a v4 read
    access token (a JWT, sent as a bearer header).
    """

    name = "tmdb"

    def __init__(self, api_key: str, min_interval_s: float = TMDB.min_interval_s):
        self._session = requests.Session()
        self.api_key = api_key
        self.stats: dict[str, int] = {
            "lookups": 0,
            "external_ids_misses": 0,
            "http_get": 0,
        }
        self._bearer = api_key.count(".") == 2
        headers = {"Accept": "application/json"}
        if self._bearer:
            headers["Authorization"] = f"Bearer {api_key}"
        self.ratelimiter = RateLimiter(min_interval_s=min_interval_s)
        self._base_http = HTTPJSONClient(self._session, stats=self.stats)
        self._http = ConfiguredHTTPJSONClient(
            self._base_http,
            HTTPRequestDefaults(
                ratelimiter=self.ratelimiter,
                headers=headers,
                counter_key="http_get",
                context_prefix="TMDB",
            ),
        )

    def format_stats(self) -> str:
        return f"lookups={self.stats['lookups']} " + HTTPJSONClient.format_timing(
            self.stats, key="http_get"
        )

    def _params(self, **extra: Any) -> dict[str, Any]:
        params = {k: v for k, v in extra.items() if v is not None}
        if not self._bearer:
            params["api_key"] = self.api_key
        return params

    @staticmethod
    def _title_of(item: dict[str, Any]) -> str:
        return as_str(item.get("title")) or as_str(item.get("name"))

    @staticmethod
    def _year_of(item: dict[str, Any]) -> int | None:
        return year_from_iso_date(item.get("release_date") or item.get("first_air_date"))

    def _search(self, query: str, kind: str, year_hint: int | None) -> list[dict[str, Any]]:
        if kind == SERIES:
            endpoint = "search/tv"
            params = self._params(query=query, include_adult="false", first_air_date_year=year_hint)
        else:
            endpoint = "search/movie"
            params = self._params(query=query, include_adult="false", year=year_hint)
        data = self._http.get_json(
            f"{TMDB_API_URL}/{endpoint}", params=params, context=f"{endpoint} q={query!r}"
        )
        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise Malformed(f"TMDB: {endpoint} response without results")
        out = []
        for item in get_list_of_dicts(data["results"]):
            # Normalize so candidate selection reads one key for movies and shows.
            out.append({**item, "_title": self._title_of(item)})
        return out

    def _external_ids(self, tmdb_id: str, kind: str) -> dict[str, Any]:
        path = f"tv/{tmdb_id}/external_ids" if kind == SERIES else f"movie/{tmdb_id}/external_ids"
        try:
            data = self._http.get_json(
                f"{TMDB_API_URL}/{path}", params=self._params(), context=path
            )
        except NotFound:
            self._base_http.bump("external_ids_misses")
            logging.debug(f"[TMDB] No external ids for {path}")
            return {}
        return data if isinstance(data, dict) else {}

    def to_result(self, item: dict[str, Any], *, kind: str, external: dict[str, Any]) -> ProviderResult:
        tmdb_id = id_str(item.get("id"))
        if tmdb_id is None:
            raise Malformed("TMDB: search item without id")
        return ProviderResult(
            provider="tmdb",
            ids=MediaIds(
                tmdb=tmdb_id,
                tvdb=id_str(external.get("tvdb_id")),
                imdb=id_str(external.get("imdb_id")),
            ),
            canonical_title=self._title_of(item),
            year=self._year_of(item),
            kind=kind,
        )

    def lookup(
        self, title: str, kind_hint: str | None, season_episode: str | None
    ) -> ProviderResult:
        self._base_http.bump("lookups")
        query, year_hint = search_terms(title)
        kind = kind_hint or (SERIES if season_episode else MOVIE)
        best = select_candidate(
            provider=self.name,
            query=query,
            candidates=self._search(query, kind, year_hint),
            name_key="_title",
            year_hint=year_hint,
            year_getter=self._year_of,
        )
        external = self._external_ids(str(best["id"]), kind) if best.get("id") is not None else {}
        return self.to_result(best, kind=kind, external=external)
