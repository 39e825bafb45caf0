from __future__ import annotations

import threading
from typing import Any

import requests

from ..config import TVDB
from ..errors import AuthInvalid, Malformed
from ..models import MOVIE, SERIES, MediaIds, ProviderResult
from ..utils.utilities import RateLimiter
from .base import search_terms, select_candidate
from .http_client import ConfiguredHTTPJSONClient, HTTPJSONClient, HTTPRequestDefaults
from .parse import as_str, get_list_of_dicts, id_str, year_from_iso_date

TVDB_API_URL = "https://api4.thetvdb.com/v4"

_REMOTE_SOURCES = {"imdb": "imdb", "themoviedb.com": "tmdb"}


class TVDBClient:
    """Extended TV metadata (TheTVDB v4). Optional: skipped when no API key is configured."""

    name = "tvdb"

    def __init__(self, api_key: str, pin: str = "", min_interval_s: float = TVDB.min_interval_s):
        self._session = requests.Session()
        self.api_key = api_key
        self.pin = pin
        self.stats: dict[str, int] = {
            "lookups": 0,
            "http_login": 0,
            "http_get": 0,
        }
        self.ratelimiter = RateLimiter(min_interval_s=min_interval_s)
        self._base_http = HTTPJSONClient(self._session, stats=self.stats)
        self._http = ConfiguredHTTPJSONClient(
            self._base_http,
            HTTPRequestDefaults(
                ratelimiter=self.ratelimiter,
                counter_key="http_get",
                context_prefix="TVDB",
            ),
        )
        # Token is acquired lazily on first lookup and shared by all worker threads.
        self._token: str | None = None
        self._token_lock = threading.Lock()

    def format_stats(self) -> str:
        return f"lookups={self.stats['lookups']} " + HTTPJSONClient.format_timing(
            self.stats, key="http_get"
        )

    # -------------------------------------------------
    # Auth
    # -------------------------------------------------
    def _ensure_token(self, *, stale: str | None = None) -> str:
        with self._token_lock:
            # Another thread may already have refreshed the stale token.
            if self._token and self._token != stale:
                return self._token
            body: dict[str, str] = {"apikey": self.api_key}
            if self.pin:
                body["pin"] = self.pin
            data = self._http.post_json(
                f"{TVDB_API_URL}/login",
                json_body=body,
                counter_key="http_login",
                context="login",
            )
            payload = data.get("data") if isinstance(data, dict) else None
            token = as_str(payload.get("token")) if isinstance(payload, dict) else ""
            if not token:
                raise Malformed("TVDB: login response without token")
            self._token = token
            return token

    def _get(self, url: str, *, params: dict[str, Any], context: str) -> Any:
        token = self._ensure_token()
        try:
            return self._http.get_json(
                url, params=params, headers={"Authorization": f"Bearer {token}"}, context=context
            )
        except AuthInvalid:
            # Tokens expire after a month; refresh once before treating the key as invalid.
            token = self._ensure_token(stale=token)
            return self._http.get_json(
                url, params=params, headers={"Authorization": f"Bearer {token}"}, context=context
            )

    # -------------------------------------------------
    # Search
    # -------------------------------------------------
    @staticmethod
    def _year_of(item: dict[str, Any]) -> int | None:
        return year_from_iso_date(item.get("year") or item.get("first_air_time"))

    @staticmethod
    def to_result(item: dict[str, Any], *, kind: str) -> ProviderResult:
        tvdb_id = id_str(item.get("tvdb_id") or item.get("id"))
        if tvdb_id is None:
            raise Malformed("TVDB: search item without id")
        # Search ids look like "series-81189"; tvdb_id is the bare number.
        tvdb_id = tvdb_id.rsplit("-", 1)[-1]
        remote: dict[str, str] = {}
        for rid in get_list_of_dicts(item.get("remote_ids")):
            key = _REMOTE_SOURCES.get(as_str(rid.get("sourceName")).casefold())
            value = id_str(rid.get("id"))
            if key and value and key not in remote:
                remote[key] = value
        return ProviderResult(
            provider="tvdb",
            ids=MediaIds(tvdb=tvdb_id, tmdb=remote.get("tmdb"), imdb=remote.get("imdb")),
            canonical_title=as_str(item.get("name")),
            year=TVDBClient._year_of(item),
            kind=kind,
        )

    def lookup(
        self, title: str, kind_hint: str | None, season_episode: str | None
    ) -> ProviderResult:
        self._base_http.bump("lookups")
        query, year_hint = search_terms(title)
        kind = kind_hint or (SERIES if season_episode else MOVIE)
        params: dict[str, Any] = {
            "query": query,
            "type": "series" if kind == SERIES else "movie",
            "limit": TVDB.search_limit,
        }
        if year_hint is not None:
            params["year"] = year_hint
        data = self._get(f"{TVDB_API_URL}/search", params=params, context=f"search q={query!r}")
        if not isinstance(data, dict) or not isinstance(data.get("data", []), list):
            raise Malformed("TVDB: search response without data")
        best = select_candidate(
            provider=self.name,
            query=query,
            candidates=get_list_of_dicts(data.get("data") or []),
            name_key="name",
            year_hint=year_hint,
            year_getter=self._year_of,
        )
        return self.to_result(best, kind=kind)
