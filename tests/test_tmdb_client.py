from __future__ import annotations


class FakeResp:
    headers: dict[str, str] = {}

    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload


def test_tmdb_movie_lookup_fetches_external_ids(monkeypatch):
    from watch_history_enricher.clients.tmdb_client import TMDBClient

    calls: list[tuple[str, dict]] = []

    def fake_request(_self, method, url, **kwargs):
        calls.append((url, kwargs.get("params") or {}))
        if url.endswith("/search/movie"):
            return FakeResp(
                {"results": [{"id": 438631, "title": "Dune", "release_date": "2021-09-15"}]}
            )
        if url.endswith("/movie/438631/external_ids"):
            return FakeResp({"imdb_id": "tt1160419", "tvdb_id": None})
        raise AssertionError(f"unexpected url {url}")

    monkeypatch.setattr("requests.sessions.Session.request", fake_request)

    result = TMDBClient(api_key="v3key", min_interval_s=0.0).lookup("Dune", None, None)

    assert result.provider == "tmdb"
    assert result.ids.tmdb == "438631"
    assert result.ids.imdb == "tt1160419"
    assert result.ids.tvdb is None
    assert result.year == 2021
    assert result.kind == "movie"
    assert calls[0][1]["api_key"] == "v3key"
    assert calls[0][1]["query"] == "Dune"


def test_tmdb_series_lookup_tolerates_missing_external_ids(monkeypatch):
    from watch_history_enricher.clients.tmdb_client import TMDBClient

    seen_headers: list[dict] = []

    def fake_request(_self, method, url, **kwargs):
        seen_headers.append(kwargs.get("headers") or {})
        assert "api_key" not in (kwargs.get("params") or {})
        if url.endswith("/search/tv"):
            return FakeResp(
                {"results": [{"id": 95396, "name": "Severance", "first_air_date": "2022-02-18"}]}
            )
        return FakeResp(None, status_code=404)

    monkeypatch.setattr("requests.sessions.Session.request", fake_request)

    client = TMDBClient(api_key="aaa.bbb.ccc", min_interval_s=0.0)
    result = client.lookup("Severance", "series", "s1e1")

    assert result.ids.tmdb == "95396"
    assert result.canonical_title == "Severance"
    assert result.kind == "series"
    assert client.stats["external_ids_misses"] == 1
    assert seen_headers[0]["Authorization"] == "Bearer aaa.bbb.ccc"
