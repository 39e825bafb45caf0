from __future__ import annotations


class FakeResp:
    headers: dict[str, str] = {}

    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload


_SEARCH_PAYLOAD = {
    "data": [
        {
            "tvdb_id": "81189",
            "name": "Breaking Bad",
            "year": "2008",
            "remote_ids": [
                {"id": "tt0903747", "sourceName": "IMDB"},
                {"id": "1396", "sourceName": "TheMovieDB.com"},
            ],
        }
    ]
}


def test_tvdb_logs_in_once_and_searches_with_token(monkeypatch):
    from watch_history_enricher.clients.tvdb_client import TVDBClient

    logins: list[dict] = []
    auth_headers: list[str] = []

    def fake_request(_self, method, url, **kwargs):
        if url.endswith("/login"):
            logins.append(kwargs.get("json") or {})
            return FakeResp({"data": {"token": "T1"}})
        auth_headers.append((kwargs.get("headers") or {}).get("Authorization", ""))
        return FakeResp(_SEARCH_PAYLOAD)

    monkeypatch.setattr("requests.sessions.Session.request", fake_request)

    client = TVDBClient(api_key="key", pin="1234", min_interval_s=0.0)
    first = client.lookup("Breaking Bad", "series", "s5e16")
    client.lookup("Breaking Bad", "series", "s5e15")

    assert logins == [{"apikey": "key", "pin": "1234"}]
    assert auth_headers == ["Bearer T1", "Bearer T1"]
    assert first.ids.tvdb == "81189"
    assert first.ids.tmdb == "1396"
    assert first.ids.imdb == "tt0903747"
    assert first.year == 2008


def test_tvdb_refreshes_expired_token_once(monkeypatch):
    from watch_history_enricher.clients.tvdb_client import TVDBClient

    tokens = iter(["OLD", "NEW"])

    def fake_request(_self, method, url, **kwargs):
        if url.endswith("/login"):
            return FakeResp({"data": {"token": next(tokens)}})
        if (kwargs.get("headers") or {}).get("Authorization") == "Bearer OLD":
            return FakeResp(None, status_code=401)
        return FakeResp(_SEARCH_PAYLOAD)

    monkeypatch.setattr("requests.sessions.Session.request", fake_request)

    client = TVDBClient(api_key="key", min_interval_s=0.0)
    result = client.lookup("Breaking Bad", "series", None)
    assert result.ids.tvdb == "81189"
    assert client.stats["http_login"] == 2


def test_tvdb_search_ids_drop_type_prefix():
    from watch_history_enricher.clients.tvdb_client import TVDBClient

    result = TVDBClient.to_result({"id": "series-81189", "name": "Breaking Bad"}, kind="series")
    assert result.ids.tvdb == "81189"
    assert result.ids.tmdb is None
