from __future__ import annotations


class FakeResp:
    status_code = 200
    headers: dict[str, str] = {}

    def __init__(self, payload):
        self._payload = payload

    def json(self):
        return self._payload


def test_mal_matches_english_title_and_keeps_canonical_name(monkeypatch):
    from watch_history_enricher.clients.mal_client import MALClient

    seen: list[dict] = []

    def fake_request(_self, method, url, **kwargs):
        seen.append(kwargs)
        return FakeResp(
            {
                "data": [
                    {
                        "node": {
                            "id": 16498,
                            "title": "Shingeki no Kyojin",
                            "alternative_titles": {"en": "Attack on Titan"},
                            "start_date": "2013-04-07",
                            "media_type": "tv",
                        }
                    },
                    {
                        "node": {
                            "id": 23775,
                            "title": "Shingeki no Kyojin Movie 1",
                            "start_date": "2014-11-22",
                            "media_type": "movie",
                        }
                    },
                ]
            }
        )

    monkeypatch.setattr("requests.sessions.Session.request", fake_request)

    result = MALClient(client_id="mal-id", min_interval_s=0.0).lookup(
        "Attack on Titan", "series", "s1e1"
    )

    assert result.provider == "mal"
    assert result.ids.mal == "16498"
    assert result.canonical_title == "Shingeki no Kyojin"
    assert result.kind == "series"
    assert result.year == 2013
    assert seen[0]["headers"]["X-MAL-CLIENT-ID"] == "mal-id"
    assert seen[0]["params"]["q"] == "Attack on Titan"


def test_mal_series_lookup_never_settles_for_a_movie(monkeypatch):
    import pytest

    from watch_history_enricher.clients.mal_client import MALClient
    from watch_history_enricher.errors import NotFound

    def fake_request(_self, method, url, **kwargs):
        return FakeResp(
            {
                "data": [
                    {
                        "node": {
                            "id": 32898,
                            "title": "Haikyuu",
                            "start_date": "2015-07-03",
                            "media_type": "movie",
                        }
                    }
                ]
            }
        )

    monkeypatch.setattr("requests.sessions.Session.request", fake_request)

    with pytest.raises(NotFound):
        MALClient(client_id="mal-id", min_interval_s=0.0).lookup("Haikyuu", "series", "s1e1")
