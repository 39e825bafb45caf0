from __future__ import annotations

import threading


class ScriptedProvider:
    """Fake provider: pops one scripted outcome per lookup (exception or ProviderResult)."""

    def __init__(self, name: str, outcomes):
        self.name = name
        self.outcomes = list(outcomes)
        self.calls: list[str] = []

    def lookup(self, title, kind_hint, season_episode):
        self.calls.append(title)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _result(provider: str, **ids):
    from watch_history_enricher.models import MediaIds, ProviderResult

    return ProviderResult(
        provider=provider, ids=MediaIds(**ids), canonical_title="Dune", year=2021, kind="movie"
    )


def _no_wait_retry():
    from watch_history_enricher.utils.retry import RetryPolicy

    return RetryPolicy(max_attempts=2, base_sleep_s=0.0, jitter_s=0.0)


def test_not_found_falls_through_without_counting_an_error():
    from watch_history_enricher.errors import NotFound
    from watch_history_enricher.models import RawEntry, ResolvedEntry
    from watch_history_enricher.pipelines.provider_chain import ProviderChain

    simkl = ScriptedProvider("simkl", [NotFound("nope")])
    tmdb = ScriptedProvider("tmdb", [_result("tmdb", tmdb="438631")])
    chain = ProviderChain([simkl, tmdb], retry=_no_wait_retry())

    out = chain.resolve(RawEntry(title="Dune", kind_hint="movie"))

    assert isinstance(out, ResolvedEntry)
    assert out.provider == "tmdb"
    assert out.ids.tmdb == "438631"
    assert out.kind == "movie"
    assert chain.tally.snapshot() == {}
    assert len(simkl.calls) == 1


def test_auth_invalid_disables_provider_for_the_rest_of_the_run():
    from watch_history_enricher.errors import AuthInvalid
    from watch_history_enricher.models import RawEntry, ResolvedEntry
    from watch_history_enricher.pipelines.provider_chain import ProviderChain

    simkl = ScriptedProvider("simkl", [AuthInvalid("HTTP 401")])
    tmdb = ScriptedProvider("tmdb", [_result("tmdb", tmdb="1")])
    chain = ProviderChain([simkl, tmdb], retry=_no_wait_retry())

    first = chain.resolve(RawEntry(title="Dune"))
    second = chain.resolve(RawEntry(title="Arrival"))

    assert isinstance(first, ResolvedEntry)
    assert isinstance(second, ResolvedEntry)
    # Attempted once, never retried, then skipped.
    assert simkl.calls == ["Dune"]
    assert chain.tally.auth_invalid == {"simkl"}
    assert chain.tally.snapshot() == {"simkl": 1}


def test_exhausted_transient_is_counted_and_chain_moves_on(monkeypatch):
    from watch_history_enricher.errors import Transient
    from watch_history_enricher.models import RawEntry, ResolvedEntry
    from watch_history_enricher.pipelines.provider_chain import ProviderChain

    monkeypatch.setattr("time.sleep", lambda _s: None)
    simkl = ScriptedProvider("simkl", [Transient("HTTP 503")])
    tmdb = ScriptedProvider("tmdb", [_result("tmdb", tmdb="1")])
    chain = ProviderChain([simkl, tmdb], retry=_no_wait_retry())

    out = chain.resolve(RawEntry(title="Dune"))

    assert isinstance(out, ResolvedEntry)
    assert len(simkl.calls) == 2
    assert chain.tally.snapshot() == {"simkl": 1}


def test_all_providers_failing_yields_failed_entry_with_reasons():
    from watch_history_enricher.errors import ALL_PROVIDERS_FAILED, Malformed, NotFound
    from watch_history_enricher.models import FailedEntry, RawEntry
    from watch_history_enricher.pipelines.provider_chain import ProviderChain

    chain = ProviderChain(
        [
            ScriptedProvider("simkl", [NotFound("nope")]),
            ScriptedProvider("tmdb", [Malformed("bad payload")]),
        ],
        retry=_no_wait_retry(),
    )
    out = chain.resolve(RawEntry(title="Obscure Home Video", season_episode="s1e1"))

    assert isinstance(out, FailedEntry)
    assert out.reason == ALL_PROVIDERS_FAILED
    assert out.provider_reasons == {"simkl": "NotFound", "tmdb": "Malformed"}
    assert chain.tally.snapshot() == {"tmdb": 1}


def test_series_kind_is_inferred_from_episode_label():
    from watch_history_enricher.models import MediaIds, ProviderResult, RawEntry
    from watch_history_enricher.pipelines.provider_chain import ProviderChain

    seen: list = []

    class Recorder:
        name = "simkl"

        def lookup(self, title, kind_hint, season_episode):
            seen.append((kind_hint, season_episode))
            return ProviderResult("simkl", MediaIds(simkl="9"), "Severance", 2022, kind_hint)

    out = ProviderChain([Recorder()]).resolve(RawEntry(title="Severance", season_episode="s1e5"))
    assert seen == [("series", "s1e5")]
    assert out.kind == "series"


def test_cancelled_run_marks_entry_cancelled():
    from watch_history_enricher.errors import CANCELLED
    from watch_history_enricher.models import FailedEntry, RawEntry
    from watch_history_enricher.pipelines.provider_chain import ProviderChain

    provider = ScriptedProvider("simkl", [_result("simkl", simkl="1")])
    cancel = threading.Event()
    cancel.set()

    out = ProviderChain([provider]).resolve(RawEntry(title="Dune"), cancel)

    assert isinstance(out, FailedEntry)
    assert out.reason == CANCELLED
    assert provider.calls == []


def test_episode_entries_stay_series_even_if_provider_reports_a_movie():
    from watch_history_enricher.models import MediaIds, ProviderResult, RawEntry
    from watch_history_enricher.pipelines.consolidator import consolidate
    from watch_history_enricher.pipelines.provider_chain import ProviderChain

    movie_match = ProviderResult("mal", MediaIds(mal="32898"), "Haikyuu", 2015, "movie")
    chain = ProviderChain([ScriptedProvider("mal", [movie_match])])

    resolved = [
        chain.resolve(RawEntry(title="Haikyuu", season_episode=f"s1e{n}")) for n in (1, 2, 3)
    ]
    assert [r.kind for r in resolved] == ["series", "series", "series"]

    records, _ = consolidate(resolved, [])
    assert len(records) == 1
    assert records[0].last_episode_label == "s1e3"
