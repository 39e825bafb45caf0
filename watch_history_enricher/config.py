from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryConfig:
    retries: int = 3
    base_sleep_s: float = 1.0
    multiplier: float = 2.0
    jitter_s: float = 0.3
    max_sleep_s: float = 30.0
    http_429_default_retry_after_s: float = 5.0


@dataclass(frozen=True)
class MatchingConfig:
    min_score: int = 65


@dataclass(frozen=True)
class RequestConfig:
    timeout_s: int = 10


@dataclass(frozen=True)
class SimklConfig:
    min_interval_s: float = 0.5
    search_limit: int = 10


@dataclass(frozen=True)
class TMDBConfig:
    # TMDB tolerates ~40 req/s; stay well below it.
    min_interval_s: float = 0.1


@dataclass(frozen=True)
class TVDBConfig:
    min_interval_s: float = 0.25
    search_limit: int = 10


@dataclass(frozen=True)
class MALConfig:
    min_interval_s: float = 0.5
    search_limit: int = 10


@dataclass(frozen=True)
class EngineConfig:
    max_in_flight: int = 4
    # Repeat movie watches stay as separate rows unless explicitly enabled.
    dedupe_movies: bool = False


@dataclass(frozen=True)
class CLIConfig:
    progress_every_n: int = 25
    progress_min_interval_s: float = 30.0


RETRY = RetryConfig()
MATCHING = MatchingConfig()
REQUEST = RequestConfig()
SIMKL = SimklConfig()
TMDB = TMDBConfig()
TVDB = TVDBConfig()
MAL = MALConfig()
ENGINE = EngineConfig()
CLI = CLIConfig()
