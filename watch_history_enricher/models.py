from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime

MOVIE = "movie"
SERIES = "series"
KINDS = (MOVIE, SERIES)


@dataclass(frozen=True)
class RawEntry:
    """One watch event as produced by the history scraper."""

    title: str
    kind_hint: str | None = None
    season_episode: str | None = None
    watched_at: datetime | None = None

    def effective_kind(self) -> str:
        if self.kind_hint in KINDS:
            return str(self.kind_hint)
        return SERIES if (self.season_episode or "").strip() else MOVIE


@dataclass(frozen=True)
class MediaIds:
    simkl: str | None = None
    tmdb: str | None = None
    tvdb: str | None = None
    mal: str | None = None
    imdb: str | None = None

    def merged_with(self, other: MediaIds) -> MediaIds:
        """Fill missing ids from `other`; ids already present win."""
        return MediaIds(
            **{f.name: getattr(self, f.name) or getattr(other, f.name) for f in fields(self)}
        )

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))


@dataclass(frozen=True)
class ProviderResult:
    provider: str
    ids: MediaIds
    canonical_title: str
    year: int | None
    kind: str


@dataclass(frozen=True)
class ResolvedEntry:
    raw: RawEntry
    ids: MediaIds
    kind: str
    canonical_title: str
    year: int | None
    provider: str

    @property
    def season_episode(self) -> str | None:
        return self.raw.season_episode

    @property
    def watched_at(self) -> datetime | None:
        return self.raw.watched_at


@dataclass(frozen=True)
class FailedEntry:
    raw: RawEntry
    reason: str
    # provider name -> error kind ("NotFound", "Transient", ...), in chain order.
    provider_reasons: dict[str, str] = field(default_factory=dict, hash=False, compare=False)


@dataclass(frozen=True)
class FinalRecord:
    ids: MediaIds
    kind: str
    title: str
    year: int | None
    last_episode_label: str | None
    watched_date: date | None
    # Number of watch events folded into this record.
    entries: int = 1


@dataclass
class EnrichmentReport:
    records: list[FinalRecord]
    failures: list[FailedEntry]
    # provider name -> count of AuthInvalid and terminal (non-NotFound) failures.
    provider_errors: dict[str, int]
    auth_invalid: list[str] = field(default_factory=list)
    resolved_count: int = 0

    def summary(self) -> str:
        return (
            f"resolved={self.resolved_count} failed={len(self.failures)} "
            f"records={len(self.records)}"
        )
