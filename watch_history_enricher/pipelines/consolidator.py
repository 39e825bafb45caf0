"""
Reduce resolved watch events to one export row per title.

Series collapse to the chronologically last watched episode. Movies keep one row per watch
unless `dedupe_movies` is set, in which case they collapse to the latest watch as well.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable

from ..models import MOVIE, SERIES, FailedEntry, FinalRecord, ResolvedEntry
from ..utils.utilities import format_episode_label, normalize_title, parse_season_episode

SeriesKey = tuple


def series_key(entry: ResolvedEntry) -> SeriesKey:
    """
    Grouping identity: the strongest available id, else normalized title + year.

    The kind is always part of the key so a movie and a show never merge.
    """
    if entry.ids.simkl:
        return (entry.kind, "simkl", entry.ids.simkl)
    if entry.ids.tmdb:
        return (entry.kind, "tmdb", entry.ids.tmdb)
    return (entry.kind, "title", normalize_title(entry.canonical_title or entry.raw.title), entry.year)


def _linking_keys(entry: ResolvedEntry) -> list[SeriesKey]:
    keys: list[SeriesKey] = []
    if entry.ids.simkl:
        keys.append((entry.kind, "simkl", entry.ids.simkl))
    if entry.ids.tmdb:
        keys.append((entry.kind, "tmdb", entry.ids.tmdb))
    return keys or [series_key(entry)]


def group_entries(entries: list[ResolvedEntry]) -> list[list[ResolvedEntry]]:
    """
    Partition entries into titles.

    Entries sharing any Simkl or TMDB id (same kind) belong together, transitively: episodes
    resolved by Simkl carry both ids while a TMDB fallback only carries its own.
    """
    parent = list(range(len(entries)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    first_by_key: dict[SeriesKey, int] = {}
    for i, entry in enumerate(entries):
        for key in _linking_keys(entry):
            ri, rj = find(i), find(first_by_key.setdefault(key, i))
            if ri != rj:
                parent[max(ri, rj)] = min(ri, rj)

    groups: dict[int, list[ResolvedEntry]] = defaultdict(list)
    for i, entry in enumerate(entries):
        groups[find(i)].append(entry)
    return list(groups.values())


def _epoch(ts: datetime | None) -> float:
    if ts is None:
        return float("-inf")
    if ts.tzinfo is None:
        # Scraped timestamps are dates without a zone; compare them as UTC.
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.timestamp()


def recency_key(entry: ResolvedEntry) -> tuple:
    """
    Sort key for "which watch is the latest".

    Timestamp first; equal or missing timestamps fall back to the higher season, then episode.
    The trailing fields only make the choice deterministic.
    """
    season, episode = parse_season_episode(entry.season_episode) or (-1, -1)
    return (
        _epoch(entry.watched_at),
        season,
        episode,
        entry.season_episode or "",
        entry.canonical_title,
        entry.provider,
        repr(entry.ids),
    )


def _to_record(latest: ResolvedEntry, group: list[ResolvedEntry]) -> FinalRecord:
    ids = latest.ids
    # Older watches of the same title can still contribute ids the latest lookup lacked.
    for other in sorted(group, key=recency_key, reverse=True):
        ids = ids.merged_with(other.ids)
    label = None
    if latest.kind == SERIES:
        label = format_episode_label(latest.season_episode) or None
    return FinalRecord(
        ids=ids,
        kind=latest.kind,
        title=latest.canonical_title or latest.raw.title,
        year=latest.year,
        last_episode_label=label,
        watched_date=latest.watched_at.date() if latest.watched_at else None,
        entries=len(group),
    )


def record_sort_key(record: FinalRecord) -> tuple:
    """Newest first; undated rows last; then title for a stable order."""
    return (
        record.watched_date is None,
        -(record.watched_date.toordinal()) if record.watched_date else 0,
        record.title.casefold(),
        record.kind,
        record.last_episode_label or "",
        repr(record.ids),
    )


def consolidate(
    resolved: Iterable[ResolvedEntry],
    failed: Iterable[FailedEntry],
    *,
    dedupe_movies: bool = False,
) -> tuple[list[FinalRecord], list[FailedEntry]]:
    grouped: list[ResolvedEntry] = []
    records: list[FinalRecord] = []

    for entry in resolved:
        if entry.kind == MOVIE and not dedupe_movies:
            records.append(_to_record(entry, [entry]))
            continue
        grouped.append(entry)

    for group in group_entries(grouped):
        latest = max(group, key=recency_key)
        records.append(_to_record(latest, group))

    records.sort(key=record_sort_key)
    return records, list(failed)
