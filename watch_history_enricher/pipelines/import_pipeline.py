from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from ..models import MOVIE, SERIES, RawEntry
from ..schema import (
    HISTORY_EPISODE_COL,
    HISTORY_KIND_COL,
    HISTORY_TITLE_COL,
    HISTORY_WATCHED_COL,
)
from ..utils import read_csv

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
)

_KIND_ALIASES = {
    "movie": MOVIE,
    "movies": MOVIE,
    "film": MOVIE,
    "series": SERIES,
    "show": SERIES,
    "shows": SERIES,
    "tv": SERIES,
    "episode": SERIES,
    "anime": SERIES,
}


def parse_watched_at(value: str) -> datetime | None:
    """
    Parse a scraped watch date.

    Accepts ISO 8601 (with or without time and zone) and the common locale renderings
    "MM/DD/YYYY" and "Month D, YYYY". Returns None for blank or unrecognized values.
    """
    s = str(value or "").strip()
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def normalize_kind(value: str) -> str | None:
    return _KIND_ALIASES.get(str(value or "").strip().lower())


def load_history(csv_path: Path) -> list[RawEntry]:
    df = read_csv(csv_path)
    if HISTORY_TITLE_COL not in df.columns:
        raise SystemExit(f"Missing required column '{HISTORY_TITLE_COL}' in {csv_path}")

    entries: list[RawEntry] = []
    bad_dates = 0
    for _, row in df.iterrows():
        title = str(row.get(HISTORY_TITLE_COL, "") or "").strip()
        if not title:
            continue
        season_episode = str(row.get(HISTORY_EPISODE_COL, "") or "").strip() or None
        raw_date = str(row.get(HISTORY_WATCHED_COL, "") or "").strip()
        watched_at = parse_watched_at(raw_date)
        if raw_date and watched_at is None:
            bad_dates += 1
            logging.debug(f"[IMPORT] Unrecognized watch date {raw_date!r} for '{title}'")
        kind = normalize_kind(str(row.get(HISTORY_KIND_COL, "") or ""))
        if kind is None and season_episode:
            kind = SERIES
        entries.append(
            RawEntry(
                title=title,
                kind_hint=kind,
                season_episode=season_episode,
                watched_at=watched_at,
            )
        )

    skipped = len(df) - len(entries)
    logging.info(
        f"[IMPORT] Loaded {len(entries)} watch events from {csv_path}"
        + (f" (skipped {skipped} rows without a title)" if skipped else "")
    )
    if bad_dates:
        logging.warning(f"[IMPORT] {bad_dates} rows have an unrecognized watch date")
    return entries
