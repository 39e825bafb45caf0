from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from ..models import FinalRecord
from ..schema import EXPORT_COLUMNS, EXPORT_TYPE_BY_KIND, WATCHLIST_STATUS
from ..utils.utilities import write_csv


def record_to_row(record: FinalRecord) -> dict[str, str]:
    return {
        "simkl_id": record.ids.simkl or "",
        "TVDB_ID": record.ids.tvdb or "",
        "TMDB": record.ids.tmdb or "",
        "MAL_ID": record.ids.mal or "",
        "Type": EXPORT_TYPE_BY_KIND.get(record.kind, record.kind),
        "Title": record.title,
        "Year": str(record.year) if record.year else "",
        "LastEpWatched": record.last_episode_label or "",
        "Watchlist": WATCHLIST_STATUS,
        "WatchedDate": record.watched_date.isoformat() if record.watched_date else "",
        "Rating": "",
        "Memo": "",
    }


def records_to_frame(records: Iterable[FinalRecord]) -> pd.DataFrame:
    rows = [record_to_row(r) for r in records]
    return pd.DataFrame(rows, columns=list(EXPORT_COLUMNS))


def write_records_csv(records: Iterable[FinalRecord], path: Path) -> Path:
    write_csv(records_to_frame(records), path)
    return path
