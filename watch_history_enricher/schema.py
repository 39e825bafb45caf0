from __future__ import annotations

# -----------------------------------------------------------------------------
# Providers
# -----------------------------------------------------------------------------

# Chain priority: the primary catalog (identifier of record) first, optional sources last.
PROVIDER_ORDER = ("simkl", "tmdb", "tvdb", "mal")
SOURCE_ALIASES: dict[str, list[str]] = {"all": list(PROVIDER_ORDER), "core": ["simkl", "tmdb"]}

PROVIDER_LABELS = {
    "simkl": "[SIMKL]",
    "tmdb": "[TMDB]",
    "tvdb": "[TVDB]",
    "mal": "[MAL]",
}

# -----------------------------------------------------------------------------
# History input CSV (written by the scraper)
# -----------------------------------------------------------------------------

HISTORY_TITLE_COL = "Title"
HISTORY_EPISODE_COL = "SeasonEpisode"
HISTORY_WATCHED_COL = "WatchedAt"
HISTORY_KIND_COL = "Kind"

# -----------------------------------------------------------------------------
# Export CSV (Simkl import format)
# -----------------------------------------------------------------------------

EXPORT_COLUMNS = (
    "simkl_id",
    "TVDB_ID",
    "TMDB",
    "MAL_ID",
    "Type",
    "Title",
    "Year",
    "LastEpWatched",
    "Watchlist",
    "WatchedDate",
    "Rating",
    "Memo",
)

# Every exported title was watched, so it lands in the "completed" list.
WATCHLIST_STATUS = "completed"

EXPORT_TYPE_BY_KIND = {"movie": "movie", "series": "tv"}
