from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pandas as pd
import yaml
from rapidfuzz import fuzz

# ----------------------------
# Year parsing
# ----------------------------


_YEAR_HINT_RE = re.compile(r"(?:^|[\s(\[])(?P<year>19\d{2}|20\d{2})(?:$|[\s)\]])")


def extract_year_hint(text: str) -> int | None:
    """
    Extract a 4-digit year hint (1900-2100) from a string, if present.

    Intended for disambiguating provider search results, not for strict validation.
    """
    s = str(text or "").strip()
    if not s:
        return None
    m = _YEAR_HINT_RE.search(s)
    if not m:
        return None
    try:
        year = int(m.group("year"))
    except ValueError:
        return None
    if 1900 <= year <= 2100:
        return year
    return None


def strip_year_hint(text: str) -> str:
    """Remove a trailing "(YYYY)" / "[YYYY]" marker so it does not pollute search queries."""
    s = str(text or "").strip()
    return re.sub(r"\s*[(\[](19\d{2}|20\d{2})[)\]]\s*$", "", s).strip() or s


# ----------------------------
# Season / episode labels
# ----------------------------


_EPISODE_PATTERNS = (
    re.compile(r"s(?:eason)?\s*\.?\s*(?P<season>\d{1,3})\s*[:,.\-]?\s*e(?:p(?:isode)?)?\s*\.?\s*(?P<episode>\d{1,4})", re.I),
    re.compile(r"(?P<season>\d{1,3})x(?P<episode>\d{1,4})", re.I),
)


def parse_season_episode(label: str | None) -> tuple[int, int] | None:
    """
    Parse labels like "s1e2", "S01E02", "Season 1 Episode 2", "Season 1: Ep. 2" or "1x02".

    Returns (season, episode) or None when the label is missing or unrecognized.
    """
    s = str(label or "").strip()
    if not s:
        return None
    for pattern in _EPISODE_PATTERNS:
        m = pattern.search(s)
        if m:
            return int(m.group("season")), int(m.group("episode"))
    return None


def format_episode_label(label: str | None) -> str:
    """Render a label as `s<season>e<episode>`; unrecognized labels are kept as-is."""
    parsed = parse_season_episode(label)
    if parsed is None:
        return str(label or "").strip()
    season, episode = parsed
    return f"s{season}e{episode}"


# ----------------------------
# Paths / Folder structure
# ----------------------------


@dataclass(frozen=True)
class ProjectPaths:
    root: Path
    data_input: Path
    data_output: Path
    data_logs: Path

    @staticmethod
    def from_root(root: str | Path) -> ProjectPaths:
        rootp = Path(root).resolve()
        return ProjectPaths(
            root=rootp,
            data_input=rootp / "data" / "input",
            data_output=rootp / "data" / "output",
            data_logs=rootp / "data" / "logs",
        )

    def ensure(self) -> None:
        self.data_input.mkdir(parents=True, exist_ok=True)
        self.data_output.mkdir(parents=True, exist_ok=True)
        self.data_logs.mkdir(parents=True, exist_ok=True)


# ----------------------------
# CSV Helpers
# ----------------------------


def read_csv(path: str | Path) -> pd.DataFrame:
    """Read CSV preserving strings and avoiding problematic type inference."""
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)


# ----------------------------
# Title normalization
# ----------------------------

_ROMAN_MAP = {
    " ii ": " 2 ",
    " iii ": " 3 ",
    " iv ": " 4 ",
    " vi ": " 6 ",
    " vii ": " 7 ",
    " viii ": " 8 ",
}


def normalize_title(name: str) -> str:
    """
    Normalize titles to improve matching between the scraped history and provider catalogs.
    - lowercase
    - remove punctuation
    - collapse spaces
    - roman numerals to arabic for typical sequel cases (II, III...)
    """
    s = (name or "").strip().lower()
    s = s.replace("™", "").replace("®", "").replace("©", "")
    s = re.sub(r"[\(\)\[\]\{\}]", " ", s)
    s = re.sub(r"[’'`]", "", s)
    s = re.sub(r"[:\-–—_/\\|]", " ", s)
    s = re.sub(r"[.,!?+*&%$#@~]", " ", s)

    s = f" {s} "
    for k, v in _ROMAN_MAP.items():
        s = s.replace(k, v)

    s = re.sub(r"\s+", " ", s).strip()
    return s


# ----------------------------
# Fuzzy matching
# ----------------------------


def _is_year_token(t: str) -> bool:
    return t.isdigit() and len(t) == 4 and 1900 <= int(t) <= 2100


def fuzzy_score(a: str, b: str) -> int:
    """
    Calculate fuzzy matching score between two titles.

    Uses token_sort_ratio, but allows partial_ratio when the only difference is a year token
    (e.g. "Dune" vs "Dune (2021)").
    """
    na = normalize_title(a)
    nb = normalize_title(b)
    score_sort = float(fuzz.token_sort_ratio(na, nb))

    extra_a = set(na.split()) - set(nb.split())
    extra_b = set(nb.split()) - set(na.split())
    year_only_a = bool(extra_a) and all(_is_year_token(t) for t in extra_a)
    year_only_b = bool(extra_b) and all(_is_year_token(t) for t in extra_b)
    if (year_only_a and not extra_b) or (year_only_b and not extra_a):
        return int(max(score_sort, float(fuzz.partial_ratio(na, nb))))
    return int(score_sort)


def pick_best_match(
    query: str,
    candidates: list[dict[str, Any]],
    name_key: str = "title",
    *,
    year_hint: int | None = None,
    year_getter: Callable[[dict[str, Any]], int | None] | None = None,
) -> tuple[dict[str, Any] | None, int]:
    """
    Given a query and a list of dicts (candidates), choose the candidate with the best fuzzy score.

    Ties keep the provider's own ranking (earlier candidates first). Returns (best, score).
    """
    scored = []
    for pos, c in enumerate(candidates):
        cname = str(c.get(name_key, "") or "")
        score = fuzzy_score(query, cname)
        adjusted = score
        if year_hint is not None and year_getter is not None:
            cand_year = year_getter(c)
            if cand_year is not None:
                delta = abs(int(cand_year) - int(year_hint))
                if delta == 0:
                    adjusted += 10
                elif delta <= 1:
                    adjusted += 5
                elif delta >= 5:
                    adjusted -= 10
        adjusted = max(0, min(100, adjusted))
        scored.append((c, adjusted, score, pos))

    if not scored:
        return None, -1

    scored.sort(key=lambda x: (-x[1], -x[2], x[3]))
    best, best_adjusted, *_ = scored[0]
    return best, int(best_adjusted)


# ----------------------------
# Rate limiting
# ----------------------------


class RateLimiter:
    """
    Simple rate limiter: enforces minimum interval between requests.

    Safe to share between worker threads: callers queue up on the lock, so requests to one
    provider are spaced out even when many entries resolve concurrently.
    """

    def __init__(self, min_interval_s: float = 1.0):
        self.min_interval_s = float(min_interval_s)
        self._last = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        if self.min_interval_s <= 0:
            return
        with self._lock:
            # Use monotonic time to avoid issues if the system clock changes.
            now = time.monotonic()
            delta = now - self._last
            if delta < self.min_interval_s:
                time.sleep(self.min_interval_s - delta)
            self._last = time.monotonic()


# ----------------------------
# Credentials loading
# ----------------------------


def load_credentials(credentials_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load credentials from a YAML file.

    Args:
        credentials_path: Path to credentials.yaml file. If None, looks for
                         data/credentials.yaml in the project root.

    Returns:
        Dictionary with credentials (e.g., {'simkl': {...}, 'tmdb': {...}})
    """
    if credentials_path is None:
        root = Path(__file__).resolve().parent.parent.parent
        credentials_path = root / "data" / "credentials.yaml"
    else:
        credentials_path = Path(credentials_path)

    if not credentials_path.exists():
        raise FileNotFoundError(
            f"Credentials file not found: {credentials_path}\n"
            "Please create data/credentials.yaml with your API keys."
        )

    with open(credentials_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Credentials file must contain a mapping: {credentials_path}")
    return data


def credential(credentials: dict[str, Any], provider: str, key: str) -> str:
    """Return a stripped credential value, or "" when absent."""
    section = credentials.get(provider, {}) or {}
    if not isinstance(section, dict):
        return ""
    return str(section.get(key, "") or "").strip()
