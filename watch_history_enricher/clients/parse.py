from __future__ import annotations

import re
from typing import Any


def as_str(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def as_int(value: object) -> int | None:
    """
    Strict numeric conversion.

    - Accepts: int, integral float
    - Rejects: bool, strings (even if numeric)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    return None


def id_str(value: object) -> str | None:
    """
    Normalize a provider identifier to a non-empty string.

    Providers return ids as ints or numeric strings; both end up as "123".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else None
    s = str(value).strip()
    return s or None


def year_from_iso_date(value: object) -> int | None:
    """
    Extract YYYY from 'YYYY-MM-DD', a bare year (int or string), or any string containing one.
    """
    n = as_int(value)
    if n is not None:
        return n if 1900 <= n <= 2100 else None
    s = as_str(value)
    if len(s) >= 4 and s[:4].isdigit():
        y = int(s[:4])
        if 1900 <= y <= 2100:
            return y
    m = re.search(r"\b(19\d{2}|20\d{2})\b", s)
    if not m:
        return None
    return int(m.group(1))


def get_list_of_dicts(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]
