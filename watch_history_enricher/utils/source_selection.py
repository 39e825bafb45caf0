from __future__ import annotations

from typing import Sequence


def parse_sources(
    raw: str, *, allowed: Sequence[str], aliases: dict[str, list[str]] | None = None
) -> list[str]:
    """
    Parse a provider list string like:
      - "all"
      - "core"
      - "simkl,tmdb,mal"

    Returns a de-duplicated list in the order of `allowed`, which is the chain priority order.
    The order the user typed does not change which provider is asked first.
    """
    s = str(raw or "").strip()
    if not s:
        raise SystemExit("Missing --source value")

    tokens = [t.strip().lower() for t in s.split(",") if t.strip()]
    allowed_set = set(allowed)
    aliases = aliases or {}
    picked: set[str] = set()

    for t in tokens:
        if t in aliases:
            for x in aliases[t]:
                if x not in allowed_set:
                    raise SystemExit(f"Unknown provider in alias '{t}': {x}")
                picked.add(x)
            continue
        if t not in allowed_set:
            raise SystemExit(
                f"Unknown provider: {t}. Allowed: {', '.join(sorted(allowed_set | set(aliases)))}"
            )
        picked.add(t)
    return [x for x in allowed if x in picked]
