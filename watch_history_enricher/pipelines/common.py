from __future__ import annotations

import logging
from collections import Counter
from typing import Sequence

from ..models import EnrichmentReport
from ..schema import PROVIDER_LABELS


def log_provider_stats(providers: Sequence[object]) -> None:
    for client in providers:
        name = str(getattr(client, "name", "") or "")
        label = PROVIDER_LABELS.get(name, f"[{name.upper()}]")
        fmt = getattr(client, "format_stats", None)
        if not callable(fmt):
            continue
        try:
            logging.info(f"{label} Stats: {fmt()}")
        except Exception:
            # Avoid failing pipelines because of a stats formatting bug.
            logging.info(f"{label} Stats: (unavailable)")


def log_report(report: EnrichmentReport, *, max_listed: int = 50) -> None:
    """Human-readable run summary: counts first, then why titles failed."""
    logging.info(f"[ENRICH] Done: {report.summary()}")
    for prov, count in sorted(report.provider_errors.items()):
        label = PROVIDER_LABELS.get(prov, f"[{prov.upper()}]")
        suffix = " (credentials rejected)" if prov in report.auth_invalid else ""
        logging.warning(f"{label} {count} failed lookups{suffix}")

    if not report.failures:
        return
    by_reason = Counter(f.reason for f in report.failures)
    logging.warning(
        "[ENRICH] Unmatched entries by reason: "
        + ", ".join(f"{reason}={n}" for reason, n in sorted(by_reason.items()))
    )
    for failure in report.failures[:max_listed]:
        detail = ", ".join(f"{p}={r}" for p, r in failure.provider_reasons.items())
        episode = f" {failure.raw.season_episode}" if failure.raw.season_episode else ""
        logging.warning(
            f"[ENRICH]   {failure.reason}: '{failure.raw.title}'{episode}"
            + (f" ({detail})" if detail else "")
        )
    if len(report.failures) > max_listed:
        logging.warning(f"[ENRICH]   ... and {len(report.failures) - max_listed} more")
