from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Sequence

from ..clients.base import MetadataProvider
from ..errors import CANCELLED, ConfigurationError
from ..models import EnrichmentReport, FailedEntry, RawEntry, ResolvedEntry
from ..utils.retry import RetryPolicy
from .common import log_provider_stats, log_report
from .consolidator import consolidate
from .context import EnrichSettings, PipelineContext
from .export_pipeline import write_records_csv
from .import_pipeline import load_history
from .provider_chain import ProviderChain, ProviderErrorTally
from .provider_clients import build_provider_clients
from .scheduler import ConcurrencyScheduler


def enrich(
    batch: Sequence[RawEntry],
    settings: EnrichSettings,
    *,
    providers: Sequence[MetadataProvider] | None = None,
    retry: RetryPolicy | None = None,
    cancel: threading.Event | None = None,
) -> EnrichmentReport:
    """
    Resolve a batch of watch events and consolidate them into export records.

    `providers` overrides the clients built from `settings.credentials` (tests inject fakes).

    Raises ConfigurationError when no provider is configured, or when nothing resolved and at
    least one provider rejected its credentials: an empty result is then almost certainly a
    key problem, not a batch of obscure titles.
    """
    if providers is None:
        providers = build_provider_clients(sources=settings.sources, credentials=settings.credentials)
    if not providers:
        raise ConfigurationError(
            "No metadata providers configured. Add at least Simkl or TMDB credentials."
        )

    logging.info(
        f"[ENRICH] Resolving {len(batch)} entries via {', '.join(p.name for p in providers)} "
        f"(max_in_flight={settings.max_in_flight})"
    )
    t0 = time.monotonic()
    tally = ProviderErrorTally()
    chain = ProviderChain(providers, retry=retry, tally=tally)
    scheduler = ConcurrencyScheduler(settings.max_in_flight)
    outcomes = scheduler.run(batch, chain.resolve, cancel=cancel)

    resolved = [o for o in outcomes if isinstance(o, ResolvedEntry)]
    failed = [o for o in outcomes if isinstance(o, FailedEntry)]
    logging.info(
        f"[ENRICH] Lookups finished in {time.monotonic() - t0:.1f}s: "
        f"resolved={len(resolved)} failed={len(failed)}"
    )

    auth_invalid = sorted(tally.auth_invalid)
    # An interrupted run reports what it got; the rejected keys still show up in the report.
    cancelled = any(f.reason == CANCELLED for f in failed)
    if batch and not resolved and auth_invalid and not cancelled:
        raise ConfigurationError(
            f"No entry could be resolved and {', '.join(auth_invalid)} rejected the configured "
            "credentials. Check your API keys."
        )

    records, failures = consolidate(resolved, failed, dedupe_movies=settings.dedupe_movies)
    return EnrichmentReport(
        records=records,
        failures=failures,
        provider_errors=tally.snapshot(),
        auth_invalid=auth_invalid,
        resolved_count=len(resolved),
    )


def run_enrich(
    ctx: PipelineContext,
    *,
    history_csv: Path,
    output_csv: Path,
    cancel: threading.Event | None = None,
) -> EnrichmentReport:
    """Load the scraped history, enrich it and write the export CSV."""
    if not history_csv.exists():
        raise SystemExit(f"History file not found: {history_csv}")

    batch = load_history(history_csv)
    settings = ctx.settings()
    providers = build_provider_clients(sources=settings.sources, credentials=settings.credentials)
    try:
        report = enrich(batch, settings, providers=providers, cancel=cancel)
    finally:
        log_provider_stats(providers)

    write_records_csv(report.records, output_csv)
    logging.info(f"[ENRICH] Wrote {len(report.records)} rows to {output_csv}")
    log_report(report)
    return report
