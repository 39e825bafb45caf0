from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from functools import partial
from typing import Sequence

from ..clients.base import MetadataProvider
from ..errors import (
    ALL_PROVIDERS_FAILED,
    CANCELLED,
    AuthInvalid,
    NotFound,
    ProviderError,
    RunCancelled,
)
from ..models import FailedEntry, RawEntry, ResolvedEntry
from ..schema import PROVIDER_LABELS
from ..utils.retry import RetryPolicy


@dataclass
class ProviderErrorTally:
    """
    Run-wide provider failure counters, shared by every worker thread.

    `NotFound` is a normal outcome and is never counted. A provider that answers `AuthInvalid`
    is disabled for the rest of the run: its keys will not start working mid-batch.
    """

    errors: dict[str, int] = field(default_factory=dict)
    auth_invalid: set[str] = field(default_factory=set)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_failure(self, provider: str) -> None:
        with self._lock:
            self.errors[provider] = self.errors.get(provider, 0) + 1

    def record_auth_invalid(self, provider: str) -> bool:
        """Count the failure; returns True the first time this provider is disabled."""
        with self._lock:
            self.errors[provider] = self.errors.get(provider, 0) + 1
            first = provider not in self.auth_invalid
            self.auth_invalid.add(provider)
            return first

    def is_disabled(self, provider: str) -> bool:
        with self._lock:
            return provider in self.auth_invalid

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self.errors)


class ProviderChain:
    """
    Resolve one entry by walking providers in priority order, one at a time.

    The first provider that returns a match wins. Every other outcome (no match, exhausted
    retries, malformed payload, rejected credentials) moves on to the next provider.
    """

    def __init__(
        self,
        providers: Sequence[MetadataProvider],
        *,
        retry: RetryPolicy | None = None,
        tally: ProviderErrorTally | None = None,
    ):
        self.providers = list(providers)
        self.retry = retry or RetryPolicy()
        self.tally = tally or ProviderErrorTally()

    def resolve(
        self, entry: RawEntry, cancel: threading.Event | None = None
    ) -> ResolvedEntry | FailedEntry:
        kind = entry.effective_kind()
        reasons: dict[str, str] = {}
        for provider in self.providers:
            name = provider.name
            label = PROVIDER_LABELS.get(name, f"[{name.upper()}]")
            if self.tally.is_disabled(name):
                reasons[name] = AuthInvalid.__name__
                continue
            call = partial(provider.lookup, entry.title, kind, entry.season_episode)
            try:
                result = self.retry.call(call, context=f"{label} {entry.title!r}", cancel=cancel)
            except RunCancelled:
                return FailedEntry(raw=entry, reason=CANCELLED, provider_reasons=reasons)
            except NotFound:
                reasons[name] = NotFound.__name__
                logging.debug(f"{label} Not found: '{entry.title}'")
                continue
            except AuthInvalid as e:
                reasons[name] = e.kind
                if self.tally.record_auth_invalid(name):
                    logging.error(
                        f"{label} Credentials rejected ({e}); skipping this provider for the "
                        "rest of the run. Check data/credentials.yaml."
                    )
                continue
            except ProviderError as e:
                reasons[name] = e.kind
                self.tally.record_failure(name)
                logging.warning(f"{label} Lookup failed for '{entry.title}': {e.kind}: {e}")
                continue

            # An episode label pins the entry to a series whatever the provider calls the match.
            if (entry.season_episode or "").strip():
                resolved_kind = kind
            else:
                resolved_kind = result.kind or kind
            return ResolvedEntry(
                raw=entry,
                ids=result.ids,
                kind=resolved_kind,
                canonical_title=result.canonical_title or entry.title,
                year=result.year,
                provider=result.provider,
            )

        summary = ", ".join(f"{p}={r}" for p, r in reasons.items()) or "no providers"
        logging.info(f"[CHAIN] Unmatched: '{entry.title}' ({summary})")
        return FailedEntry(raw=entry, reason=ALL_PROVIDERS_FAILED, provider_reasons=reasons)
