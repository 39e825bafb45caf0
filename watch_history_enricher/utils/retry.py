from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from ..config import RETRY
from ..errors import ProviderError, RateLimited, RunCancelled


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retries with exponential backoff around a single provider call.

    Only `RateLimited` and `Transient` are retried. A provider's retry-after hint is a floor on
    the computed delay, never a replacement for it. Delays never decrease from one attempt to
    the next, even with jitter.
    """

    max_attempts: int = RETRY.retries
    base_sleep_s: float = RETRY.base_sleep_s
    multiplier: float = RETRY.multiplier
    jitter_s: float = RETRY.jitter_s
    max_sleep_s: float = RETRY.max_sleep_s

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")

    def compute_delay(
        self, attempt: int, *, retry_after_s: float | None = None, previous_s: float = 0.0
    ) -> float:
        """Delay before retry number `attempt + 1` (attempt is 0-based)."""
        delay = self.base_sleep_s * (self.multiplier**attempt)
        if self.jitter_s > 0:
            delay += random.uniform(0, self.jitter_s)
        delay = min(delay, self.max_sleep_s)
        if retry_after_s is not None and retry_after_s > 0:
            delay = max(delay, float(retry_after_s))
        return max(delay, previous_s)

    def call(
        self,
        fn: Callable[[], Any],
        *,
        context: str,
        cancel: threading.Event | None = None,
    ) -> Any:
        """
        Execute fn, retrying retryable provider errors.

        Raises the last `ProviderError` once attempts are exhausted (or immediately for
        non-retryable kinds), and `RunCancelled` if `cancel` fires before or during a backoff.
        """
        previous = 0.0
        for attempt in range(self.max_attempts):
            if cancel is not None and cancel.is_set():
                raise RunCancelled(context)
            try:
                return fn()
            except ProviderError as e:
                if not e.retryable:
                    raise
                if attempt == self.max_attempts - 1:
                    logging.warning(
                        f"[RETRY] {context}: giving up after {self.max_attempts} attempts: "
                        f"{e.kind}: {e}"
                    )
                    raise
                retry_after = e.retry_after_s if isinstance(e, RateLimited) else None
                delay = self.compute_delay(attempt, retry_after_s=retry_after, previous_s=previous)
                previous = delay
                logging.debug(
                    f"[RETRY] {context}: {e.kind} on attempt {attempt + 1}/{self.max_attempts}, "
                    f"sleeping {delay:.2f}s"
                )
                _sleep(delay, cancel, context=context)
        raise AssertionError("unreachable")  # pragma: no cover


def _sleep(delay_s: float, cancel: threading.Event | None, *, context: str) -> None:
    if cancel is None:
        time.sleep(delay_s)
        return
    # Event.wait returns True as soon as the run is cancelled.
    if cancel.wait(delay_s):
        raise RunCancelled(context)

