from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed, wait
from typing import Callable, Sequence

from ..config import CLI, ENGINE
from ..errors import CANCELLED, RunCancelled
from ..models import FailedEntry, RawEntry, ResolvedEntry
from ..utils.progress import Progress

Outcome = ResolvedEntry | FailedEntry
Resolver = Callable[[RawEntry, threading.Event], Outcome]


class ConcurrencyScheduler:
    """
    Unordered fan-out/fan-in of entry resolutions over a bounded thread pool.

    Each entry is submitted exactly once and occupies one worker for its whole chain, so at most
    `max_in_flight` resolutions run at the same time. Entries still queued when `cancel` fires
    are reported as `Cancelled` without touching any provider.
    """

    def __init__(self, max_in_flight: int = ENGINE.max_in_flight, *, label: str = "ENRICH"):
        if int(max_in_flight) < 1:
            raise ValueError("max_in_flight must be >= 1")
        self.max_in_flight = int(max_in_flight)
        self.label = label

    def run(
        self,
        batch: Sequence[RawEntry],
        resolve: Resolver,
        *,
        cancel: threading.Event | None = None,
    ) -> list[Outcome]:
        if not batch:
            return []
        cancel = cancel if cancel is not None else threading.Event()
        outcomes: list[Outcome | None] = [None] * len(batch)
        lock = threading.Lock()
        done = 0
        progress = Progress(self.label, total=len(batch), every_n=CLI.progress_every_n)

        def _work(idx: int, entry: RawEntry) -> None:
            nonlocal done
            if cancel.is_set():
                outcome: Outcome = FailedEntry(raw=entry, reason=CANCELLED)
            else:
                try:
                    outcome = resolve(entry, cancel)
                except RunCancelled:
                    outcome = FailedEntry(raw=entry, reason=CANCELLED)
            with lock:
                outcomes[idx] = outcome
                done += 1
                seen = done
            progress.maybe_log(seen)

        errors: list[BaseException] = []
        workers = min(self.max_in_flight, len(batch))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="resolve") as executor:
            futures = [executor.submit(_work, i, e) for i, e in enumerate(batch)]
            try:
                for future in as_completed(futures):
                    exc = future.exception()
                    if exc is not None:
                        errors.append(exc)
            except KeyboardInterrupt:
                with lock:
                    pending = len(batch) - done
                logging.warning(f"[{self.label}] Interrupted: cancelling {pending} pending entries")
                cancel.set()
                wait(futures)
                errors = [exc for exc in (f.exception() for f in futures) if exc is not None]

        if errors:
            raise RuntimeError(f"[{self.label}] {len(errors)} entry resolutions crashed") from errors[0]
        return [o for o in outcomes if o is not None]
