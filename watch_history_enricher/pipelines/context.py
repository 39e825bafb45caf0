from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config import ENGINE
from ..schema import PROVIDER_ORDER
from ..utils import load_credentials


@dataclass(frozen=True)
class EnrichSettings:
    """
    Everything one enrichment run needs besides the batch itself.

    A provider whose credentials are missing or blank is skipped, not counted as failing.
    """

    credentials: dict[str, Any] = field(default_factory=dict, hash=False)
    sources: tuple[str, ...] = PROVIDER_ORDER
    max_in_flight: int = ENGINE.max_in_flight
    dedupe_movies: bool = ENGINE.dedupe_movies


@dataclass(frozen=True)
class PipelineContext:
    credentials_path: Path
    sources: list[str]
    max_in_flight: int = ENGINE.max_in_flight
    dedupe_movies: bool = ENGINE.dedupe_movies

    def credentials(self) -> dict[str, Any]:
        return load_credentials(self.credentials_path)

    def settings(self) -> EnrichSettings:
        return EnrichSettings(
            credentials=self.credentials(),
            sources=tuple(self.sources),
            max_in_flight=self.max_in_flight,
            dedupe_movies=self.dedupe_movies,
        )
