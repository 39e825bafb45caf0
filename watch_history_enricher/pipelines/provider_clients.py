from __future__ import annotations

import logging
from typing import Any, Iterable

from ..clients import MALClient, MetadataProvider, SimklClient, TMDBClient, TVDBClient
from ..config import MAL, SIMKL, TMDB, TVDB
from ..schema import PROVIDER_LABELS, PROVIDER_ORDER
from ..utils import credential


def build_provider_clients(
    *, sources: Iterable[str], credentials: dict[str, Any]
) -> list[MetadataProvider]:
    """
    Instantiate provider clients in chain priority order.

    Providers without credentials are skipped entirely.
    """
    wanted = {s.strip().lower() for s in sources if s.strip()}
    clients: list[MetadataProvider] = []

    for prov in PROVIDER_ORDER:
        if prov not in wanted:
            continue
        client: MetadataProvider | None = None
        if prov == "simkl":
            client_id = credential(credentials, "simkl", "client_id")
            if client_id:
                client = SimklClient(
                    client_id=client_id,
                    access_token=credential(credentials, "simkl", "access_token"),
                    min_interval_s=SIMKL.min_interval_s,
                )
        elif prov == "tmdb":
            api_key = credential(credentials, "tmdb", "api_key")
            if api_key:
                client = TMDBClient(api_key=api_key, min_interval_s=TMDB.min_interval_s)
        elif prov == "tvdb":
            api_key = credential(credentials, "tvdb", "api_key")
            if api_key:
                client = TVDBClient(
                    api_key=api_key,
                    pin=credential(credentials, "tvdb", "pin"),
                    min_interval_s=TVDB.min_interval_s,
                )
        elif prov == "mal":
            client_id = credential(credentials, "mal", "client_id")
            if client_id:
                client = MALClient(client_id=client_id, min_interval_s=MAL.min_interval_s)

        if client is None:
            logging.info(f"{PROVIDER_LABELS[prov]} Not configured; skipping provider")
            continue
        clients.append(client)

    return clients
