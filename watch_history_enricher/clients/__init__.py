"""API clients for watch-history metadata sources."""

from .base import MetadataProvider
from .mal_client import MALClient
from .simkl_client import SimklClient
from .tmdb_client import TMDBClient
from .tvdb_client import TVDBClient

__all__ = [
    "MALClient",
    "MetadataProvider",
    "SimklClient",
    "TMDBClient",
    "TVDBClient",
]
