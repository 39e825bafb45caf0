"""Watch History Enricher - Resolve watch history to catalog IDs and consolidate it for export."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("watch-history-enricher")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"
