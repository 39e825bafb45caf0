"""
Error taxonomy shared by provider clients, the provider chain and the enrichment engine.

Provider clients never leak `requests` exceptions or provider-specific payload errors: every
failure is collapsed into one of the `ProviderError` subclasses below.
"""

from __future__ import annotations

# Per-entry terminal reasons (FailedEntry.reason).
ALL_PROVIDERS_FAILED = "AllProvidersFailed"
CANCELLED = "Cancelled"


class ProviderError(Exception):
    """Base class for a failed provider lookup."""

    retryable = False

    @property
    def kind(self) -> str:
        return type(self).__name__


class NotFound(ProviderError):
    """The provider has no acceptable match for the query."""


class RateLimited(ProviderError):
    retryable = True

    def __init__(self, message: str = "rate limited", *, retry_after_s: float | None = None):
        super().__init__(message)
        self.retry_after_s = retry_after_s


class Transient(ProviderError):
    """Connection reset, timeout, 5xx: worth another attempt."""

    retryable = True


class AuthInvalid(ProviderError):
    """Credentials were rejected. Configuration problem, never retried."""


class Malformed(ProviderError):
    """The provider answered with something we cannot interpret."""


class RunCancelled(Exception):
    """Raised inside a worker when the run-wide cancellation signal fires."""


class ConfigurationError(RuntimeError):
    """The run cannot produce meaningful output with the current configuration."""
