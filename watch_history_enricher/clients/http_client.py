from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from ..config import REQUEST, RETRY
from ..errors import AuthInvalid, Malformed, NotFound, RateLimited, Transient
from ..utils.utilities import RateLimiter


def parse_retry_after(headers: Any) -> float | None:
    """Parse a numeric Retry-After header (seconds). HTTP-date values are ignored."""
    try:
        ra = str((headers or {}).get("Retry-After", "") or "").strip()
        return float(ra) if ra else None
    except (TypeError, ValueError):
        return None


@dataclass
class HTTPJSONClient:
    """
    Small helper to standardize request + rate limiting + stats counting + error mapping.

    Every failure is raised as one of the provider error kinds; callers never see `requests`
    exceptions. Retrying is the caller's job (see `utils.retry.RetryPolicy`).

    Provider clients pass in their own `requests.Session` and `stats` dict. The session is
    shared read-only between worker threads; counters are updated under a lock.
    """

    session: requests.Session
    stats: dict[str, Any] | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def bump(self, key: str, amount: int = 1) -> None:
        if self.stats is None:
            return
        with self._lock:
            self.stats[key] = int(self.stats.get(key, 0) or 0) + amount

    @staticmethod
    def format_timing(stats: dict[str, Any] | None, *, key: str) -> str:
        """
        Format request counter and cumulative time for a key tracked via `bump()`.
        """
        if not stats:
            return f"{key}=0"
        return f"{key}={int(stats.get(key, 0) or 0)} {key}_ms={int(stats.get(f'{key}_ms', 0) or 0)}"

    def request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: Any | None = None,
        ratelimiter: RateLimiter | None = None,
        timeout_s: float = REQUEST.timeout_s,
        counter_key: str = "http_get",
        context: str,
    ) -> Any:
        if ratelimiter is not None:
            ratelimiter.wait()
        self.bump(counter_key)
        kwargs: dict[str, Any] = {"timeout": timeout_s}
        if params is not None:
            kwargs["params"] = params
        if headers is not None:
            kwargs["headers"] = headers
        if json_body is not None:
            kwargs["json"] = json_body

        t0 = time.perf_counter()
        try:
            r = self.session.request(method, url, **kwargs)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            self.bump("network_errors")
            logging.debug(f"[NETWORK] {context}: {type(e).__name__}: {e}")
            raise Transient(f"{context}: {type(e).__name__}: {e}") from e
        except requests.exceptions.RequestException as e:
            self.bump("network_errors")
            raise Transient(f"{context}: {type(e).__name__}: {e}") from e
        finally:
            self.bump(f"{counter_key}_ms", int(round((time.perf_counter() - t0) * 1000.0)))

        status = int(r.status_code)
        if status in (401, 403):
            self.bump("http_errors")
            raise AuthInvalid(f"{context}: HTTP {status}")
        if status == 404:
            raise NotFound(f"{context}: HTTP 404")
        if status == 429:
            self.bump("http_429")
            retry_after = parse_retry_after(getattr(r, "headers", None))
            if retry_after is None:
                retry_after = RETRY.http_429_default_retry_after_s
            raise RateLimited(f"{context}: HTTP 429", retry_after_s=retry_after)
        if status >= 500:
            self.bump("http_errors")
            raise Transient(f"{context}: HTTP {status}")
        if status >= 400:
            self.bump("http_errors")
            logging.error(f"[HTTP] {context}: HTTP {status} (request rejected)")
            raise Malformed(f"{context}: HTTP {status}")

        try:
            return r.json()
        except ValueError as e:
            raise Malformed(f"{context}: invalid JSON response") from e

    def get_json(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("counter_key", "http_get")
        return self.request_json("GET", url, **kwargs)

    def post_json(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("counter_key", "http_post")
        return self.request_json("POST", url, **kwargs)


@dataclass
class HTTPRequestDefaults:
    ratelimiter: RateLimiter | None = None
    timeout_s: float = REQUEST.timeout_s
    headers: dict[str, str] | None = None
    counter_key: str = "http_get"
    context_prefix: str | None = None


@dataclass
class ConfiguredHTTPJSONClient:
    """
    Convenience wrapper over HTTPJSONClient that carries default parameters.

    This keeps provider code concise by instantiating a per-provider client configured with
    its rate limiter, counter key, default headers, etc.
    """

    http: HTTPJSONClient
    defaults: HTTPRequestDefaults

    def _ctx(self, context: str) -> str:
        prefix = self.defaults.context_prefix
        if prefix:
            return f"{prefix}{': ' if context else ''}{context}"
        return context

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        counter_key: str | None = None,
        context: str = "",
    ) -> Any:
        return self.http.get_json(
            url,
            params=params,
            headers=self.defaults.headers if headers is None else headers,
            ratelimiter=self.defaults.ratelimiter,
            timeout_s=self.defaults.timeout_s,
            counter_key=counter_key or self.defaults.counter_key,
            context=self._ctx(context),
        )

    def post_json(
        self,
        url: str,
        *,
        json_body: Any | None = None,
        headers: dict[str, str] | None = None,
        counter_key: str | None = None,
        context: str = "",
    ) -> Any:
        return self.http.post_json(
            url,
            json_body=json_body,
            headers=self.defaults.headers if headers is None else headers,
            ratelimiter=self.defaults.ratelimiter,
            timeout_s=self.defaults.timeout_s,
            counter_key=counter_key or "http_post",
            context=self._ctx(context),
        )
