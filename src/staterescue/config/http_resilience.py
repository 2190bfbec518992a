"""Transport settings for the API server client.

Responses are never cached: every read observes the current state of the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

USER_AGENT = "staterescue"


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Retries for transient API server failures.

    POST is never retried. PUT and PATCH are, since every write carries the
    resourceVersion it was read at and a replay can only fail with a conflict.
    """

    total: int = 4
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = frozenset({"GET", "PUT", "PATCH"})
    status_forcelist: frozenset[int] = frozenset({429, 500, 502, 503, 504})
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    verify: str | bool = True
    user_agent: str = USER_AGENT
    # Extra read time granted to a watch beyond its server-side timeout.
    watch_grace_seconds: float = 30.0

    def headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "User-Agent": self.user_agent}

    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.timeout_seconds)

    def stream_timeout(self, server_timeout_seconds: float) -> httpx.Timeout:
        """Timeout for a long poll the server closes after ``server_timeout_seconds``."""

        return httpx.Timeout(
            self.timeout_seconds,
            read=server_timeout_seconds + self.watch_grace_seconds,
        )
