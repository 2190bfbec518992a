from __future__ import annotations

from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import Retry, RetryTransport

from staterescue.config.http_resilience import RateLimit, ResilienceConfig, RetryPolicy

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping
    from types import TracebackType

__all__ = [
    "RateLimit",
    "ResilienceConfig",
    "ResilientClient",
    "RetryPolicy",
    "build_retry",
]

log = getLogger(__name__)


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


async def _log_throttling(response: httpx.Response) -> None:
    if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
        retry_after = response.headers.get("Retry-After", "-")
        log.warning(
            f"API server kept throttling {response.request.method} "
            f"{response.request.url.path} (retry-after={retry_after})"
        )


class ResilientClient:
    """Async HTTP client with retries and a client-side request budget.

    Streaming requests draw from the same budget as plain ones, so a watch that
    keeps reconnecting cannot crowd out reads and writes.
    """

    def __init__(self, config: ResilienceConfig, *, auth: httpx.Auth | None = None) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )
        self._client = httpx.AsyncClient(
            base_url=config.base_url or "",
            timeout=config.timeout(),
            headers=config.headers(),
            transport=RetryTransport(
                transport=httpx.AsyncHTTPTransport(verify=config.verify),
                retry=build_retry(config.retry),
            ),
            auth=auth,
            event_hooks={"response": [_log_throttling]},
        )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        json: object = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        await self._throttle()
        return await self._client.request(method, url, params=params, json=json, headers=headers)

    async def get(self, url: str, *, params: Mapping[str, str] | None = None) -> httpx.Response:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, *, json: object) -> httpx.Response:
        return await self.request("POST", url, json=json)

    async def put(self, url: str, *, json: object) -> httpx.Response:
        return await self.request("PUT", url, json=json)

    async def patch(self, url: str, *, json: object, content_type: str) -> httpx.Response:
        return await self.request("PATCH", url, json=json, headers={"Content-Type": content_type})

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        timeout: httpx.Timeout | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Open a streaming response; only opening it counts against the budget."""

        await self._throttle()
        async with self._client.stream(
            method, url, params=params, timeout=timeout or self.config.timeout()
        ) as response:
            yield response

    async def _throttle(self) -> None:
        if self._limiter is not None:
            await self._limiter.acquire()
