"""HTTP client for the Kubernetes API server."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from staterescue.adapters.http_resilience import ResilienceConfig, ResilientClient

from .schema import StatusPayload, WatchEventPayload

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable, Generator, Mapping, Sequence
    from pathlib import Path
    from types import TracebackType

    from staterescue.config import KubernetesConfig

log = getLogger(__name__)

JSON_PATCH = "application/json-patch+json"


class KubernetesAPIError(RuntimeError):
    """Raised when the API server rejects a request."""

    def __init__(self, message: str, *, status_code: int, reason: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason

    @property
    def is_gone(self) -> bool:
        return self.status_code == httpx.codes.GONE


class BearerTokenAuth(httpx.Auth):
    """Attach a bearer token, re-reading ``token_file`` for every request."""

    def __init__(self, *, token: str | None = None, token_file: Path | None = None) -> None:
        self._token = token
        self._token_file = token_file

    def _current_token(self) -> str | None:
        if self._token_file is not None:
            return self._token_file.read_text().strip() or None
        return self._token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._current_token()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        yield request


def _default_client_factory(
    config: ResilienceConfig,
    auth: httpx.Auth | None,
) -> ResilientClient:
    return ResilientClient(config, auth=auth)


def error_from_response(response: httpx.Response) -> KubernetesAPIError:
    """Build an error from a failed response, preferring the ``Status`` body."""

    reason: str | None = None
    message = response.reason_phrase or f"HTTP {response.status_code}"
    try:
        status = StatusPayload.model_validate(response.json())
    except (json.JSONDecodeError, ValidationError, UnicodeDecodeError):
        pass
    else:
        reason = status.reason
        message = status.message or message
    return KubernetesAPIError(
        f"{response.request.method} {response.request.url.path}: {message}",
        status_code=response.status_code,
        reason=reason,
    )


@dataclass(slots=True)
class KubernetesApi:
    """Thin JSON client over the core and custom-resource REST endpoints.

    One instance owns one connection pool; use it as an async context manager
    for the lifetime of the controller.
    """

    config: KubernetesConfig
    client_factory: Callable[[ResilienceConfig, httpx.Auth | None], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False)

    async def __aenter__(self) -> KubernetesApi:
        self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> ResilientClient:
        if self._client is None:
            auth = None
            if self.config.token or self.config.token_file:
                auth = BearerTokenAuth(token=self.config.token, token_file=self.config.token_file)
            self._client = self.client_factory(self.config.resilience, auth)
        return self._client

    async def get(self, path: str, *, params: Mapping[str, str] | None = None) -> dict[str, Any]:
        response = await self._ensure_client().get(path, params=dict(params or {}))
        return self._json(response)

    async def post(self, path: str, body: Mapping[str, Any]) -> dict[str, Any]:
        response = await self._ensure_client().post(path, json=dict(body))
        return self._json(response)

    async def put(self, path: str, body: Mapping[str, Any]) -> dict[str, Any]:
        response = await self._ensure_client().put(path, json=dict(body))
        return self._json(response)

    async def json_patch(
        self, path: str, operations: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        """Apply an RFC 6902 patch, leaving fields it does not name untouched."""

        response = await self._ensure_client().patch(
            path, json=[dict(op) for op in operations], content_type=JSON_PATCH
        )
        return self._json(response)

    async def watch(
        self,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        resource_version: str | None = None,
        timeout_seconds: int = 300,
    ) -> AsyncGenerator[WatchEventPayload, None]:
        """Yield watch events until the server closes the stream.

        A watch ``ERROR`` event is raised as ``KubernetesAPIError`` carrying the
        status code of the embedded ``Status`` (410 when the version expired).
        """

        query = dict(params or {})
        query.update(
            {
                "watch": "1",
                "allowWatchBookmarks": "true",
                "timeoutSeconds": str(timeout_seconds),
            }
        )
        if resource_version:
            query["resourceVersion"] = resource_version

        timeout = self.config.resilience.stream_timeout(timeout_seconds)
        async with self._ensure_client().stream(
            "GET", path, params=query, timeout=timeout
        ) as response:
            if response.is_error:
                await response.aread()
                raise error_from_response(response)
            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                event = WatchEventPayload.model_validate_json(line)
                if event.type == "ERROR":
                    status = StatusPayload.model_validate(event.object)
                    raise KubernetesAPIError(
                        f"watch {path}: {status.message or status.reason or 'error'}",
                        status_code=status.code or httpx.codes.INTERNAL_SERVER_ERROR,
                        reason=status.reason,
                    )
                yield event

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        if response.is_error:
            error = error_from_response(response)
            log.debug("Kubernetes API error %s: %s", error.status_code, error)
            raise error
        payload = response.json()
        if not isinstance(payload, dict):
            raise KubernetesAPIError(
                "Unexpected Kubernetes response payload",
                status_code=response.status_code,
            )
        return payload  # pyright: ignore[reportUnknownVariableType]


__all__ = ["BearerTokenAuth", "KubernetesAPIError", "KubernetesApi", "error_from_response"]
