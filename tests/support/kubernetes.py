"""Helpers for exercising the Kubernetes adapter against a mock transport."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx

from staterescue.adapters.http_resilience import ResilienceConfig, ResilientClient
from staterescue.adapters.kubernetes import KubernetesApi
from staterescue.config import KubernetesConfig

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

API_SERVER = "https://kube.test"
TOKEN = "secret-token"

type Handler = Callable[[httpx.Request], httpx.Response]


def make_client_factory(
    handler: Handler,
) -> Callable[[ResilienceConfig, httpx.Auth | None], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig, auth: httpx.Auth | None) -> ResilientClient:
        client = ResilientClient(resilience, auth=auth)
        mock_kwargs: dict[str, Any] = {
            "base_url": resilience.base_url or "",
            "headers": resilience.headers(),
            "transport": httpx.MockTransport(async_handler),
        }
        if auth is not None:
            mock_kwargs["auth"] = auth
        client._client = httpx.AsyncClient(**mock_kwargs)  # noqa: SLF001
        return client

    return factory


def make_config(*, token: str | None = TOKEN) -> KubernetesConfig:
    return KubernetesConfig(
        api_server=API_SERVER,
        resilience=ResilienceConfig(name="kubernetes", base_url=API_SERVER),
        token=token,
    )


def make_api(handler: Handler, *, token: str | None = TOKEN) -> KubernetesApi:
    return KubernetesApi(make_config(token=token), client_factory=make_client_factory(handler))


def status_response(code: int, reason: str, message: str = "") -> httpx.Response:
    return httpx.Response(
        code,
        json={
            "kind": "Status",
            "apiVersion": "v1",
            "status": "Failure",
            "message": message or reason,
            "reason": reason,
            "code": code,
        },
    )


def watch_stream(events: Iterable[tuple[str, dict[str, Any]]]) -> httpx.Response:
    lines = "".join(
        json.dumps({"type": event_type, "object": obj}) + "\n" for event_type, obj in events
    )
    return httpx.Response(200, content=lines.encode())


def secret_payload(
    name: str,
    *,
    namespace: str | None = "default",
    resource_version: str = "1",
    labels: dict[str, str] | None = None,
    data: dict[str, str] | None = None,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "name": name,
        "uid": f"uid-{name}",
        "resourceVersion": resource_version,
        "labels": labels
        if labels is not None
        else {"app.kubernetes.io/managed-by": "terraform", "tfstate": "true"},
    }
    if namespace is not None:
        metadata["namespace"] = namespace
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": metadata,
        "type": "Opaque",
        "data": data if data is not None else {"tfstate": "eyJzZXJpYWwiOjF9"},
    }


def policy_payload(
    name: str,
    *,
    namespace: str = "default",
    target_name: str = "tfstate-default-app",
    resource_version: str = "1",
    status: dict[str, str] | None = None,
    generation: int | None = None,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "name": name,
        "namespace": namespace,
        "uid": f"uid-{name}",
        "resourceVersion": resource_version,
    }
    if generation is not None:
        metadata["generation"] = generation
    return {
        "apiVersion": "terraform.hammadzf.github.io/v1",
        "kind": "StateRescue",
        "metadata": metadata,
        "spec": {"stateSecretName": target_name},
        "status": status or {},
    }


__all__ = [
    "API_SERVER",
    "TOKEN",
    "make_api",
    "make_client_factory",
    "make_config",
    "policy_payload",
    "secret_payload",
    "status_response",
    "watch_stream",
]
