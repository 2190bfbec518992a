"""Object and policy stores backed by the Kubernetes API.

Adapter errors are translated here into the domain's store taxonomy so the
reconciliation core never sees HTTP details.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from staterescue.domain.model import POLICY_GROUP_VERSION, POLICY_PLURAL
from staterescue.domain.reconciliation.errors import (
    AlreadyExistsError,
    NotFoundError,
    StoreConflictError,
    StoreError,
    StoreUnavailableError,
)

from .client import KubernetesAPIError
from .schema import SecretListPayload, StateRescueListPayload
from .translator import (
    parse_policy,
    parse_secret,
    policy_status_body,
    secret_body,
    secret_update_patch,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from staterescue.domain.model import RescuePolicy, StateObject

    from .client import KubernetesApi

log = getLogger(__name__)


class Operation(StrEnum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"


def label_selector(selector: Mapping[str, str]) -> str:
    return ",".join(f"{key}={value}" for key, value in sorted(selector.items()))


def secrets_path(namespace: str | None, name: str | None = None) -> str:
    if namespace is None:
        return "/api/v1/secrets"
    path = f"/api/v1/namespaces/{quote(namespace)}/secrets"
    return f"{path}/{quote(name)}" if name else path


def policies_path(namespace: str | None, name: str | None = None) -> str:
    base = f"/apis/{POLICY_GROUP_VERSION}"
    if namespace is None:
        return f"{base}/{POLICY_PLURAL}"
    path = f"{base}/namespaces/{quote(namespace)}/{POLICY_PLURAL}"
    return f"{path}/{quote(name)}" if name else path


@contextmanager
def translate_errors(
    operation: Operation,
    *,
    namespace: str | None = None,
    name: str | None = None,
) -> Iterator[None]:
    """Re-raise adapter failures as domain store errors."""

    try:
        yield
    except KubernetesAPIError as exc:
        status = exc.status_code
        if status == httpx.codes.NOT_FOUND:
            raise NotFoundError(str(exc), namespace=namespace, name=name) from exc
        if status == httpx.codes.CONFLICT:
            if operation is Operation.CREATE:
                raise AlreadyExistsError(str(exc), namespace=namespace, name=name) from exc
            raise StoreConflictError(str(exc), namespace=namespace, name=name) from exc
        if status == httpx.codes.TOO_MANY_REQUESTS or status >= httpx.codes.INTERNAL_SERVER_ERROR:
            raise StoreUnavailableError(str(exc), namespace=namespace, name=name) from exc
        raise StoreError(str(exc), namespace=namespace, name=name) from exc
    except httpx.TransportError as exc:
        log.warning(f"Kubernetes API unreachable during {operation}: {exc}")
        raise StoreUnavailableError(str(exc), namespace=namespace, name=name) from exc
    except ValidationError as exc:
        raise StoreError(
            f"Unexpected payload during {operation}: {exc}", namespace=namespace, name=name
        ) from exc


@dataclass(slots=True)
class KubernetesObjectStore:
    """State objects stored as Kubernetes secrets."""

    api: KubernetesApi

    async def list(self, namespace: str, selector: Mapping[str, str]) -> Sequence[StateObject]:
        with translate_errors(Operation.READ, namespace=namespace):
            payload = await self.api.get(
                secrets_path(namespace), params={"labelSelector": label_selector(selector)}
            )
            listing = SecretListPayload.model_validate(payload)
            return [parse_secret(item, namespace=namespace) for item in listing.items]

    async def get(self, namespace: str, name: str) -> StateObject:
        with translate_errors(Operation.READ, namespace=namespace, name=name):
            payload = await self.api.get(secrets_path(namespace, name))
            return parse_secret(payload, namespace=namespace)

    async def create(self, obj: StateObject) -> StateObject:
        with translate_errors(Operation.CREATE, namespace=obj.namespace, name=obj.name):
            payload = await self.api.post(secrets_path(obj.namespace), secret_body(obj))
            return parse_secret(payload, namespace=obj.namespace)

    async def update(self, obj: StateObject) -> StateObject:
        with translate_errors(Operation.UPDATE, namespace=obj.namespace, name=obj.name):
            payload = await self.api.json_patch(
                secrets_path(obj.namespace, obj.name), secret_update_patch(obj)
            )
            return parse_secret(payload, namespace=obj.namespace)


@dataclass(slots=True)
class KubernetesPolicyStore:
    """Rescue policies stored as ``StateRescue`` custom resources."""

    api: KubernetesApi

    async def get(self, namespace: str, name: str) -> RescuePolicy:
        with translate_errors(Operation.READ, namespace=namespace, name=name):
            payload = await self.api.get(policies_path(namespace, name))
            return parse_policy(payload, namespace=namespace)

    async def list(self, namespace: str | None = None) -> Sequence[RescuePolicy]:
        with translate_errors(Operation.READ, namespace=namespace):
            payload = await self.api.get(policies_path(namespace))
            listing = StateRescueListPayload.model_validate(payload)
            return [parse_policy(item, namespace=namespace) for item in listing.items]

    async def update_status(self, policy: RescuePolicy) -> RescuePolicy:
        with translate_errors(Operation.UPDATE, namespace=policy.namespace, name=policy.name):
            path = f"{policies_path(policy.namespace, policy.name)}/status"
            payload = await self.api.put(path, policy_status_body(policy))
            return parse_policy(payload, namespace=policy.namespace)


__all__ = [
    "KubernetesObjectStore",
    "KubernetesPolicyStore",
    "Operation",
    "label_selector",
    "policies_path",
    "secrets_path",
    "translate_errors",
]
