"""Translate Kubernetes payloads into domain objects and back."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from staterescue.domain.model import (
    DEFAULT_OBJECT_TYPE,
    POLICY_GROUP_VERSION,
    POLICY_KIND,
    OwnerReference,
    RescuePolicy,
    RescueStatus,
    StateObject,
)

from .schema import (
    ObjectMetaPayload,
    OwnerReferencePayload,
    SecretPayload,
    StateRescuePayload,
)

if TYPE_CHECKING:
    from collections.abc import Mapping


def format_time(value: datetime) -> str:
    """Render ``value`` the way ``metav1.Time`` serialises (RFC 3339, seconds, UTC)."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _owner_reference(payload: OwnerReferencePayload) -> OwnerReference:
    return OwnerReference(
        api_version=payload.api_version,
        kind=payload.kind,
        name=payload.name,
        uid=payload.uid,
        controller=bool(payload.controller),
        block_owner_deletion=bool(payload.block_owner_deletion),
    )


def _namespace(metadata: ObjectMetaPayload, fallback: str | None) -> str:
    namespace = metadata.namespace or fallback
    if not namespace:
        raise ValueError(f"Object {metadata.name!r} carries no namespace")
    return namespace


def parse_secret(
    payload: SecretPayload | Mapping[str, Any],
    *,
    namespace: str | None = None,
) -> StateObject:
    secret = (
        payload if isinstance(payload, SecretPayload) else SecretPayload.model_validate(payload)
    )
    metadata = secret.metadata
    return StateObject(
        name=metadata.name,
        namespace=_namespace(metadata, namespace),
        labels=metadata.labels or {},
        annotations=metadata.annotations or {},
        data=secret.data or {},
        owner_references=tuple(_owner_reference(ref) for ref in metadata.owner_references or ()),
        type=secret.type or DEFAULT_OBJECT_TYPE,
        resource_version=metadata.resource_version,
        uid=metadata.uid,
    )


def secret_body(obj: StateObject) -> dict[str, Any]:
    """Return the request body creating ``obj``."""

    metadata: dict[str, Any] = {
        "name": obj.name,
        "namespace": obj.namespace,
        "labels": dict(obj.labels),
    }
    if obj.annotations:
        metadata["annotations"] = dict(obj.annotations)
    if obj.owner_references:
        metadata["ownerReferences"] = [
            {
                "apiVersion": ref.api_version,
                "kind": ref.kind,
                "name": ref.name,
                "uid": ref.uid,
                "controller": ref.controller,
                "blockOwnerDeletion": ref.block_owner_deletion,
            }
            for ref in obj.owner_references
        ]
    if obj.resource_version:
        metadata["resourceVersion"] = obj.resource_version
    if obj.uid:
        metadata["uid"] = obj.uid
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": metadata,
        "type": obj.type,
        "data": dict(obj.data),
    }


def secret_update_patch(obj: StateObject) -> list[dict[str, Any]]:
    """Return the JSON patch writing the labels, annotations and data of ``obj``.

    Metadata the domain does not model (finalizers, managed fields, owners
    added by others) and the ``immutable`` flag stay as the server has them.
    Setting ``resourceVersion`` makes the server reject the patch with a
    conflict when the secret changed since ``obj`` was read.
    """

    operations: list[dict[str, Any]] = []
    if obj.resource_version:
        operations.append(
            {"op": "replace", "path": "/metadata/resourceVersion", "value": obj.resource_version}
        )
    operations.extend(
        [
            {"op": "add", "path": "/metadata/labels", "value": dict(obj.labels)},
            {"op": "add", "path": "/metadata/annotations", "value": dict(obj.annotations)},
            {"op": "add", "path": "/data", "value": dict(obj.data)},
        ]
    )
    return operations


def parse_policy(
    payload: StateRescuePayload | Mapping[str, Any],
    *,
    namespace: str | None = None,
) -> RescuePolicy:
    resource = (
        payload
        if isinstance(payload, StateRescuePayload)
        else StateRescuePayload.model_validate(payload)
    )
    metadata = resource.metadata
    return RescuePolicy(
        name=metadata.name,
        namespace=_namespace(metadata, namespace),
        target_name=resource.spec.state_secret_name,
        uid=metadata.uid,
        resource_version=metadata.resource_version,
        status=RescueStatus(
            last_backup_time=_aware(resource.status.last_backup_time),
            last_rescue_time=_aware(resource.status.last_rescue_time),
        ),
    )


def policy_status_body(policy: RescuePolicy) -> dict[str, Any]:
    """Return the body for a status-subresource update of ``policy``."""

    status: dict[str, str] = {}
    if policy.status.last_backup_time is not None:
        status["lastBackupTime"] = format_time(policy.status.last_backup_time)
    if policy.status.last_rescue_time is not None:
        status["lastRescueTime"] = format_time(policy.status.last_rescue_time)

    metadata: dict[str, Any] = {"name": policy.name, "namespace": policy.namespace}
    if policy.resource_version:
        metadata["resourceVersion"] = policy.resource_version
    if policy.uid:
        metadata["uid"] = policy.uid
    return {
        "apiVersion": POLICY_GROUP_VERSION,
        "kind": POLICY_KIND,
        "metadata": metadata,
        "spec": {"stateSecretName": policy.target_name},
        "status": status,
    }


__all__ = [
    "format_time",
    "parse_policy",
    "parse_secret",
    "policy_status_body",
    "secret_body",
    "secret_update_patch",
]
