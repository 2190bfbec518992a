"""Pydantic models describing the Kubernetes API payloads we consume."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from staterescue.domain.model import POLICY_GROUP_VERSION


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class KubeBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class OwnerReferencePayload(KubeBaseModel):
    api_version: str = Field(alias="apiVersion")
    kind: str
    name: str
    uid: str
    controller: bool | None = None
    block_owner_deletion: bool | None = Field(default=None, alias="blockOwnerDeletion")


class ObjectMetaPayload(KubeBaseModel):
    name: str
    namespace: str | None = None
    uid: str | None = None
    resource_version: str | None = Field(default=None, alias="resourceVersion")
    generation: int | None = None
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    owner_references: list[OwnerReferencePayload] | None = Field(
        default=None, alias="ownerReferences"
    )


class ListMetaPayload(KubeBaseModel):
    resource_version: str | None = Field(default=None, alias="resourceVersion")


class SecretPayload(KubeBaseModel):
    api_version: str = Field(default="v1", alias="apiVersion")
    kind: Literal["Secret"] = "Secret"
    metadata: ObjectMetaPayload
    data: dict[str, str] | None = None
    type: str | None = None


class SecretListPayload(KubeBaseModel):
    metadata: ListMetaPayload = Field(default_factory=ListMetaPayload)
    items: list[SecretPayload] = Field(default_factory=list[SecretPayload])


class StateRescueSpecPayload(KubeBaseModel):
    state_secret_name: str = Field(default="", alias="stateSecretName")


class StateRescueStatusPayload(KubeBaseModel):
    last_backup_time: datetime | None = Field(default=None, alias="lastBackupTime")
    last_rescue_time: datetime | None = Field(default=None, alias="lastRescueTime")

    _normalize_backup = field_validator("last_backup_time", mode="before")(_blank_to_none)
    _normalize_rescue = field_validator("last_rescue_time", mode="before")(_blank_to_none)


class StateRescuePayload(KubeBaseModel):
    api_version: str = Field(default=POLICY_GROUP_VERSION, alias="apiVersion")
    kind: Literal["StateRescue"] = "StateRescue"
    metadata: ObjectMetaPayload
    spec: StateRescueSpecPayload = Field(default_factory=StateRescueSpecPayload)
    status: StateRescueStatusPayload = Field(default_factory=StateRescueStatusPayload)


class StateRescueListPayload(KubeBaseModel):
    metadata: ListMetaPayload = Field(default_factory=ListMetaPayload)
    items: list[StateRescuePayload] = Field(default_factory=list[StateRescuePayload])


class StatusPayload(KubeBaseModel):
    """``metav1.Status`` returned with API errors and watch ``ERROR`` events."""

    kind: Literal["Status"] = "Status"
    status: str | None = None
    message: str | None = None
    reason: str | None = None
    code: int | None = None


WatchEventType = Literal["ADDED", "MODIFIED", "DELETED", "BOOKMARK", "ERROR"]


class WatchEventPayload(KubeBaseModel):
    type: WatchEventType
    object: dict[str, Any]

    def resource_version(self) -> str | None:
        metadata = self.object.get("metadata")
        if not isinstance(metadata, dict):
            return None
        return ListMetaPayload.model_validate(metadata).resource_version
