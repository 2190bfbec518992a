"""State objects and the references between them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from .conventions import DEFAULT_CONVENTIONS, MARKER_LIVE, MARKER_SHADOW

if TYPE_CHECKING:
    from .conventions import RescueConventions

DEFAULT_OBJECT_TYPE = "Opaque"


def _frozen(mapping: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, slots=True)
class ObjectKey:
    """Namespace-scoped identity of a stored object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True, slots=True, kw_only=True)
class OwnerReference:
    """Ownership binding recorded on a dependent object.

    The external store's garbage collector deletes the dependent once the
    owner identified by ``uid`` is gone.
    """

    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = True
    block_owner_deletion: bool = True


@dataclass(frozen=True, slots=True, kw_only=True)
class StateObject:
    """A named, namespaced key-value payload managed by an external system.

    ``data`` is opaque: values are carried verbatim between the original and
    its backup and never interpreted.
    """

    name: str
    namespace: str
    labels: Mapping[str, str] = field(default_factory=dict[str, str])
    annotations: Mapping[str, str] = field(default_factory=dict[str, str])
    data: Mapping[str, str] = field(default_factory=dict[str, str])
    owner_references: tuple[OwnerReference, ...] = ()
    type: str = DEFAULT_OBJECT_TYPE
    resource_version: str | None = None
    uid: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", _frozen(self.labels))
        object.__setattr__(self, "annotations", _frozen(self.annotations))
        object.__setattr__(self, "data", _frozen(self.data))

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(namespace=self.namespace, name=self.name)

    @property
    def is_live(self) -> bool:
        """Whether the default state marker flags this object as the live copy."""
        return self.labels.get(DEFAULT_CONVENTIONS.marker_key) == MARKER_LIVE

    def with_marker(
        self, live: bool, *, conventions: RescueConventions = DEFAULT_CONVENTIONS
    ) -> StateObject:
        labels = dict(self.labels)
        labels[conventions.marker_key] = MARKER_LIVE if live else MARKER_SHADOW
        return replace(self, labels=labels)

    def with_data(self, data: Mapping[str, str]) -> StateObject:
        return replace(self, data=data)

    def is_owned_by(self, uid: str) -> bool:
        return any(ref.uid == uid for ref in self.owner_references)


class ChangeType(StrEnum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass(frozen=True, slots=True, kw_only=True)
class ObjectChange:
    """Notification that a state object was created, updated or deleted."""

    type: ChangeType
    namespace: str
    name: str
    labels: Mapping[str, str] = field(default_factory=dict[str, str])
    owner_references: tuple[OwnerReference, ...] = ()

    @classmethod
    def from_object(cls, change_type: ChangeType, obj: StateObject) -> ObjectChange:
        return cls(
            type=change_type,
            namespace=obj.namespace,
            name=obj.name,
            labels=dict(obj.labels),
            owner_references=obj.owner_references,
        )
