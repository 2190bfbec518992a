"""Rescue policies: user-declared intent to protect one named state object."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class PolicyKey:
    """Reconciliation request key for one policy."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True, slots=True, kw_only=True)
class RescueStatus:
    """Observed state written back by the reconciler (last writer wins)."""

    last_backup_time: datetime | None = None
    last_rescue_time: datetime | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RescuePolicy:
    """Names the state object to protect within ``namespace``.

    ``target_name`` is the pairing key: the original object carries exactly
    this name and its backup carries it behind the backup prefix.
    """

    name: str
    namespace: str
    target_name: str
    uid: str | None = None
    resource_version: str | None = None
    status: RescueStatus = field(default_factory=RescueStatus)

    @property
    def key(self) -> PolicyKey:
        return PolicyKey(namespace=self.namespace, name=self.name)

    def with_backup_time(self, timestamp: datetime) -> RescuePolicy:
        return replace(self, status=replace(self.status, last_backup_time=timestamp))

    def with_rescue_time(self, timestamp: datetime) -> RescuePolicy:
        return replace(self, status=replace(self.status, last_rescue_time=timestamp))
