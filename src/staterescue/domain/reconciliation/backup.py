"""Keep a backup next to every original.

Each call re-copies the original's payload into the backup, whether or not it
changed since the last pass. The write is idempotent, so redundant updates
are harmless.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from staterescue.domain.model import (
    DEFAULT_CONVENTIONS,
    POLICY_GROUP_VERSION,
    POLICY_KIND,
    OwnerReference,
    RescueConventions,
    StateObject,
)
from staterescue.domain.ports import utcnow

from .diagnostics import Action, ActionKind, EventKind, RescueEvent, Severity, StepOutcome
from .errors import AlreadyExistsError, NotFoundError, StoreConflictError
from .naming import backup_name_for
from .status import persist_status

if TYPE_CHECKING:
    from staterescue.domain.model import RescuePolicy
    from staterescue.domain.ports import Clock, ObjectStore, PolicyStore


def owner_reference_for(policy: RescuePolicy) -> OwnerReference:
    if not policy.uid:
        raise ValueError(f"Policy {policy.key} has no uid to bind ownership to")
    return OwnerReference(
        api_version=POLICY_GROUP_VERSION,
        kind=POLICY_KIND,
        name=policy.name,
        uid=policy.uid,
    )


def build_backup(
    policy: RescuePolicy,
    original: StateObject,
    *,
    conventions: RescueConventions = DEFAULT_CONVENTIONS,
) -> StateObject:
    """Return a new backup object for ``original``, owned by ``policy``."""

    return StateObject(
        name=backup_name_for(original.name, conventions=conventions),
        namespace=original.namespace,
        labels=original.labels,
        annotations=dict(original.annotations),
        data=dict(original.data),
        type=original.type,
        owner_references=(owner_reference_for(policy),),
    ).with_marker(False, conventions=conventions)


@dataclass(slots=True)
class BackupSynchronizer:
    objects: ObjectStore
    policies: PolicyStore
    clock: Clock = field(default=utcnow)
    conventions: RescueConventions = DEFAULT_CONVENTIONS

    async def ensure_backup(
        self,
        policy: RescuePolicy,
        original: StateObject,
    ) -> tuple[RescuePolicy, StepOutcome]:
        """Create or refresh the backup of ``original``.

        Returns the policy to carry forward (with its stored status when the
        status write succeeded) and the outcome of this step.
        """

        outcome = StepOutcome.empty()
        backup_name = backup_name_for(original.name, conventions=self.conventions)

        try:
            existing = await self.objects.get(original.namespace, backup_name)
        except NotFoundError:
            existing = None

        if existing is None:
            if not await self._create(policy, original, backup_name, outcome):
                return policy, outcome
        elif not await self._refresh(existing, original, outcome):
            return policy, outcome

        policy = await persist_status(
            self.policies, policy.with_backup_time(self.clock()), outcome
        )
        return policy, outcome

    async def _create(
        self,
        policy: RescuePolicy,
        original: StateObject,
        backup_name: str,
        outcome: StepOutcome,
    ) -> bool:
        outcome.events.append(
            RescueEvent(
                kind=EventKind.BACKUP_MISSING,
                message=f"No backup for {original.name}, creating {backup_name}",
                namespace=original.namespace,
                name=backup_name,
            )
        )
        backup = build_backup(policy, original, conventions=self.conventions)
        try:
            await self.objects.create(backup)
        except AlreadyExistsError as exc:
            outcome.events.append(
                RescueEvent(
                    kind=EventKind.CREATE_CONFLICT,
                    message=f"Backup created concurrently: {exc}",
                    namespace=original.namespace,
                    name=backup_name,
                    severity=Severity.WARNING,
                )
            )
            outcome.requeue = True
            return False

        outcome.actions.append(
            Action(kind=ActionKind.BACKUP_CREATED, namespace=backup.namespace, name=backup.name)
        )
        return True

    async def _refresh(
        self,
        existing: StateObject,
        original: StateObject,
        outcome: StepOutcome,
    ) -> bool:
        try:
            await self.objects.update(existing.with_data(original.data))
        except StoreConflictError as exc:
            outcome.events.append(
                RescueEvent(
                    kind=EventKind.UPDATE_CONFLICT,
                    message=f"Backup changed while refreshing it: {exc}",
                    namespace=existing.namespace,
                    name=existing.name,
                    severity=Severity.WARNING,
                )
            )
            outcome.requeue = True
            return False
        except NotFoundError:
            outcome.events.append(
                RescueEvent(
                    kind=EventKind.OBJECT_VANISHED,
                    message="Backup deleted while refreshing it",
                    namespace=existing.namespace,
                    name=existing.name,
                    severity=Severity.WARNING,
                )
            )
            outcome.requeue = True
            return False

        outcome.actions.append(
            Action(
                kind=ActionKind.BACKUP_UPDATED,
                namespace=existing.namespace,
                name=existing.name,
            )
        )
        return True


__all__ = ["BackupSynchronizer", "build_backup", "owner_reference_for"]
