"""Orchestrator for one reconciliation pass.

A pass runs strictly in order: load the policy, list the state-labelled
objects in its namespace, pair them by name, restore a missing original from
its backup, then refresh the backup of a present original. There are no
retries inside a pass. Soft failures (a concurrent writer won a race) are
reported through ``PassResult.requeue``; everything else raises and the whole
pass is retried by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from staterescue.domain.model import DEFAULT_CONVENTIONS, RescueConventions
from staterescue.domain.ports import utcnow

from .backup import BackupSynchronizer
from .diagnostics import EventKind, RescueEvent, Severity, StepOutcome
from .errors import NotFoundError
from .pairing import resolve_pair
from .restore import RescueRestorer

if TYPE_CHECKING:
    from staterescue.domain.model import PolicyKey, RescuePolicy, StateObject
    from staterescue.domain.ports import Clock, ObjectStore, PolicyStore

    from .diagnostics import Action
    from .pairing import PairingResult


@dataclass(slots=True)
class PassResult:
    """Summary of one pass for one policy."""

    key: PolicyKey
    actions: list[Action] = field(default_factory=list["Action"])
    events: list[RescueEvent] = field(default_factory=list["RescueEvent"])
    requeue: bool = False
    policy: RescuePolicy | None = None

    def absorb(self, outcome: StepOutcome) -> None:
        self.actions.extend(outcome.actions)
        self.events.extend(outcome.events)
        self.requeue = self.requeue or outcome.requeue


@dataclass(slots=True)
class ReconciliationEngine:
    """Run full reconciliation for one policy key."""

    policies: PolicyStore
    objects: ObjectStore
    restorer: RescueRestorer
    synchronizer: BackupSynchronizer
    conventions: RescueConventions = DEFAULT_CONVENTIONS

    @classmethod
    def build(
        cls,
        *,
        policies: PolicyStore,
        objects: ObjectStore,
        clock: Clock = utcnow,
        conventions: RescueConventions = DEFAULT_CONVENTIONS,
    ) -> ReconciliationEngine:
        return cls(
            policies=policies,
            objects=objects,
            restorer=RescueRestorer(
                objects=objects, policies=policies, clock=clock, conventions=conventions
            ),
            synchronizer=BackupSynchronizer(
                objects=objects, policies=policies, clock=clock, conventions=conventions
            ),
            conventions=conventions,
        )

    async def reconcile(self, key: PolicyKey) -> PassResult:
        """Run all reconciliation steps for the policy identified by ``key``."""

        result = PassResult(key=key)

        try:
            policy = await self.policies.get(key.namespace, key.name)
        except NotFoundError:
            result.events.append(
                RescueEvent(
                    kind=EventKind.POLICY_MISSING,
                    message="Policy not found, nothing to reconcile",
                    namespace=key.namespace,
                    name=key.name,
                )
            )
            return result

        objects = await self._list_scoped_objects(policy)
        pairing = resolve_pair(objects, policy.target_name, conventions=self.conventions)
        result.events.extend(_duplicate_events(pairing))
        pair = pairing.pair

        if pair.is_empty:
            result.events.append(
                RescueEvent(
                    kind=EventKind.NOTHING_TO_PROTECT,
                    message=f"Neither {policy.target_name} nor its backup exist",
                    namespace=policy.namespace,
                    name=policy.target_name,
                )
            )
            result.policy = policy
            return result

        if pair.needs_restore and pair.backup is not None:
            policy, outcome = await self.restorer.restore_if_missing(policy, pair.backup)
            result.absorb(outcome)

        if pair.needs_backup and pair.original is not None:
            policy, outcome = await self.synchronizer.ensure_backup(policy, pair.original)
            result.absorb(outcome)

        result.policy = policy
        return result

    async def _list_scoped_objects(self, policy: RescuePolicy) -> list[StateObject]:
        try:
            return list(await self.objects.list(policy.namespace, self.conventions.selector))
        except NotFoundError:
            return []


def _duplicate_events(pairing: PairingResult) -> list[RescueEvent]:
    return [
        RescueEvent(
            kind=EventKind.DUPLICATE_OBJECT,
            message="Store listed the same name twice; using the first occurrence",
            namespace=duplicate.namespace,
            name=duplicate.name,
            severity=Severity.WARNING,
        )
        for duplicate in pairing.duplicates
    ]


__all__ = ["PassResult", "ReconciliationEngine"]
