"""Recreate a deleted original from its backup."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from staterescue.domain.model import (
    DEFAULT_CONVENTIONS,
    RescueConventions,
    StateObject,
)
from staterescue.domain.ports import utcnow

from .diagnostics import Action, ActionKind, EventKind, RescueEvent, Severity, StepOutcome
from .errors import AlreadyExistsError, MalformedStateError, NotFoundError
from .naming import original_name_for
from .status import persist_status

if TYPE_CHECKING:
    from staterescue.domain.model import RescuePolicy
    from staterescue.domain.ports import Clock, ObjectStore, PolicyStore


def build_original(
    backup: StateObject,
    original_name: str,
    *,
    conventions: RescueConventions = DEFAULT_CONVENTIONS,
) -> StateObject:
    """Return a live object rebuilt from ``backup``.

    The result carries no owner reference: deleting the policy must never take
    the restored live data with it.
    """

    return StateObject(
        name=original_name,
        namespace=backup.namespace,
        labels=backup.labels,
        annotations=dict(backup.annotations),
        data=dict(backup.data),
        type=backup.type,
    ).with_marker(True, conventions=conventions)


@dataclass(slots=True)
class RescueRestorer:
    objects: ObjectStore
    policies: PolicyStore
    clock: Clock = field(default=utcnow)
    conventions: RescueConventions = DEFAULT_CONVENTIONS

    async def restore_if_missing(
        self,
        policy: RescuePolicy,
        backup: StateObject,
    ) -> tuple[RescuePolicy, StepOutcome]:
        """Restore the original of ``backup`` if the store no longer has it.

        Fetch errors other than ``NotFoundError`` propagate and end the pass.
        """

        outcome = StepOutcome.empty()
        try:
            original_name = original_name_for(backup.name, conventions=self.conventions)
        except MalformedStateError as exc:
            outcome.events.append(
                RescueEvent(
                    kind=EventKind.MALFORMED_STATE,
                    message=str(exc),
                    namespace=backup.namespace,
                    name=backup.name,
                    severity=Severity.ERROR,
                )
            )
            return policy, outcome

        try:
            await self.objects.get(backup.namespace, original_name)
        except NotFoundError:
            pass
        else:
            outcome.events.append(
                RescueEvent(
                    kind=EventKind.ORIGINAL_PRESENT,
                    message="Original reappeared before it had to be restored",
                    namespace=backup.namespace,
                    name=original_name,
                )
            )
            return policy, outcome

        outcome.events.append(
            RescueEvent(
                kind=EventKind.ORIGINAL_MISSING,
                message=f"Original missing, restoring it from {backup.name}",
                namespace=backup.namespace,
                name=original_name,
                severity=Severity.WARNING,
            )
        )
        original = build_original(backup, original_name, conventions=self.conventions)
        try:
            await self.objects.create(original)
        except AlreadyExistsError as exc:
            outcome.events.append(
                RescueEvent(
                    kind=EventKind.CREATE_CONFLICT,
                    message=f"Original recreated concurrently: {exc}",
                    namespace=backup.namespace,
                    name=original_name,
                    severity=Severity.WARNING,
                )
            )
            outcome.requeue = True
            return policy, outcome

        outcome.actions.append(
            Action(
                kind=ActionKind.ORIGINAL_RESTORED,
                namespace=original.namespace,
                name=original_name,
            )
        )
        policy = await persist_status(
            self.policies, policy.with_rescue_time(self.clock()), outcome
        )
        return policy, outcome


__all__ = ["RescueRestorer", "build_original"]
