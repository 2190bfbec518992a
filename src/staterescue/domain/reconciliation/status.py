"""Status write-back shared by the backup and restore steps."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .diagnostics import Action, ActionKind, EventKind, RescueEvent, Severity
from .errors import NotFoundError, StoreConflictError

if TYPE_CHECKING:
    from staterescue.domain.model import RescuePolicy
    from staterescue.domain.ports import PolicyStore

    from .diagnostics import StepOutcome


async def persist_status(
    policies: PolicyStore,
    policy: RescuePolicy,
    outcome: StepOutcome,
) -> RescuePolicy:
    """Write ``policy.status`` and return the policy to carry forward.

    The data write that preceded this call is already durable, so a rejected
    status write is recorded on ``outcome`` instead of raised. An unreachable
    store still raises and ends the pass.
    """

    try:
        stored = await policies.update_status(policy)
    except StoreConflictError as exc:
        outcome.events.append(
            RescueEvent(
                kind=EventKind.STATUS_CONFLICT,
                message=f"Status update rejected: {exc}",
                namespace=policy.namespace,
                name=policy.name,
                severity=Severity.WARNING,
            )
        )
        outcome.requeue = True
        return policy
    except NotFoundError:
        outcome.events.append(
            RescueEvent(
                kind=EventKind.POLICY_MISSING,
                message="Policy deleted before its status could be written",
                namespace=policy.namespace,
                name=policy.name,
                severity=Severity.WARNING,
            )
        )
        return policy

    outcome.actions.append(
        Action(kind=ActionKind.STATUS_UPDATED, namespace=policy.namespace, name=policy.name)
    )
    return stored
