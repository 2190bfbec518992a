"""Map state-object change notifications back to the policies that care.

Nothing distinguishes changes caused by the reconciler's own writes from
external ones; both are mapped, and the resulting extra pass is a no-op
beyond re-copying the payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from staterescue.domain.model import DEFAULT_CONVENTIONS, POLICY_KIND, PolicyKey, RescueConventions

from .errors import NotFoundError
from .naming import Role, classify

if TYPE_CHECKING:
    from collections.abc import Iterable

    from staterescue.domain.model import ObjectChange, RescuePolicy
    from staterescue.domain.ports import PolicyStore


def _owner_names(change: ObjectChange) -> set[str]:
    return {ref.name for ref in change.owner_references if ref.kind == POLICY_KIND}


def match_policies(
    change: ObjectChange,
    policies: Iterable[RescuePolicy],
    *,
    conventions: RescueConventions = DEFAULT_CONVENTIONS,
) -> list[PolicyKey]:
    """Return the keys of policies in the change's namespace that own the object.

    A policy matches when the state-labelled object classifies as its original
    or backup, or when the object carries an owner reference to the policy.
    """

    labelled = conventions.is_state_labelled(change.labels)
    owner_names = _owner_names(change)
    keys: list[PolicyKey] = []
    for policy in policies:
        if policy.namespace != change.namespace:
            continue
        owned = policy.name in owner_names
        related = (
            labelled
            and classify(change.name, policy.target_name, conventions=conventions).role
            is not Role.UNRELATED
        )
        if (owned or related) and policy.key not in keys:
            keys.append(policy.key)
    return keys


@dataclass(slots=True)
class PolicyEventMapper:
    """Turn an ``ObjectChange`` into reconciliation requests."""

    policies: PolicyStore
    conventions: RescueConventions = DEFAULT_CONVENTIONS

    async def __call__(self, change: ObjectChange) -> list[PolicyKey]:
        if not self.conventions.is_state_labelled(change.labels) and not _owner_names(change):
            return []
        try:
            candidates = await self.policies.list(change.namespace)
        except NotFoundError:
            return []
        return match_policies(change, candidates, conventions=self.conventions)


__all__ = ["PolicyEventMapper", "match_policies"]
