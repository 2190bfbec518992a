"""Ports for the external stores holding policies and state objects.

Every method is a coroutine: a pass suspends at each store call and resumes
with its result or error. Implementations report failures with the types in
``staterescue.domain.reconciliation.errors``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from staterescue.domain.model import RescuePolicy, StateObject


@runtime_checkable
class ObjectStore(Protocol):
    """Read/list/create/update access to namespaced state objects."""

    async def list(self, namespace: str, selector: Mapping[str, str]) -> Sequence[StateObject]:
        """Return the objects in ``namespace`` whose labels match ``selector``."""
        ...

    async def get(self, namespace: str, name: str) -> StateObject:
        """Return one object or raise ``NotFoundError``."""
        ...

    async def create(self, obj: StateObject) -> StateObject:
        """Create ``obj``; raise ``AlreadyExistsError`` if the name is taken."""
        ...

    async def update(self, obj: StateObject) -> StateObject:
        """Replace ``obj``; raise ``StoreConflictError`` on a stale version."""
        ...


@runtime_checkable
class PolicyStore(Protocol):
    """Access to rescue policies and their status."""

    async def get(self, namespace: str, name: str) -> RescuePolicy: ...

    async def list(self, namespace: str | None = None) -> Sequence[RescuePolicy]: ...

    async def update_status(self, policy: RescuePolicy) -> RescuePolicy:
        """Persist ``policy.status`` and return the stored policy."""
        ...
