"""List-then-watch loops feeding change notifications to the controller.

Each loop lists once to learn a resource version, then follows the watch
stream from there. Server-side timeouts simply reopen the stream; an expired
version (``410 Gone``) starts over from a fresh list, replaying every object
as ``ADDED``. Delivery is therefore at-least-once and may repeat objects.
"""

from __future__ import annotations

import asyncio
from contextlib import aclosing
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx

from staterescue.domain.model import DEFAULT_CONVENTIONS, ChangeType, ObjectChange

from .client import KubernetesAPIError
from .schema import ListMetaPayload, StateRescuePayload
from .stores import label_selector, policies_path, secrets_path
from .translator import parse_policy, parse_secret

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable, Mapping

    from staterescue.domain.model import PolicyKey, RescueConventions

    from .client import KubernetesApi

log = getLogger(__name__)

type RawChange = tuple[ChangeType, dict[str, Any]]


@dataclass(slots=True)
class ResourceWatcher:
    api: KubernetesApi
    path: str
    params: Mapping[str, str] = field(default_factory=dict[str, str])
    timeout_seconds: int = 300
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 30.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    def _delay(self, failures: int) -> float:
        return min(self.backoff_base_seconds * 2 ** (failures - 1), self.backoff_max_seconds)

    async def changes(self) -> AsyncGenerator[RawChange, None]:
        """Yield ``(change type, raw object)`` until cancelled."""

        resource_version: str | None = None
        failures = 0
        while True:
            try:
                if resource_version is None:
                    listing = await self.api.get(self.path, params=self.params)
                    resource_version = ListMetaPayload.model_validate(
                        listing.get("metadata") or {}
                    ).resource_version
                    for item in listing.get("items") or []:
                        yield ChangeType.ADDED, item
                events = self.api.watch(
                    self.path,
                    params=self.params,
                    resource_version=resource_version,
                    timeout_seconds=self.timeout_seconds,
                )
                async with aclosing(events):
                    async for event in events:
                        failures = 0
                        resource_version = event.resource_version() or resource_version
                        if event.type == "BOOKMARK":
                            continue
                        yield ChangeType(event.type), event.object
            except KubernetesAPIError as exc:
                if exc.is_gone:
                    log.info(f"Watch on {self.path} expired, relisting")
                    resource_version = None
                    continue
                failures += 1
                log.warning(f"Watch on {self.path} failed ({exc.status_code}): {exc}")
                await self.sleep(self._delay(failures))
            except httpx.TransportError as exc:
                failures += 1
                log.warning(f"Watch on {self.path} lost connection: {exc}")
                await self.sleep(self._delay(failures))


async def watch_object_changes(
    api: KubernetesApi,
    *,
    namespace: str | None = None,
    conventions: RescueConventions = DEFAULT_CONVENTIONS,
    timeout_seconds: int = 300,
) -> AsyncGenerator[ObjectChange, None]:
    """Yield a change for every state-labelled secret event."""

    watcher = ResourceWatcher(
        api=api,
        path=secrets_path(namespace),
        params={"labelSelector": label_selector(conventions.selector)},
        timeout_seconds=timeout_seconds,
    )
    async with aclosing(watcher.changes()) as changes:
        async for change_type, raw in changes:
            try:
                obj = parse_secret(raw, namespace=namespace)
            except ValueError as exc:
                log.warning(f"Skipping unreadable secret event: {exc}")
                continue
            yield ObjectChange.from_object(change_type, obj)


async def watch_policy_keys(
    api: KubernetesApi,
    *,
    namespace: str | None = None,
    timeout_seconds: int = 300,
) -> AsyncGenerator[PolicyKey, None]:
    """Yield the key of every policy that was added or whose spec changed.

    A ``MODIFIED`` event that leaves ``metadata.generation`` unchanged only
    touched status or metadata, as every status write of a pass does, and is
    dropped. Relists replay every policy as ``ADDED`` and are always yielded.
    """

    watcher = ResourceWatcher(
        api=api,
        path=policies_path(namespace),
        timeout_seconds=timeout_seconds,
    )
    generations: dict[PolicyKey, int | None] = {}
    async with aclosing(watcher.changes()) as changes:
        async for change_type, raw in changes:
            try:
                resource = StateRescuePayload.model_validate(raw)
                policy = parse_policy(resource, namespace=namespace)
            except ValueError as exc:
                log.warning(f"Skipping unreadable policy event: {exc}")
                continue
            if change_type is ChangeType.DELETED:
                generations.pop(policy.key, None)
                continue
            generation = resource.metadata.generation
            seen = generations.get(policy.key)
            generations[policy.key] = generation
            if (
                change_type is ChangeType.MODIFIED
                and generation is not None
                and generation == seen
            ):
                continue
            yield policy.key


__all__ = ["ResourceWatcher", "watch_object_changes", "watch_policy_keys"]
