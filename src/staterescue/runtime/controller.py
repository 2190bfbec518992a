"""Long-running controller driving reconciliation passes.

Policy keys reach the work queue from three feeds: policy watch events,
state-object watch events mapped through ``PolicyEventMapper``, and a periodic
resync that enqueues every known policy. Workers take keys off the queue and
run one pass at a time per key.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from staterescue.config.controller import ControllerConfig
from staterescue.domain.reconciliation.errors import StoreError, StoreUnavailableError

from .queue import WorkQueue

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from staterescue.domain.model import ObjectChange, PolicyKey
    from staterescue.domain.ports import PolicyStore
    from staterescue.domain.reconciliation import (
        PassResult,
        PolicyEventMapper,
        ReconciliationEngine,
    )

log = getLogger(__name__)

type ChangeFeed[T] = Callable[[], AsyncIterator[T]]
type ResultSink = Callable[[PassResult], None]


def _discard(_result: PassResult) -> None:
    return None


@dataclass(slots=True)
class Controller:
    engine: ReconciliationEngine
    mapper: PolicyEventMapper
    policies: PolicyStore
    object_changes: ChangeFeed[ObjectChange]
    policy_changes: ChangeFeed[PolicyKey]
    config: ControllerConfig = field(default_factory=ControllerConfig)
    report: ResultSink = _discard
    queue: WorkQueue[PolicyKey] = field(init=False)

    def __post_init__(self) -> None:
        self.queue = WorkQueue(
            base_delay=self.config.backoff_base_seconds,
            max_delay=self.config.backoff_max_seconds,
        )

    async def run(self) -> None:
        """Run workers and feeds until cancelled."""

        log.info(
            "Starting controller: workers=%s, resync=%ss, namespace=%s",
            self.config.workers,
            self.config.resync_seconds,
            self.config.namespace or "<all>",
        )
        try:
            async with asyncio.TaskGroup() as group:
                for index in range(self.config.workers):
                    group.create_task(self.worker(index), name=f"worker-{index}")
                group.create_task(self.feed_policy_changes(), name="policy-watch")
                group.create_task(self.feed_object_changes(), name="object-watch")
                group.create_task(self.resync_loop(), name="resync")
        finally:
            self.queue.shutdown()
            log.info("Controller stopped")

    async def worker(self, index: int) -> None:
        while (key := await self.queue.get()) is not None:
            try:
                await self.process(key)
            finally:
                self.queue.done(key)
        log.debug("Worker %s exiting", index)

    async def process(self, key: PolicyKey) -> PassResult | None:
        """Run one pass for ``key`` and schedule its follow-up."""

        try:
            result = await self.engine.reconcile(key)
        except StoreUnavailableError as exc:
            delay = self.queue.add_rate_limited(key)
            log.warning(f"Store unavailable while reconciling {key}, retry in {delay:.1f}s: {exc}")
            return None
        except Exception:
            delay = self.queue.add_rate_limited(key)
            log.exception(f"Reconciliation of {key} failed, retry in {delay:.1f}s")
            return None

        self.report(result)
        if result.requeue:
            delay = self.queue.add_rate_limited(key)
            log.debug(f"Requeueing {key} in {delay:.1f}s after a soft conflict")
        else:
            self.queue.forget(key)
        return result

    async def feed_policy_changes(self) -> None:
        async for key in self.policy_changes():
            self.queue.add(key)

    async def feed_object_changes(self) -> None:
        async for change in self.object_changes():
            try:
                keys = await self.mapper(change)
            except StoreError as exc:
                # the next resync picks the policy up again
                log.warning(f"Could not map change of {change.namespace}/{change.name}: {exc}")
                continue
            for key in keys:
                self.queue.add(key)

    async def resync(self) -> int:
        """Enqueue every known policy and return how many were queued."""

        policies = await self.policies.list(self.config.namespace)
        for policy in policies:
            self.queue.add(policy.key)
        return len(policies)

    async def resync_loop(self) -> None:
        while True:
            try:
                count = await self.resync()
            except StoreError as exc:
                log.warning(f"Periodic resync failed: {exc}")
            else:
                log.debug("Resync queued %s policies", count)
            await asyncio.sleep(self.config.resync_seconds)


__all__ = ["Controller"]
