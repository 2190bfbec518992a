from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from staterescue.config import ControllerConfig
from staterescue.domain.model import ChangeType, ObjectChange, PolicyKey
from staterescue.domain.reconciliation import (
    PolicyEventMapper,
    ReconciliationEngine,
    StoreUnavailableError,
)
from staterescue.runtime import Controller
from tests.support.stores import (
    FixedClock,
    InMemoryObjectStore,
    InMemoryPolicyStore,
    make_policy,
    make_secret,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from staterescue.domain.reconciliation import PassResult

TARGET = "tfstate-default-app"
KEY = PolicyKey("default", "rescue")


async def _no_changes() -> AsyncIterator[ObjectChange]:
    return
    yield


async def _no_keys() -> AsyncIterator[PolicyKey]:
    return
    yield


def _controller(
    objects: InMemoryObjectStore,
    policies: InMemoryPolicyStore,
    *,
    results: list[PassResult],
    object_changes: Callable[[], AsyncIterator[ObjectChange]] = _no_changes,
    policy_changes: Callable[[], AsyncIterator[PolicyKey]] = _no_keys,
) -> Controller:
    return Controller(
        engine=ReconciliationEngine.build(policies=policies, objects=objects, clock=FixedClock()),
        mapper=PolicyEventMapper(policies=policies),
        policies=policies,
        object_changes=object_changes,
        policy_changes=policy_changes,
        config=ControllerConfig(
            workers=2,
            resync_seconds=3600,
            backoff_base_seconds=0.01,
            backoff_max_seconds=0.05,
        ),
        report=results.append,
    )


def test_process_forgets_key_after_clean_pass() -> None:
    objects = InMemoryObjectStore([make_secret(TARGET)])
    policies = InMemoryPolicyStore([make_policy(target_name=TARGET)])
    results: list[PassResult] = []
    controller = _controller(objects, policies, results=results)

    async def scenario() -> None:
        controller.queue.add_rate_limited(KEY)
        result = await controller.process(KEY)
        assert result is not None
        controller.queue.shutdown()

    asyncio.run(scenario())

    assert controller.queue.failures(KEY) == 0
    assert len(results) == 1
    assert objects.find("default", f"backup-{TARGET}") is not None


def test_process_backs_off_on_store_failure() -> None:
    objects = InMemoryObjectStore([make_secret(TARGET)])
    objects.fail_next("list", StoreUnavailableError("down"))
    policies = InMemoryPolicyStore([make_policy(target_name=TARGET)])
    results: list[PassResult] = []
    controller = _controller(objects, policies, results=results)

    async def scenario() -> None:
        assert await controller.process(KEY) is None
        controller.queue.shutdown()

    asyncio.run(scenario())

    assert controller.queue.failures(KEY) == 1
    assert results == []


def test_process_requeues_soft_conflicts() -> None:
    objects = InMemoryObjectStore([make_secret(TARGET)])
    objects.before_next(
        "create", lambda: objects.seed(make_secret(f"backup-{TARGET}", marker="false"))
    )
    policies = InMemoryPolicyStore([make_policy(target_name=TARGET)])
    results: list[PassResult] = []
    controller = _controller(objects, policies, results=results)

    async def scenario() -> None:
        result = await controller.process(KEY)
        assert result is not None
        assert result.requeue
        controller.queue.shutdown()

    asyncio.run(scenario())

    assert controller.queue.failures(KEY) == 1
    assert len(results) == 1


def test_resync_enqueues_every_policy() -> None:
    policies = InMemoryPolicyStore(
        [make_policy("a", target_name="x"), make_policy("b", namespace="ops", target_name="y")]
    )
    controller = _controller(InMemoryObjectStore(), policies, results=[])

    assert asyncio.run(controller.resync()) == 2
    assert len(controller.queue) == 2


def test_controller_run_reacts_to_object_changes() -> None:
    objects = InMemoryObjectStore([make_secret(TARGET)])
    policies = InMemoryPolicyStore([make_policy(target_name=TARGET)])
    results: list[PassResult] = []

    async def object_changes() -> AsyncIterator[ObjectChange]:
        original = objects.find("default", TARGET)
        assert original is not None
        yield ObjectChange.from_object(ChangeType.ADDED, original)

    controller = _controller(objects, policies, results=results, object_changes=object_changes)

    async def scenario() -> None:
        task = asyncio.create_task(controller.run())
        for _ in range(200):
            if objects.find("default", f"backup-{TARGET}") is not None and results:
                break
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert objects.find("default", f"backup-{TARGET}") is not None
    assert results
    assert all(result.key == KEY for result in results)
    assert controller.queue.shutting_down
