from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import TYPE_CHECKING

import pytest

from staterescue.domain.model import OwnerReference
from staterescue.domain.reconciliation import (
    ActionKind,
    EventKind,
    RescueRestorer,
    Severity,
    StoreUnavailableError,
    build_original,
)
from tests.support.stores import (
    FixedClock,
    InMemoryObjectStore,
    InMemoryPolicyStore,
    make_policy,
    make_secret,
)

if TYPE_CHECKING:
    from staterescue.domain.model import RescuePolicy, StateObject
    from staterescue.domain.reconciliation.diagnostics import StepOutcome

TARGET = "tfstate-default-app"
BACKUP = f"backup-{TARGET}"
OWNER = OwnerReference(
    api_version="terraform.hammadzf.github.io/v1",
    kind="StateRescue",
    name="rescue",
    uid="policy-1",
)


def _backup(name: str = BACKUP) -> StateObject:
    backup = make_secret(name, marker="false", data={"tfstate": "saved"})
    return replace(backup, owner_references=(OWNER,))


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def policies() -> InMemoryPolicyStore:
    return InMemoryPolicyStore([make_policy(target_name=TARGET)])


@pytest.fixture
def objects() -> InMemoryObjectStore:
    return InMemoryObjectStore([_backup()])


@pytest.fixture
def restorer(
    objects: InMemoryObjectStore,
    policies: InMemoryPolicyStore,
    clock: FixedClock,
) -> RescueRestorer:
    return RescueRestorer(objects=objects, policies=policies, clock=clock)


def _restore(
    restorer: RescueRestorer,
    policies: InMemoryPolicyStore,
    backup: StateObject,
) -> tuple[RescuePolicy, StepOutcome]:
    policy = asyncio.run(policies.get("default", "rescue"))
    return asyncio.run(restorer.restore_if_missing(policy, backup))


def test_restore_recreates_missing_original(
    restorer: RescueRestorer,
    policies: InMemoryPolicyStore,
    objects: InMemoryObjectStore,
    clock: FixedClock,
) -> None:
    backup = objects.find("default", BACKUP)
    assert backup is not None

    policy, outcome = _restore(restorer, policies, backup)

    original = objects.find("default", TARGET)
    assert original is not None
    assert dict(original.data) == {"tfstate": "saved"}
    assert original.labels["tfstate"] == "true"
    assert original.owner_references == ()
    assert [action.kind for action in outcome.actions] == [
        ActionKind.ORIGINAL_RESTORED,
        ActionKind.STATUS_UPDATED,
    ]
    assert [event.kind for event in outcome.events] == [EventKind.ORIGINAL_MISSING]
    assert policy.status.last_rescue_time == clock.now
    assert policy.status.last_backup_time is None


def test_restore_skips_when_original_reappeared(
    restorer: RescueRestorer,
    policies: InMemoryPolicyStore,
    objects: InMemoryObjectStore,
) -> None:
    objects.seed(make_secret(TARGET, data={"tfstate": "live"}))

    _, outcome = _restore(restorer, policies, _backup())

    assert outcome.actions == []
    assert [event.kind for event in outcome.events] == [EventKind.ORIGINAL_PRESENT]
    assert objects.count("create") == 0
    original = objects.find("default", TARGET)
    assert original is not None
    assert dict(original.data) == {"tfstate": "live"}


def test_restore_create_race_requests_requeue(
    restorer: RescueRestorer,
    policies: InMemoryPolicyStore,
    objects: InMemoryObjectStore,
) -> None:
    objects.before_next("create", lambda: objects.seed(make_secret(TARGET)))

    _, outcome = _restore(restorer, policies, _backup())

    assert outcome.requeue
    assert outcome.actions == []
    assert outcome.events[-1].kind is EventKind.CREATE_CONFLICT
    assert policies.count("update_status") == 0


def test_restore_reports_malformed_backup_name(
    restorer: RescueRestorer,
    policies: InMemoryPolicyStore,
    objects: InMemoryObjectStore,
) -> None:
    _, outcome = _restore(restorer, policies, _backup("backup-Not_Valid"))

    assert [event.kind for event in outcome.events] == [EventKind.MALFORMED_STATE]
    assert outcome.events[0].severity is Severity.ERROR
    assert outcome.actions == []
    assert not outcome.requeue
    assert objects.count("get") == 0


def test_restore_propagates_unavailable_store(
    restorer: RescueRestorer,
    policies: InMemoryPolicyStore,
    objects: InMemoryObjectStore,
) -> None:
    objects.fail_next("get", StoreUnavailableError("timeout"))

    with pytest.raises(StoreUnavailableError):
        _restore(restorer, policies, _backup())

    assert objects.count("create") == 0


def test_build_original_drops_ownership() -> None:
    original = build_original(_backup(), TARGET)

    assert original.name == TARGET
    assert original.owner_references == ()
    assert original.labels["tfstate"] == "true"
    assert original.labels["app.kubernetes.io/managed-by"] == "terraform"
