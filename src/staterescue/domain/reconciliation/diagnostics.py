"""Structured records describing what a reconciliation pass did and saw.

The core never logs. Each step returns the actions it applied and the events
it observed, and the caller decides where they go.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ActionKind(StrEnum):
    BACKUP_CREATED = "backup_created"
    BACKUP_UPDATED = "backup_updated"
    ORIGINAL_RESTORED = "original_restored"
    STATUS_UPDATED = "status_updated"


@dataclass(frozen=True, slots=True)
class Action:
    """A write acknowledged by the store."""

    kind: ActionKind
    namespace: str
    name: str


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class EventKind(StrEnum):
    POLICY_MISSING = "policy_missing"
    NOTHING_TO_PROTECT = "nothing_to_protect"
    DUPLICATE_OBJECT = "duplicate_object"
    MALFORMED_STATE = "malformed_state"
    ORIGINAL_PRESENT = "original_present"
    ORIGINAL_MISSING = "original_missing"
    BACKUP_MISSING = "backup_missing"
    CREATE_CONFLICT = "create_conflict"
    UPDATE_CONFLICT = "update_conflict"
    OBJECT_VANISHED = "object_vanished"
    STATUS_CONFLICT = "status_conflict"


@dataclass(frozen=True, slots=True)
class RescueEvent:
    """One diagnostic observation tied to an object in the pass's scope."""

    kind: EventKind
    message: str
    namespace: str
    name: str | None = None
    severity: Severity = Severity.INFO


@dataclass(slots=True)
class StepOutcome:
    """Actions, events and the retry hint produced by a single step."""

    actions: list[Action]
    events: list[RescueEvent]
    requeue: bool = False

    @classmethod
    def empty(cls) -> StepOutcome:
        return cls(actions=[], events=[])


__all__ = [
    "Action",
    "ActionKind",
    "EventKind",
    "RescueEvent",
    "Severity",
    "StepOutcome",
]
