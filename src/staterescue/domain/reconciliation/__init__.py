"""Reconciliation core keeping a backup beside every protected state object.

Layered flow of one pass:
1) load the policy (a vanished policy ends the pass quietly)
2) list the state-labelled objects in the policy's namespace
3) classify them by name and pair original with backup
4) restore a missing original from its backup
5) create or refresh the backup of a present original
6) write status timestamps after each acknowledged data write

Roles come from naming conventions alone; nothing else is persisted. Every
step is idempotent, so re-running a pass after a partial failure converges.
"""

from __future__ import annotations

from .backup import BackupSynchronizer, build_backup
from .diagnostics import Action, ActionKind, EventKind, RescueEvent, Severity
from .engine import PassResult, ReconciliationEngine
from .errors import (
    AlreadyExistsError,
    MalformedStateError,
    NotFoundError,
    StoreConflictError,
    StoreError,
    StoreUnavailableError,
)
from .mapping import PolicyEventMapper, match_policies
from .naming import (
    Classification,
    Role,
    backup_name_for,
    classify,
    is_valid_name,
    original_name_for,
)
from .pairing import Pair, PairingResult, resolve_pair
from .restore import RescueRestorer, build_original

__all__ = [
    "Action",
    "ActionKind",
    "AlreadyExistsError",
    "BackupSynchronizer",
    "Classification",
    "EventKind",
    "MalformedStateError",
    "NotFoundError",
    "Pair",
    "PairingResult",
    "PassResult",
    "PolicyEventMapper",
    "ReconciliationEngine",
    "RescueEvent",
    "RescueRestorer",
    "Role",
    "Severity",
    "StoreConflictError",
    "StoreError",
    "StoreUnavailableError",
    "backup_name_for",
    "build_backup",
    "build_original",
    "classify",
    "is_valid_name",
    "match_policies",
    "original_name_for",
    "resolve_pair",
]
