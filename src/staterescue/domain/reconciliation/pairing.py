"""Partition state-labelled objects into the original/backup pair of one policy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from staterescue.domain.model import DEFAULT_CONVENTIONS, RescueConventions

from .naming import Role, classify

if TYPE_CHECKING:
    from collections.abc import Iterable

    from staterescue.domain.model import StateObject


@dataclass(frozen=True, slots=True)
class Pair:
    """Original and backup for one target name; either side may be absent."""

    target_name: str
    original: StateObject | None = None
    backup: StateObject | None = None

    @property
    def is_empty(self) -> bool:
        return self.original is None and self.backup is None

    @property
    def needs_restore(self) -> bool:
        return self.backup is not None and self.original is None

    @property
    def needs_backup(self) -> bool:
        return self.original is not None


@dataclass(frozen=True, slots=True)
class PairingResult:
    """Pair plus any same-role duplicates that were passed over.

    Names are unique within a scope, so duplicates only appear when the store
    returns an inconsistent listing. The first object in listing order wins.
    """

    pair: Pair
    duplicates: tuple[StateObject, ...] = ()


def resolve_pair(
    objects: Iterable[StateObject],
    target_name: str,
    *,
    conventions: RescueConventions = DEFAULT_CONVENTIONS,
) -> PairingResult:
    original: StateObject | None = None
    backup: StateObject | None = None
    duplicates: list[StateObject] = []

    for obj in objects:
        role = classify(obj.name, target_name, conventions=conventions).role
        if role is Role.ORIGINAL:
            if original is None:
                original = obj
            else:
                duplicates.append(obj)
        elif role is Role.BACKUP:
            if backup is None:
                backup = obj
            else:
                duplicates.append(obj)

    return PairingResult(
        pair=Pair(target_name=target_name, original=original, backup=backup),
        duplicates=tuple(duplicates),
    )


__all__ = ["Pair", "PairingResult", "resolve_pair"]
