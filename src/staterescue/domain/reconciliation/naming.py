"""Role inference from object names.

An object is the *original* for a policy when its name equals the policy's
target name, and the *backup* when its name is the backup prefix followed by
the target name. Everything else is unrelated. Classification is a pure,
total function: it never raises and never consults the store.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from staterescue.domain.model import DEFAULT_CONVENTIONS, RescueConventions

from .errors import MalformedStateError

MAX_NAME_LENGTH: Final[int] = 253
_DNS_SUBDOMAIN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")


class Role(StrEnum):
    ORIGINAL = "original"
    BACKUP = "backup"
    UNRELATED = "unrelated"


@dataclass(frozen=True, slots=True)
class Classification:
    """Role of one object name plus the name of its counterpart, if any."""

    role: Role
    counterpart: str | None = None


UNRELATED: Final[Classification] = Classification(Role.UNRELATED)


def classify(
    name: str,
    target_name: str,
    *,
    conventions: RescueConventions = DEFAULT_CONVENTIONS,
) -> Classification:
    """Classify ``name`` against ``target_name``."""

    if not target_name:
        return UNRELATED
    backup_name = conventions.backup_prefix + target_name
    if name == target_name:
        return Classification(Role.ORIGINAL, counterpart=backup_name)
    if name == backup_name:
        return Classification(Role.BACKUP, counterpart=target_name)
    return UNRELATED


def backup_name_for(
    original_name: str,
    *,
    conventions: RescueConventions = DEFAULT_CONVENTIONS,
) -> str:
    return conventions.backup_prefix + original_name


def original_name_for(
    backup_name: str,
    *,
    conventions: RescueConventions = DEFAULT_CONVENTIONS,
) -> str:
    """Strip the backup prefix, rejecting names that do not reduce to a valid name."""

    prefix = conventions.backup_prefix
    if not backup_name.startswith(prefix):
        raise MalformedStateError(
            f"Backup name {backup_name!r} does not start with {prefix!r}", name=backup_name
        )
    original = backup_name[len(prefix) :]
    if not is_valid_name(original):
        raise MalformedStateError(
            f"Backup name {backup_name!r} does not reduce to a valid object name",
            name=backup_name,
        )
    return original


def is_valid_name(name: str) -> bool:
    """Return whether ``name`` is usable as an object name (DNS-1123 subdomain)."""

    return 0 < len(name) <= MAX_NAME_LENGTH and _DNS_SUBDOMAIN.fullmatch(name) is not None


__all__ = [
    "Classification",
    "Role",
    "backup_name_for",
    "classify",
    "is_valid_name",
    "original_name_for",
]
