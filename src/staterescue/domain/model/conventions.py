"""Naming and labelling conventions shared by every component."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

SELECTOR_LABEL_KEY: Final[str] = "app.kubernetes.io/managed-by"
SELECTOR_LABEL_VALUE: Final[str] = "terraform"
MARKER_LABEL_KEY: Final[str] = "tfstate"
BACKUP_PREFIX: Final[str] = "backup-"

MARKER_LIVE: Final[str] = "true"
MARKER_SHADOW: Final[str] = "false"

POLICY_API_GROUP: Final[str] = "terraform.hammadzf.github.io"
POLICY_API_VERSION: Final[str] = "v1"
POLICY_KIND: Final[str] = "StateRescue"
POLICY_PLURAL: Final[str] = "staterescues"
POLICY_GROUP_VERSION: Final[str] = f"{POLICY_API_GROUP}/{POLICY_API_VERSION}"


@dataclass(frozen=True, slots=True)
class RescueConventions:
    """Label and naming rules from which roles are inferred.

    There is no persisted index: whether an object is an original or a backup
    follows from its name, and the selector label scopes which objects are
    considered at all.
    """

    selector_key: str = SELECTOR_LABEL_KEY
    selector_value: str = SELECTOR_LABEL_VALUE
    marker_key: str = MARKER_LABEL_KEY
    backup_prefix: str = BACKUP_PREFIX

    @property
    def selector(self) -> dict[str, str]:
        return {self.selector_key: self.selector_value}

    def is_state_labelled(self, labels: Mapping[str, str]) -> bool:
        return labels.get(self.selector_key) == self.selector_value


DEFAULT_CONVENTIONS: Final[RescueConventions] = RescueConventions()
