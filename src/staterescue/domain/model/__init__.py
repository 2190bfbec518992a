"""Domain model for rescue policies and the state objects they protect."""

from __future__ import annotations

from .conventions import (
    BACKUP_PREFIX,
    DEFAULT_CONVENTIONS,
    MARKER_LABEL_KEY,
    MARKER_LIVE,
    MARKER_SHADOW,
    POLICY_GROUP_VERSION,
    POLICY_KIND,
    POLICY_PLURAL,
    SELECTOR_LABEL_KEY,
    SELECTOR_LABEL_VALUE,
    RescueConventions,
)
from .objects import (
    DEFAULT_OBJECT_TYPE,
    ChangeType,
    ObjectChange,
    ObjectKey,
    OwnerReference,
    StateObject,
)
from .policy import PolicyKey, RescuePolicy, RescueStatus

__all__ = [
    "BACKUP_PREFIX",
    "DEFAULT_CONVENTIONS",
    "DEFAULT_OBJECT_TYPE",
    "MARKER_LABEL_KEY",
    "MARKER_LIVE",
    "MARKER_SHADOW",
    "POLICY_GROUP_VERSION",
    "POLICY_KIND",
    "POLICY_PLURAL",
    "SELECTOR_LABEL_KEY",
    "SELECTOR_LABEL_VALUE",
    "ChangeType",
    "ObjectChange",
    "ObjectKey",
    "OwnerReference",
    "PolicyKey",
    "RescueConventions",
    "RescuePolicy",
    "RescueStatus",
    "StateObject",
]
