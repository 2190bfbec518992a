"""Public interface for the Kubernetes adapter."""

from __future__ import annotations

from .client import BearerTokenAuth, KubernetesAPIError, KubernetesApi
from .schema import SecretPayload, StateRescuePayload, WatchEventPayload
from .stores import KubernetesObjectStore, KubernetesPolicyStore
from .translator import parse_policy, parse_secret, policy_status_body, secret_body
from .watch import ResourceWatcher, watch_object_changes, watch_policy_keys

__all__ = [
    "BearerTokenAuth",
    "KubernetesAPIError",
    "KubernetesApi",
    "KubernetesObjectStore",
    "KubernetesPolicyStore",
    "ResourceWatcher",
    "SecretPayload",
    "StateRescuePayload",
    "WatchEventPayload",
    "parse_policy",
    "parse_secret",
    "policy_status_body",
    "secret_body",
    "watch_object_changes",
    "watch_policy_keys",
]
