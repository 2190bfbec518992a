"""Application configuration helpers."""

from __future__ import annotations

from .controller import ControllerConfig, get_controller_config
from .env import require_env_var, require_env_vars
from .errors import (
    ConfigurationError,
    InvalidConfigurationError,
    MissingConfigurationError,
)
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .kubernetes import KubernetesConfig, get_kubernetes_config
from .logging import configure_logging

__all__ = [
    "ConfigurationError",
    "ControllerConfig",
    "InvalidConfigurationError",
    "KubernetesConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "get_controller_config",
    "get_kubernetes_config",
    "require_env_var",
    "require_env_vars",
]
