"""Controller runtime settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Final

from staterescue.domain.model import (
    BACKUP_PREFIX,
    MARKER_LABEL_KEY,
    SELECTOR_LABEL_KEY,
    SELECTOR_LABEL_VALUE,
    RescueConventions,
)

from .env import env_float, env_int, optional_env_var
from .errors import InvalidConfigurationError

DEFAULT_WORKERS: Final[int] = 2
DEFAULT_RESYNC_SECONDS: Final[float] = 300.0
DEFAULT_BACKOFF_BASE_SECONDS: Final[float] = 0.5
DEFAULT_BACKOFF_MAX_SECONDS: Final[float] = 300.0
DEFAULT_WATCH_TIMEOUT_SECONDS: Final[int] = 300


@dataclass(frozen=True, slots=True)
class ControllerConfig:
    workers: int = DEFAULT_WORKERS
    resync_seconds: float = DEFAULT_RESYNC_SECONDS
    backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS
    backoff_max_seconds: float = DEFAULT_BACKOFF_MAX_SECONDS
    watch_timeout_seconds: int = DEFAULT_WATCH_TIMEOUT_SECONDS
    namespace: str | None = None
    conventions: RescueConventions = field(default_factory=RescueConventions)
    log_level: str = "INFO"


def _parse_selector(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip() or not value.strip():
        raise InvalidConfigurationError(
            "STATERESCUE_SELECTOR_LABEL", f"must look like key=value, got {raw!r}"
        )
    return key.strip(), value.strip()


def _log_level() -> str:
    level = (optional_env_var("STATERESCUE_LOG_LEVEL") or "INFO").upper()
    if level not in logging.getLevelNamesMapping():
        raise InvalidConfigurationError(
            "STATERESCUE_LOG_LEVEL", f"must be a logging level name, got {level!r}"
        )
    return level


def get_controller_config() -> ControllerConfig:
    selector_raw = optional_env_var("STATERESCUE_SELECTOR_LABEL")
    if selector_raw:
        selector_key, selector_value = _parse_selector(selector_raw)
    else:
        selector_key, selector_value = SELECTOR_LABEL_KEY, SELECTOR_LABEL_VALUE
    conventions = RescueConventions(
        selector_key=selector_key,
        selector_value=selector_value,
        marker_key=optional_env_var("STATERESCUE_MARKER_LABEL") or MARKER_LABEL_KEY,
        backup_prefix=optional_env_var("STATERESCUE_BACKUP_PREFIX") or BACKUP_PREFIX,
    )

    backoff_base = env_float(
        "STATERESCUE_BACKOFF_BASE_SECONDS", DEFAULT_BACKOFF_BASE_SECONDS, minimum=0.001
    )
    backoff_max = env_float("STATERESCUE_BACKOFF_MAX_SECONDS", DEFAULT_BACKOFF_MAX_SECONDS)
    if backoff_max < backoff_base:
        raise InvalidConfigurationError(
            "STATERESCUE_BACKOFF_MAX_SECONDS", "must not be below the base delay"
        )

    return ControllerConfig(
        workers=env_int("STATERESCUE_WORKERS", DEFAULT_WORKERS, minimum=1),
        resync_seconds=env_float("STATERESCUE_RESYNC_SECONDS", DEFAULT_RESYNC_SECONDS, minimum=1.0),
        backoff_base_seconds=backoff_base,
        backoff_max_seconds=backoff_max,
        watch_timeout_seconds=env_int(
            "STATERESCUE_WATCH_TIMEOUT_SECONDS", DEFAULT_WATCH_TIMEOUT_SECONDS, minimum=1
        ),
        namespace=optional_env_var("STATERESCUE_NAMESPACE"),
        conventions=conventions,
        log_level=_log_level(),
    )
