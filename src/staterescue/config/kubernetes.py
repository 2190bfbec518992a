"""Kubernetes API connection settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_bool, env_float, env_int, optional_env_var
from .errors import MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

SERVICE_ACCOUNT_DIR: Final[Path] = Path("/var/run/secrets/kubernetes.io/serviceaccount")
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_API_QPS: Final[int] = 20


@dataclass(frozen=True, slots=True)
class KubernetesConfig:
    """Where the API server lives and how to authenticate against it.

    ``token_file`` takes precedence over ``token`` and is re-read on every
    request, since projected service-account tokens rotate.
    """

    api_server: str
    resilience: ResilienceConfig
    token: str | None = None
    token_file: Path | None = None


def _in_cluster_server() -> str | None:
    host = optional_env_var("KUBERNETES_SERVICE_HOST")
    port = optional_env_var("KUBERNETES_SERVICE_PORT") or "443"
    if host is None:
        return None
    if ":" in host:
        host = f"[{host}]"
    return f"https://{host}:{port}"


def _existing(path: Path) -> Path | None:
    return path if path.is_file() else None


def get_kubernetes_config(*, service_account_dir: Path = SERVICE_ACCOUNT_DIR) -> KubernetesConfig:
    api_server = optional_env_var("STATERESCUE_API_SERVER") or _in_cluster_server()
    if api_server is None:
        raise MissingConfigurationError(["STATERESCUE_API_SERVER", "KUBERNETES_SERVICE_HOST"])

    token = optional_env_var("STATERESCUE_TOKEN")
    token_file_env = optional_env_var("STATERESCUE_TOKEN_FILE")
    token_file: Path | None = None
    if token_file_env:
        token_file = Path(token_file_env)
    elif token is None:
        token_file = _existing(service_account_dir / "token")

    ca_file_env = optional_env_var("STATERESCUE_CA_FILE")
    ca_file = Path(ca_file_env) if ca_file_env else _existing(service_account_dir / "ca.crt")
    verify: str | bool = str(ca_file) if ca_file else True
    if env_bool("STATERESCUE_INSECURE", default=False):
        verify = False

    resilience = ResilienceConfig(
        name="kubernetes",
        base_url=api_server.rstrip("/"),
        timeout_seconds=env_float("STATERESCUE_API_TIMEOUT", DEFAULT_TIMEOUT_SECONDS, minimum=1.0),
        retry=RetryPolicy(total=env_int("STATERESCUE_API_RETRIES", 4)),
        ratelimit=RateLimit(
            max_calls=env_int("STATERESCUE_API_QPS", DEFAULT_API_QPS, minimum=1),
            per_seconds=1.0,
        ),
        verify=verify,
    )
    return KubernetesConfig(
        api_server=api_server,
        resilience=resilience,
        token=token,
        token_file=token_file,
    )
