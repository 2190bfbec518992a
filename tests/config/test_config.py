from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from staterescue.config import (
    ConfigurationError,
    InvalidConfigurationError,
    MissingConfigurationError,
    get_controller_config,
    get_kubernetes_config,
    require_env_var,
    require_env_vars,
)
from staterescue.config.env import env_bool, env_float, env_int

if TYPE_CHECKING:
    from pathlib import Path


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR"])

    assert "MISSING_VAR" in str(exc.value)
    assert exc.value.variables == ("MISSING_VAR",)


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")


def test_typed_env_helpers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_INT", "7")
    monkeypatch.setenv("EXAMPLE_FLOAT", "0.25")
    monkeypatch.setenv("EXAMPLE_BOOL", "Yes")

    assert env_int("EXAMPLE_INT", 1) == 7
    assert env_float("EXAMPLE_FLOAT", 1.0) == 0.25
    assert env_bool("EXAMPLE_BOOL", default=False) is True
    assert env_int("EXAMPLE_UNSET_INT", 3) == 3


@pytest.mark.parametrize(
    ("name", "value"),
    [("EXAMPLE_INT", "seven"), ("EXAMPLE_INT", "-1"), ("EXAMPLE_BOOL", "maybe")],
)
def test_typed_env_helpers_reject_bad_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        if name == "EXAMPLE_INT":
            env_int(name, 1)
        else:
            env_bool(name, default=False)


def test_kubernetes_config_from_explicit_server(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("STATERESCUE_API_SERVER", "https://kube.example:6443/")
    monkeypatch.setenv("STATERESCUE_TOKEN", "abc")
    monkeypatch.setenv("STATERESCUE_API_QPS", "5")

    config = get_kubernetes_config(service_account_dir=tmp_path)

    assert config.api_server == "https://kube.example:6443/"
    assert config.resilience.base_url == "https://kube.example:6443"
    assert config.token == "abc"
    assert config.token_file is None
    assert config.resilience.verify is True
    assert config.resilience.ratelimit is not None
    assert config.resilience.ratelimit.max_calls == 5


def test_kubernetes_config_in_cluster(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    (tmp_path / "token").write_text("sa-token")
    (tmp_path / "ca.crt").write_text("---cert---")
    monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "fd00::1")
    monkeypatch.setenv("KUBERNETES_SERVICE_PORT", "443")

    config = get_kubernetes_config(service_account_dir=tmp_path)

    assert config.api_server == "https://[fd00::1]:443"
    assert config.token_file == tmp_path / "token"
    assert config.resilience.verify == str(tmp_path / "ca.crt")


def test_kubernetes_config_insecure_disables_verification(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("STATERESCUE_API_SERVER", "https://127.0.0.1:6443")
    monkeypatch.setenv("STATERESCUE_INSECURE", "true")

    assert get_kubernetes_config(service_account_dir=tmp_path).resilience.verify is False


def test_kubernetes_config_requires_a_server(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    with pytest.raises(MissingConfigurationError):
        get_kubernetes_config(service_account_dir=tmp_path)


def test_controller_config_defaults() -> None:
    config = get_controller_config()

    assert config.workers == 2
    assert config.namespace is None
    assert config.conventions.selector == {"app.kubernetes.io/managed-by": "terraform"}
    assert config.conventions.backup_prefix == "backup-"
    assert config.log_level == "INFO"


def test_controller_config_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATERESCUE_WORKERS", "4")
    monkeypatch.setenv("STATERESCUE_NAMESPACE", "infra")
    monkeypatch.setenv("STATERESCUE_SELECTOR_LABEL", "owner = tofu")
    monkeypatch.setenv("STATERESCUE_BACKUP_PREFIX", "shadow-")
    monkeypatch.setenv("STATERESCUE_LOG_LEVEL", "debug")

    config = get_controller_config()

    assert config.workers == 4
    assert config.namespace == "infra"
    assert config.conventions.selector == {"owner": "tofu"}
    assert config.conventions.backup_prefix == "shadow-"
    assert config.log_level == "DEBUG"


def test_controller_config_rejects_malformed_selector(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATERESCUE_SELECTOR_LABEL", "no-equals-sign")

    with pytest.raises(InvalidConfigurationError) as exc:
        get_controller_config()

    assert exc.value.variable == "STATERESCUE_SELECTOR_LABEL"


def test_controller_config_rejects_inverted_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATERESCUE_BACKOFF_BASE_SECONDS", "10")
    monkeypatch.setenv("STATERESCUE_BACKOFF_MAX_SECONDS", "1")

    with pytest.raises(ConfigurationError):
        get_controller_config()


def test_controller_config_rejects_unknown_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATERESCUE_LOG_LEVEL", "verbose")

    with pytest.raises(InvalidConfigurationError) as exc:
        get_controller_config()

    assert exc.value.variable == "STATERESCUE_LOG_LEVEL"
