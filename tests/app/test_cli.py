from __future__ import annotations

import pytest

from staterescue.config import ControllerConfig, KubernetesConfig, ResilienceConfig
from staterescue.ui import cli as cli_module


@pytest.fixture(autouse=True)
def kube_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        cli_module,
        "get_kubernetes_config",
        lambda: KubernetesConfig(
            api_server="https://kube.test",
            resilience=ResilienceConfig(name="kubernetes", base_url="https://kube.test"),
        ),
    )


def test_cli_classify_prints_roles(capsys: pytest.CaptureFixture[str]) -> None:
    cli_module.main(
        [
            "classify",
            "--target",
            "tfstate-default-app",
            "tfstate-default-app",
            "backup-tfstate-default-app",
            "tfstate-default-other",
        ]
    )

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "tfstate-default-app\toriginal\tbackup-tfstate-default-app",
        "backup-tfstate-default-app\tbackup\ttfstate-default-app",
        "tfstate-default-other\tunrelated\t-",
    ]


def test_cli_reconcile_dispatches_single_pass(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    async def fake_reconcile(namespace: str, name: str, **kwargs: object) -> None:
        captured.update(kwargs, namespace=namespace, name=name)

    monkeypatch.setattr(cli_module, "reconcile_policy", fake_reconcile)

    cli_module.main(["reconcile", "--namespace", "infra", "rescue"])

    assert captured["namespace"] == "infra"
    assert captured["name"] == "rescue"
    assert isinstance(captured["controller_config"], ControllerConfig)
    assert isinstance(captured["kubernetes_config"], KubernetesConfig)


def test_cli_run_uses_environment_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[ControllerConfig] = []

    async def fake_run(
        *, kubernetes_config: KubernetesConfig, controller_config: ControllerConfig
    ) -> None:
        seen.append(controller_config)

    monkeypatch.setattr(cli_module, "run_controller", fake_run)
    monkeypatch.setenv("STATERESCUE_WORKERS", "5")

    cli_module.main(["run"])

    assert [config.workers for config in seen] == [5]


def test_cli_rejects_invalid_policy_name() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["reconcile", "--namespace", "infra", "Not_Valid"])

    assert excinfo.value.code == 2


def test_cli_rejects_bad_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATERESCUE_WORKERS", "many")

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["run"])

    assert excinfo.value.code == 2


def test_cli_rejects_unknown_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATERESCUE_LOG_LEVEL", "VERBOSE")

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["classify", "--target", "app", "app"])

    assert excinfo.value.code == 2


def test_cli_exits_with_failure_on_fatal_error(monkeypatch: pytest.MonkeyPatch) -> None:
    async def failing_run(**_: object) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(cli_module, "run_controller", failing_run)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["run"])

    assert excinfo.value.code == 1
