from __future__ import annotations

import os

import pytest

_CLUSTER_VARS = ("KUBERNETES_SERVICE_HOST", "KUBERNETES_SERVICE_PORT")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell and a surrounding cluster out of every test."""

    for name in list(os.environ):
        if name.startswith("STATERESCUE_"):
            monkeypatch.delenv(name)
    for name in _CLUSTER_VARS:
        monkeypatch.delenv(name, raising=False)
