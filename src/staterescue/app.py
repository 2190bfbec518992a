"""Application orchestration entry points."""

from __future__ import annotations

import logging
from logging import getLogger
from typing import TYPE_CHECKING

from staterescue.adapters.kubernetes import (
    KubernetesApi,
    KubernetesObjectStore,
    KubernetesPolicyStore,
    watch_object_changes,
    watch_policy_keys,
)
from staterescue.config import get_controller_config, get_kubernetes_config
from staterescue.domain.model import DEFAULT_CONVENTIONS, PolicyKey
from staterescue.domain.reconciliation import (
    PolicyEventMapper,
    ReconciliationEngine,
    Severity,
    classify,
)
from staterescue.runtime import Controller

if TYPE_CHECKING:
    from collections.abc import Iterable

    from staterescue.config import ControllerConfig, KubernetesConfig
    from staterescue.domain.model import RescueConventions
    from staterescue.domain.reconciliation import Classification, PassResult


log = getLogger(__name__)

_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


def log_pass_result(result: PassResult, *, logger: logging.Logger = log) -> None:
    """Route the actions and events of one pass to the application log."""

    for event in result.events:
        subject = f"{event.namespace}/{event.name}" if event.name else event.namespace
        logger.log(
            _LEVELS[event.severity], f"[{result.key}] {event.kind}: {subject}: {event.message}"
        )
    for action in result.actions:
        logger.info(f"[{result.key}] {action.kind}: {action.namespace}/{action.name}")
    if result.requeue:
        logger.info(f"[{result.key}] pass incomplete, requeue requested")


def build_engine(api: KubernetesApi, *, conventions: RescueConventions) -> ReconciliationEngine:
    return ReconciliationEngine.build(
        policies=KubernetesPolicyStore(api),
        objects=KubernetesObjectStore(api),
        conventions=conventions,
    )


async def reconcile_policy(
    namespace: str,
    name: str,
    *,
    kubernetes_config: KubernetesConfig | None = None,
    controller_config: ControllerConfig | None = None,
) -> PassResult:
    """Run a single reconciliation pass against the cluster."""

    effective_kube = kubernetes_config or get_kubernetes_config()
    effective_controller = controller_config or get_controller_config()
    key = PolicyKey(namespace=namespace, name=name)
    log.info(f"Reconciling {key} once against {effective_kube.api_server}")

    async with KubernetesApi(effective_kube) as api:
        engine = build_engine(api, conventions=effective_controller.conventions)
        result = await engine.reconcile(key)

    log_pass_result(result)
    log.info(
        f"Finished {key}: actions={len(result.actions)}, events={len(result.events)}, "
        f"requeue={result.requeue}"
    )
    return result


async def run_controller(
    *,
    kubernetes_config: KubernetesConfig | None = None,
    controller_config: ControllerConfig | None = None,
) -> None:
    """Run the controller until cancelled."""

    effective_kube = kubernetes_config or get_kubernetes_config()
    config = controller_config or get_controller_config()
    conventions = config.conventions

    async with KubernetesApi(effective_kube) as api:
        policies = KubernetesPolicyStore(api)
        controller = Controller(
            engine=build_engine(api, conventions=conventions),
            mapper=PolicyEventMapper(policies=policies, conventions=conventions),
            policies=policies,
            object_changes=lambda: watch_object_changes(
                api,
                namespace=config.namespace,
                conventions=conventions,
                timeout_seconds=config.watch_timeout_seconds,
            ),
            policy_changes=lambda: watch_policy_keys(
                api,
                namespace=config.namespace,
                timeout_seconds=config.watch_timeout_seconds,
            ),
            config=config,
            report=log_pass_result,
        )
        await controller.run()


def classify_names(
    target_name: str,
    names: Iterable[str],
    *,
    conventions: RescueConventions = DEFAULT_CONVENTIONS,
) -> list[tuple[str, Classification]]:
    return [(name, classify(name, target_name, conventions=conventions)) for name in names]


__all__ = [
    "build_engine",
    "classify_names",
    "log_pass_result",
    "reconcile_policy",
    "run_controller",
]
