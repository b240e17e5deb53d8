import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Protocol

from opsctrl.confidence import classify
from opsctrl.engine import evaluate, is_healthy
from opsctrl.loader import get_default_rules
from opsctrl.model import (
    ContainerStatusSummary,
    DiagnosisOutcome,
    PreliminaryCheckOutcome,
    Rule,
    SignalBundle,
)
from opsctrl.sanitize import sanitize

logger = logging.getLogger(__name__)


class SignalSource(Protocol):
    def get_status(
        self, pod_name: str, namespace: str
    ) -> tuple[str, list[ContainerStatusSummary]]: ...

    def get_events(self, pod_name: str, namespace: str) -> list[str]: ...

    def get_logs(
        self, pod_name: str, namespace: str, container: str | None = None
    ) -> list[str]: ...


class Escalation(Protocol):
    def diagnose(self, payload: dict[str, Any]) -> dict[str, Any]: ...


# ----------------------------
# Signal acquisition
# ----------------------------


def collect_signals(
    source: SignalSource,
    pod_name: str,
    namespace: str,
    container: str | None = None,
) -> SignalBundle:
    """
    Fetch status, events and logs concurrently.

    All three must succeed; the first failure propagates.
    """
    with ThreadPoolExecutor(max_workers=3) as pool:
        status_f = pool.submit(source.get_status, pod_name, namespace)
        events_f = pool.submit(source.get_events, pod_name, namespace)
        logs_f = pool.submit(source.get_logs, pod_name, namespace, container)

        phase, states = status_f.result()
        events = events_f.result()
        logs = logs_f.result()

    return SignalBundle(
        container_states=tuple(states),
        events=tuple(events),
        logs=tuple(logs),
        phase=phase,
        pod_name=pod_name,
        namespace=namespace,
    )


def build_payload(bundle: SignalBundle, sanitized_logs: list[str]) -> dict[str, Any]:
    return {
        "podName": bundle.pod_name,
        "namespace": bundle.namespace,
        "phase": bundle.phase,
        "containerState": [c.to_dict() for c in bundle.container_states],
        "events": list(bundle.events),
        "logs": list(sanitized_logs),
    }


# ----------------------------
# Orchestration
# ----------------------------


def preliminary_check(
    bundle: SignalBundle,
    sanitized_logs: list[str],
    rules: Iterable[Rule],
) -> PreliminaryCheckOutcome | None:
    result = evaluate(bundle.container_states, bundle.events, sanitized_logs, rules)
    if result is None:
        return None
    return classify(result)


def diagnose(
    bundle: SignalBundle,
    escalation: Escalation | None = None,
    rules: Iterable[Rule] | None = None,
) -> DiagnosisOutcome:
    """
    Sanitize, run the local rules, then escalate.

    The sanitized bundle is forwarded to the escalation service whatever
    the local outcome, including a locked high-confidence match. Passing
    escalation=None skips the remote call.
    """
    rules = get_default_rules() if rules is None else rules
    sanitized_logs = sanitize(bundle.logs)

    healthy = is_healthy(bundle.container_states, bundle.events)
    local = None if healthy else preliminary_check(bundle, sanitized_logs, rules)

    if local is not None:
        logger.info(
            "Local diagnosis '%s' (%s)",
            local.result.rule_id,
            "locked" if local.handled else local.reason,
        )

    remote = None
    if escalation is not None:
        remote = escalation.diagnose(build_payload(bundle, sanitized_logs))

    return DiagnosisOutcome(
        bundle=bundle,
        sanitized_logs=tuple(sanitized_logs),
        healthy=healthy,
        local=local,
        remote=remote,
    )


def diagnose_pod(
    source: SignalSource,
    pod_name: str,
    namespace: str = "default",
    container: str | None = None,
    escalation: Escalation | None = None,
    rules: Iterable[Rule] | None = None,
) -> DiagnosisOutcome:
    bundle = collect_signals(source, pod_name, namespace, container)
    return diagnose(bundle, escalation=escalation, rules=rules)
