"""Kubernetes API access for pod status, events and logs (read-only)."""

import logging
from datetime import datetime, timezone
from typing import Any

from opsctrl.model import ContainerStatusSummary, get_container_states, get_pod_phase

logger = logging.getLogger(__name__)

MAX_EVENTS = 20
DEFAULT_TAIL_LINES = 200
LOGS_UNAVAILABLE = "Failed to fetch logs"

NOT_FOUND = "not_found"
FORBIDDEN = "forbidden"
TRANSPORT = "transport"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class SignalSourceError(Exception):
    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind


def _wrap_error(e: Exception, what: str) -> SignalSourceError:
    status = getattr(e, "status", None)
    if status == 404:
        kind = NOT_FOUND
    elif status in (401, 403):
        kind = FORBIDDEN
    else:
        kind = TRANSPORT
    reason = getattr(e, "reason", None) or str(e)
    return SignalSourceError(kind, f"Failed to fetch {what}: {reason}")


def _event_time(event: Any) -> datetime:
    ts = getattr(event, "last_timestamp", None) or getattr(event, "event_time", None)
    if isinstance(ts, str):
        ts = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    if not isinstance(ts, datetime):
        return _EPOCH
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class KubeSignalSource:
    """
    Explicit handle around a CoreV1Api client.

    Tests pass any object exposing read_namespaced_pod,
    list_namespaced_event and read_namespaced_pod_log.
    """

    def __init__(self, core_v1: Any):
        self.core_v1 = core_v1

    @classmethod
    def from_kubeconfig(cls, context: str | None = None) -> "KubeSignalSource":
        from kubernetes import client, config

        try:
            if context:
                config.load_kube_config(context=context)
            else:
                try:
                    config.load_incluster_config()
                except config.ConfigException:
                    config.load_kube_config()
        except config.ConfigException as e:
            raise SignalSourceError(TRANSPORT, f"Cannot load kubeconfig: {e}") from e
        return cls(client.CoreV1Api())

    def _read_pod(self, pod_name: str, namespace: str) -> dict[str, Any]:
        try:
            pod = self.core_v1.read_namespaced_pod(name=pod_name, namespace=namespace)
        except Exception as e:
            raise _wrap_error(e, f"pod {namespace}/{pod_name}") from e
        return pod.to_dict() if hasattr(pod, "to_dict") else pod

    def get_status(
        self, pod_name: str, namespace: str
    ) -> tuple[str, list[ContainerStatusSummary]]:
        pod = self._read_pod(pod_name, namespace)
        return get_pod_phase(pod), get_container_states(pod)

    def get_events(self, pod_name: str, namespace: str) -> list[str]:
        try:
            res = self.core_v1.list_namespaced_event(
                namespace=namespace,
                field_selector=f"involvedObject.name={pod_name}",
                timeout_seconds=10,
            )
        except Exception as e:
            raise _wrap_error(e, f"events for pod {namespace}/{pod_name}") from e

        events = [
            e
            for e in res.items or []
            if getattr(getattr(e, "involved_object", None), "name", None) == pod_name
        ]
        events.sort(key=_event_time, reverse=True)
        return [e.message or "(no message)" for e in events[:MAX_EVENTS]]

    def _read_log(
        self, pod_name: str, namespace: str, container: str, tail_lines: int
    ) -> list[str]:
        try:
            raw = self.core_v1.read_namespaced_pod_log(
                name=pod_name,
                namespace=namespace,
                container=container,
                tail_lines=tail_lines,
            )
        except Exception as e:
            # 400: container has not started yet (image pull, config errors)
            if getattr(e, "status", None) == 400:
                logger.warning("No logs for container %s: %s", container, getattr(e, "reason", e))
                return [LOGS_UNAVAILABLE]
            raise _wrap_error(e, f"logs for container {container}") from e
        return [line for line in (raw or "").split("\n") if line]

    def get_logs(
        self,
        pod_name: str,
        namespace: str,
        container: str | None = None,
        tail_lines: int = DEFAULT_TAIL_LINES,
    ) -> list[str]:
        if container:
            return [
                f"[{container}] {line}"
                for line in self._read_log(pod_name, namespace, container, tail_lines)
            ]

        lines: list[str] = []
        for cs in get_container_states(self._read_pod(pod_name, namespace)):
            prefix = f"[{cs.role.value}:{cs.name}]"
            lines.extend(
                f"{prefix} {line}"
                for line in self._read_log(pod_name, namespace, cs.name, tail_lines)
            )
        return lines
