from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

# ----------------------------
# Signals
# ----------------------------


class ContainerRole(str, Enum):
    INIT = "init"
    MAIN = "main"


@dataclass(frozen=True)
class ContainerStatusSummary:
    name: str
    role: ContainerRole
    state: str
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {"name": self.name, "type": self.role.value, "state": self.state}
        if self.reason is not None:
            data["reason"] = self.reason
        return data


@dataclass(frozen=True)
class SignalBundle:
    """
    Everything collected for one diagnosis attempt.

    Events are expected newest first; logs are raw until sanitized.
    """

    container_states: tuple[ContainerStatusSummary, ...] = ()
    events: tuple[str, ...] = ()
    logs: tuple[str, ...] = ()
    phase: str = "Unknown"
    pod_name: str = ""
    namespace: str = "default"


# ----------------------------
# Rules
# ----------------------------


@dataclass(frozen=True)
class Substring:
    value: str


@dataclass(frozen=True)
class Regex:
    value: str


MatchLine = Union[Substring, Regex]


@dataclass(frozen=True)
class RuleMatch:
    container_states: tuple[str, ...] = ()
    logs: tuple[MatchLine, ...] = ()
    events: tuple[MatchLine, ...] = ()


@dataclass(frozen=True)
class Diagnosis:
    diagnosis_summary: str
    suggested_fix: str = ""
    confidence_score: float = 0.0


@dataclass(frozen=True)
class Rule:
    id: str
    match: RuleMatch = field(default_factory=RuleMatch)
    diagnosis: Diagnosis = field(default_factory=lambda: Diagnosis(""))


# ----------------------------
# Outcomes
# ----------------------------


@dataclass(frozen=True)
class LocalDiagnosisResult:
    rule_id: str
    diagnosis_summary: str
    suggested_fix: str
    confidence_score: float
    matched: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "matched": self.matched,
            "ruleId": self.rule_id,
            "diagnosis_summary": self.diagnosis_summary,
            "suggested_fix": self.suggested_fix,
            "confidence_score": self.confidence_score,
        }


@dataclass(frozen=True)
class PreliminaryCheckOutcome:
    handled: bool
    result: LocalDiagnosisResult | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"handled": self.handled}
        if self.result is not None:
            data["result"] = self.result.to_dict()
        if self.reason is not None:
            data["reason"] = self.reason
        return data


@dataclass(frozen=True)
class DiagnosisOutcome:
    """
    Result of one orchestrated diagnosis.

    healthy is True when the health short-circuit fired. local is None
    when nothing matched; remote is None only when escalation was skipped.
    """

    bundle: SignalBundle
    sanitized_logs: tuple[str, ...]
    healthy: bool = False
    local: PreliminaryCheckOutcome | None = None
    remote: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pod": self.bundle.pod_name,
            "namespace": self.bundle.namespace,
            "phase": self.bundle.phase,
            "containers": [c.to_dict() for c in self.bundle.container_states],
            "events": list(self.bundle.events),
            "logs": list(self.sanitized_logs),
            "healthy": self.healthy,
            "local": self.local.to_dict() if self.local else None,
            "remote": self.remote,
        }


# ----------------------------
# Parsing utilities
# ----------------------------


def _pick(obj: dict[str, Any], *keys: str) -> Any:
    # kubernetes client to_dict() uses snake_case, raw API JSON uses camelCase
    for key in keys:
        if obj.get(key) is not None:
            return obj[key]
    return None


def parse_container_state(
    status: dict[str, Any], role: ContainerRole
) -> ContainerStatusSummary:
    name = status.get("name") or "<unknown>"
    state = status.get("state") or {}

    waiting = state.get("waiting")
    if waiting is not None:
        reason = waiting.get("reason") or "Unknown"
        return ContainerStatusSummary(name, role, f"Waiting: {reason}", reason)

    if state.get("running") is not None:
        return ContainerStatusSummary(name, role, "Running")

    terminated = state.get("terminated")
    if terminated is not None:
        reason = terminated.get("reason") or "Unknown"
        return ContainerStatusSummary(name, role, f"Terminated: {reason}", reason)

    return ContainerStatusSummary(name, role, "Unknown")


def get_container_states(pod: dict[str, Any]) -> list[ContainerStatusSummary]:
    """
    Summarize init containers first, then main containers.
    """
    status = pod.get("status") or {}
    init = _pick(status, "initContainerStatuses", "init_container_statuses") or []
    main = _pick(status, "containerStatuses", "container_statuses") or []

    return [parse_container_state(c, ContainerRole.INIT) for c in init] + [
        parse_container_state(c, ContainerRole.MAIN) for c in main
    ]


def get_pod_phase(pod: dict[str, Any]) -> str:
    return (pod.get("status") or {}).get("phase") or "Unknown"
