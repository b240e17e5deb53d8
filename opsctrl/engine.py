import logging
import re
from collections.abc import Iterable, Sequence

from opsctrl.model import (
    ContainerStatusSummary,
    LocalDiagnosisResult,
    MatchLine,
    Regex,
    Rule,
    Substring,
)

logger = logging.getLogger(__name__)

HEALTHY_STATE = "Running"
COMPLETED_PREFIX = "Terminated: Completed"


def _state_text(state: ContainerStatusSummary | str) -> str:
    return state.state if isinstance(state, ContainerStatusSummary) else state


def is_healthy(
    container_states: Iterable[ContainerStatusSummary | str], events: Sequence[str]
) -> bool:
    """
    All containers running or completed and no events at all.
    """
    if events:
        return False
    return all(
        s == HEALTHY_STATE or s.startswith(COMPLETED_PREFIX)
        for s in map(_state_text, container_states)
    )


# ----------------------------
# Matchers
# ----------------------------


def match_line(matcher: MatchLine | str, line: str) -> bool:
    """
    Case-insensitive test of one matcher against one line.
    A regex that fails to compile or evaluate never matches.
    """
    if isinstance(matcher, str):
        matcher = Substring(matcher)

    if isinstance(matcher, Substring):
        return matcher.value.lower() in line.lower()

    if isinstance(matcher, Regex):
        try:
            return re.search(matcher.value, line, re.IGNORECASE) is not None
        except (re.error, TypeError, RecursionError):
            logger.debug("Invalid regex %r treated as no match", matcher.value)
            return False

    return False


def _any_line(matchers: Iterable[MatchLine], lines: Sequence[str]) -> bool:
    return any(match_line(m, line) for m in matchers for line in lines)


def rule_matches(
    rule: Rule,
    container_states: Sequence[str],
    events: Sequence[str],
    sanitized_logs: Sequence[str],
) -> bool:
    # Container states are fixed vocabulary, compared case-sensitively.
    if any(p in s for p in rule.match.container_states for s in container_states):
        return True
    if _any_line(rule.match.logs, sanitized_logs):
        return True
    return _any_line(rule.match.events, events)


# ----------------------------
# Local diagnosis engine
# ----------------------------


def evaluate(
    container_states: Iterable[ContainerStatusSummary | str],
    events: Sequence[str],
    sanitized_logs: Sequence[str],
    rules: Iterable[Rule],
) -> LocalDiagnosisResult | None:
    """
    Return the diagnosis of the first rule, in order, that matches.

    Returns None both for a healthy workload and when nothing matches;
    callers that need to tell them apart use is_healthy().
    """
    states = [_state_text(s) for s in container_states]

    if is_healthy(states, events):
        logger.debug("Workload healthy, skipping rule evaluation")
        return None

    for rule in rules:
        if rule_matches(rule, states, events, sanitized_logs):
            logger.debug(
                "Rule '%s' matched (confidence=%.2f)",
                rule.id,
                rule.diagnosis.confidence_score,
            )
            return LocalDiagnosisResult(
                rule_id=rule.id,
                diagnosis_summary=rule.diagnosis.diagnosis_summary,
                suggested_fix=rule.diagnosis.suggested_fix,
                confidence_score=rule.diagnosis.confidence_score,
            )

    logger.debug("No rule matched")
    return None
