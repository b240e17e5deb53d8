import pytest

from opsctrl.engine import evaluate
from opsctrl.loader import DEFAULT_RULES_FILE, load_rules
from opsctrl.sanitize import sanitize

RULES = load_rules(DEFAULT_RULES_FILE).rules


@pytest.mark.parametrize(
    "states, events, logs, expected",
    [
        (["Terminated: OOMKilled"], [], [], "oom-killed"),
        (["Waiting: ImagePullBackOff"], [], [], "image-pull-failure"),
        (
            ["Waiting: CreateContainerConfigError"],
            ['Error: configmap "app-config" not found'],
            [],
            "missing-config",
        ),
        (
            [],
            ["0/3 nodes are available: 3 Insufficient memory."],
            [],
            "unschedulable",
        ),
        (
            ["Running"],
            ["Liveness probe failed: HTTP probe failed with statuscode: 500"],
            [],
            "probe-failure",
        ),
        (
            ["Waiting: CrashLoopBackOff"],
            ["Back-off restarting failed container"],
            ["[main:api] dial tcp 10.0.0.9:5432: connect: connection refused"],
            "dependency-connection-refused",
        ),
        (
            ["Waiting: CrashLoopBackOff"],
            ["Back-off restarting failed container"],
            ["[main:api] panic: runtime error"],
            "crashloop-backoff",
        ),
    ],
)
def test_default_rule_selection(states, events, logs, expected):
    result = evaluate(states, events, sanitize(logs), RULES)
    assert result is not None
    assert result.rule_id == expected


def test_healthy_pod_has_no_local_diagnosis():
    assert evaluate(["Running"], [], ["GET /healthz 200"], RULES) is None
