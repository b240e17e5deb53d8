import json
import os

from opsctrl.model import (
    ContainerRole,
    get_container_states,
    get_pod_phase,
    parse_container_state,
)

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


def load_json(name):
    with open(os.path.join(FIXTURES_DIR, name), encoding="utf-8") as f:
        return json.load(f)


def test_container_states_from_api_json():
    pod = load_json("crashloop_pod.json")
    states = get_container_states(pod)

    assert [(s.name, s.role, s.state) for s in states] == [
        ("migrate", ContainerRole.INIT, "Terminated: Completed"),
        ("api", ContainerRole.MAIN, "Waiting: CrashLoopBackOff"),
        ("sidecar", ContainerRole.MAIN, "Running"),
    ]
    assert states[1].reason == "CrashLoopBackOff"
    assert get_pod_phase(pod) == "Running"


def test_container_states_from_client_dict():
    # kubernetes client to_dict() output: snake_case, unset states are None
    pod = {
        "status": {
            "phase": "Pending",
            "init_container_statuses": None,
            "container_statuses": [
                {
                    "name": "app",
                    "state": {"running": None, "terminated": None, "waiting": {"reason": None}},
                }
            ],
        }
    }
    [state] = get_container_states(pod)
    assert state.state == "Waiting: Unknown"
    assert state.reason == "Unknown"


def test_missing_state_is_unknown():
    summary = parse_container_state({"name": "x"}, ContainerRole.MAIN)
    assert summary.state == "Unknown"
    assert summary.reason is None
    assert summary.to_dict() == {"name": "x", "type": "main", "state": "Unknown"}


def test_empty_pod_defaults():
    assert get_container_states({}) == []
    assert get_pod_phase({}) == "Unknown"
