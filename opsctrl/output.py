import json
from typing import Any

import yaml

from opsctrl.loader import RuleSet
from opsctrl.model import DiagnosisOutcome

MAX_LOG_LINES = 15

# ----------------------------
# Output formatting
# ----------------------------


def _print_local(outcome: DiagnosisOutcome) -> None:
    if outcome.healthy:
        print("\nLocal check: all containers healthy, no events")
        return

    local = outcome.local
    if local is None or local.result is None:
        print("\nLocal check: no known failure pattern matched")
        return

    res = local.result
    label = "locked" if local.handled else "needs confirmation"
    print(f"\nLocal diagnosis ({label}, {round(res.confidence_score * 100)}%):")
    print(f"  Rule: {res.rule_id}")
    print(f"  Summary: {res.diagnosis_summary}")
    if res.suggested_fix:
        print(f"  Suggested fix: {res.suggested_fix}")


def _print_remote(remote: dict[str, Any]) -> None:
    print("\nRemote diagnosis:")
    for key in ("diagnosis_summary", "root_cause", "suggested_fix"):
        if remote.get(key):
            print(f"  {key.replace('_', ' ').capitalize()}: {remote[key]}")
    confidence = remote.get("confidence_score")
    if isinstance(confidence, (int, float)):
        print(f"  Confidence: {round(confidence * 100)}%")


def output_result(outcome: DiagnosisOutcome, fmt: str = "text") -> None:
    """
    Print a diagnosis outcome as text, json or yaml.
    """
    data = outcome.to_dict()

    if fmt == "json":
        print(json.dumps(data, indent=2))
        return

    if fmt == "yaml":
        print(yaml.safe_dump(data, sort_keys=False))
        return

    # ----------------------------
    # Text output
    # ----------------------------
    print(f"Pod: {data['namespace']}/{data['pod']}")
    print(f"Phase: {data['phase']}")

    print("\nContainers:")
    for c in data["containers"]:
        print(f"  - [{c['type']}] {c['name']}: {c['state']}")

    if data["events"]:
        print("\nEvents:")
        for e in data["events"]:
            print(f"  - {e}")

    if data["logs"]:
        print("\nLogs (sanitized):")
        for line in data["logs"][:MAX_LOG_LINES]:
            print(f"  {line}")

    _print_local(outcome)

    if outcome.remote is not None:
        _print_remote(outcome.remote)


def output_rules(ruleset: RuleSet) -> None:
    for rule in ruleset:
        print(f"  - {rule.id} (confidence={rule.diagnosis.confidence_score:.2f})")
    for warning in ruleset.warnings:
        print(f"[WARNING] {warning}")
