import json
import os

import pytest

from opsctrl import loader
from opsctrl.loader import (
    DEFAULT_RULES_FILE,
    RuleLoadError,
    build_rules,
    get_default_rules,
    load_rules,
)
from opsctrl.model import Regex, Substring

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


def fixture(name):
    return os.path.join(FIXTURES_DIR, name)


# ----------------------------
# Reading
# ----------------------------


def test_load_json_file_keeps_order():
    ruleset = load_rules(fixture("rules_basic.json"))
    assert [r.id for r in ruleset] == ["crashloop", "db-refused"]
    assert ruleset.warnings == []


def test_load_yaml_file():
    ruleset = load_rules(fixture("rules_basic.yaml"))
    rule = ruleset.rules[0]
    assert rule.id == "probe"
    assert rule.match.events == (Regex("liveness probe failed"),)
    assert rule.diagnosis.confidence_score == 0.85


def test_unreadable_file_is_fatal(tmp_path):
    with pytest.raises(RuleLoadError):
        load_rules(str(tmp_path / "missing.json"))


def test_unparseable_file_is_fatal():
    with pytest.raises(RuleLoadError):
        load_rules(fixture("rules_truncated.json"))


def test_bundled_rules_load_cleanly():
    with open(DEFAULT_RULES_FILE, encoding="utf-8") as f:
        raw = json.load(f)

    ruleset = load_rules(DEFAULT_RULES_FILE)
    assert ruleset.warnings == []
    assert len(ruleset) == len(raw)
    for rule in ruleset:
        assert rule.id
        assert rule.diagnosis.diagnosis_summary
        assert 0.0 <= rule.diagnosis.confidence_score <= 1.0


# ----------------------------
# Best-effort validation
# ----------------------------


def test_non_list_is_warning_not_error():
    ruleset = build_rules({"id": "x"})
    assert ruleset.rules == []
    assert len(ruleset.warnings) == 1


def test_missing_required_fields_kept_with_warning():
    ruleset = build_rules(
        [
            {"match": {"events": ["boom"]}, "diagnosis": {"diagnosis_summary": "s"}},
            {"id": "no-summary", "diagnosis": {"confidence_score": 0.5}},
        ]
    )
    assert len(ruleset) == 2
    assert any("'id'" in w for w in ruleset.warnings)
    assert any("diagnosis_summary" in w for w in ruleset.warnings)
    assert ruleset.rules[1].diagnosis.diagnosis_summary == ""


def test_duplicate_ids_reported():
    entry = {"id": "dup", "diagnosis": {"diagnosis_summary": "s"}}
    ruleset = build_rules([entry, dict(entry)])
    assert len(ruleset) == 2
    assert any("Duplicate" in w for w in ruleset.warnings)


def test_matcher_shapes():
    ruleset = build_rules(
        [
            {
                "id": "m",
                "match": {
                    "logs": [
                        "plain",
                        {"type": "substring", "value": "tagged"},
                        {"type": "REGEX", "value": "a+b"},
                        {"type": "glob", "value": "*"},
                        42,
                    ]
                },
                "diagnosis": {"diagnosis_summary": "s"},
            }
        ]
    )
    rule = ruleset.rules[0]
    assert rule.match.logs == (Substring("plain"), Substring("tagged"), Regex("a+b"))
    assert len(ruleset.warnings) == 2


@pytest.mark.parametrize(
    "raw, expected",
    [(1.5, 1.0), (-0.2, 0.0), ("high", 0.0), (True, 0.0), (0.92, 0.92)],
)
def test_confidence_kept_in_range(raw, expected):
    ruleset = build_rules(
        [{"id": "c", "diagnosis": {"diagnosis_summary": "s", "confidence_score": raw}}]
    )
    assert ruleset.rules[0].diagnosis.confidence_score == expected


def test_default_rules_cached(monkeypatch):
    monkeypatch.setattr(loader, "_DEFAULT_RULES", None)
    monkeypatch.setenv("OPSCTRL_RULES_FILE", fixture("rules_basic.json"))

    first = get_default_rules()
    assert [r.id for r in first] == ["crashloop", "db-refused"]
    assert get_default_rules() is first
