from opsctrl.engine import evaluate
from opsctrl.loader import build_rules


def test_invalid_regex_does_not_abort_evaluation():
    """
    Regression test:
    a rule whose regex cannot compile must be skipped silently and
    later rules must still be evaluated.
    """
    ruleset = build_rules(
        [
            {
                "id": "broken-regex",
                "match": {"logs": [{"type": "regex", "value": "([unclosed"}]},
                "diagnosis": {"diagnosis_summary": "never", "confidence_score": 1.0},
            },
            {
                "id": "fallback",
                "match": {"logs": ["panic"]},
                "diagnosis": {"diagnosis_summary": "Application panicked", "confidence_score": 0.6},
            },
        ]
    )

    result = evaluate(["Waiting: CrashLoopBackOff"], [], ["([unclosed", "PANIC: nil map"], ruleset.rules)
    assert result.rule_id == "fallback"


def test_only_invalid_regex_yields_no_result():
    ruleset = build_rules(
        [
            {
                "id": "broken-regex",
                "match": {"events": [{"type": "regex", "value": "*oops"}]},
                "diagnosis": {"diagnosis_summary": "never"},
            }
        ]
    )
    assert evaluate(["Terminated: Error"], ["*oops"], [], ruleset.rules) is None
