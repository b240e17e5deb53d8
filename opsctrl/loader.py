import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from opsctrl.model import Diagnosis, MatchLine, Regex, Rule, RuleMatch, Substring

logger = logging.getLogger(__name__)

DEFAULT_RULES_FILE = os.path.join(os.path.dirname(__file__), "rules", "default_rules.json")


class RuleLoadError(Exception):
    """The rule definition could not be read or parsed."""


@dataclass
class RuleSet:
    rules: list[Rule] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)


# ----------------------------
# Parsing
# ----------------------------


def _read_source(source: Any) -> Any:
    if not isinstance(source, (str, os.PathLike)):
        return source

    path = os.fspath(source)
    try:
        with open(path, encoding="utf-8") as f:
            if path.endswith((".yaml", ".yml")):
                return yaml.safe_load(f)
            return json.load(f)
    except OSError as e:
        raise RuleLoadError(f"Cannot read rule file {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise RuleLoadError(f"Cannot parse rule file {path}: {e}") from e


def _build_match_line(raw: Any, where: str, warnings: list[str]) -> MatchLine | None:
    if isinstance(raw, str):
        return Substring(raw)

    if isinstance(raw, dict) and isinstance(raw.get("value"), str):
        kind = str(raw.get("type", "substring")).lower()
        if kind == "regex":
            return Regex(raw["value"])
        if kind == "substring":
            return Substring(raw["value"])
        warnings.append(f"{where}: unknown matcher type '{kind}', skipped")
        return None

    warnings.append(f"{where}: matcher must be a string or {{type, value}}, skipped")
    return None


def _build_match(raw: Any, rule_id: str, warnings: list[str]) -> RuleMatch:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        warnings.append(f"Rule '{rule_id}'.match must be an object, ignored")
        raw = {}

    def entries(key: str) -> list[Any]:
        value = raw.get(key) or []
        if not isinstance(value, list):
            warnings.append(f"Rule '{rule_id}'.match.{key} must be a list, ignored")
            return []
        return value

    states = []
    for s in entries("containerStates"):
        if isinstance(s, str):
            states.append(s)
        else:
            warnings.append(f"Rule '{rule_id}'.match.containerStates: non-string entry skipped")

    lines: dict[str, list[MatchLine]] = {"logs": [], "events": []}
    for key in lines:
        for i, entry in enumerate(entries(key)):
            line = _build_match_line(entry, f"Rule '{rule_id}'.match.{key}[{i}]", warnings)
            if line is not None:
                lines[key].append(line)

    return RuleMatch(
        container_states=tuple(states),
        logs=tuple(lines["logs"]),
        events=tuple(lines["events"]),
    )


def _build_confidence(raw: Any, rule_id: str, warnings: list[str]) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        warnings.append(f"Rule '{rule_id}'.confidence_score must be numeric, using 0.0")
        return 0.0
    if not 0.0 <= raw <= 1.0:
        warnings.append(f"Rule '{rule_id}'.confidence_score {raw} outside [0, 1], clamped")
    return min(1.0, max(0.0, float(raw)))


def build_rule(spec: dict[str, Any], index: int, warnings: list[str]) -> Rule:
    """
    Build a Rule from one parsed entry. Missing required fields are
    reported in warnings; the entry is still kept.
    """
    rule_id = spec.get("id")
    if not isinstance(rule_id, str) or not rule_id:
        warnings.append(f"Rule #{index} is missing required field 'id'")
        rule_id = f"<rule-{index}>"

    diagnosis = spec.get("diagnosis")
    if not isinstance(diagnosis, dict):
        diagnosis = {}

    summary = diagnosis.get("diagnosis_summary")
    if not isinstance(summary, str):
        warnings.append(
            f"Rule '{rule_id}' is missing required field 'diagnosis.diagnosis_summary'"
        )
        summary = ""

    fix = diagnosis.get("suggested_fix", "")
    if not isinstance(fix, str):
        fix = str(fix)

    return Rule(
        id=rule_id,
        match=_build_match(spec.get("match"), rule_id, warnings),
        diagnosis=Diagnosis(
            diagnosis_summary=summary,
            suggested_fix=fix,
            confidence_score=_build_confidence(
                diagnosis.get("confidence_score", 0.0), rule_id, warnings
            ),
        ),
    )


def build_rules(spec: Any) -> RuleSet:
    ruleset = RuleSet()

    if not isinstance(spec, list):
        ruleset.warnings.append(
            f"Rule definition must be a list, got {type(spec).__name__}; no rules loaded"
        )
        return ruleset

    for i, item in enumerate(spec):
        if not isinstance(item, dict):
            ruleset.warnings.append(f"Rule #{i} must be an object, skipped")
            continue
        ruleset.rules.append(build_rule(item, i, ruleset.warnings))

    ruleset.warnings.extend(validate_rules(ruleset.rules))
    return ruleset


def validate_rules(rules: list[Rule]) -> list[str]:
    warnings = []
    seen: set[str] = set()
    for rule in rules:
        if rule.id in seen:
            warnings.append(f"Duplicate rule id '{rule.id}'")
        seen.add(rule.id)
    return warnings


# ----------------------------
# Loading
# ----------------------------


def load_rules(source: Any = None) -> RuleSet:
    """
    Load a rule set from a JSON/YAML file path or an already-parsed value.

    Raises RuleLoadError when the file cannot be read or parsed. Structural
    problems are collected as warnings and never raise.
    """
    if source is None:
        source = DEFAULT_RULES_FILE

    ruleset = build_rules(_read_source(source))
    for warning in ruleset.warnings:
        logger.warning(warning)
    logger.debug("Loaded %d rules", len(ruleset.rules))
    return ruleset


_DEFAULT_RULES: RuleSet | None = None


def get_default_rules() -> RuleSet:
    global _DEFAULT_RULES
    if _DEFAULT_RULES is None:
        _DEFAULT_RULES = load_rules(os.getenv("OPSCTRL_RULES_FILE") or DEFAULT_RULES_FILE)
    return _DEFAULT_RULES
