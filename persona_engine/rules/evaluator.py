"""
Rule evaluation: apply a persona's ordered rule list to one feature vector.

Every matching rule fires (no short-circuit):
  - ``score_adjustment`` values are summed into a single integer
    ``adjustment`` that the aggregator adds after normalization.
  - ``set_metric`` injects (or overwrites) a named metric; later rules win.
  - ``reason`` (or the raw condition) is recorded as evidence.

A rule whose condition cannot be parsed is skipped with a warning; it never
aborts the decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from persona_engine.exceptions import ConditionParseError
from persona_engine.models.persona import DeclarativeRule
from persona_engine.rules.condition import evaluate_condition, parse_condition

logger = logging.getLogger(__name__)


@dataclass
class RuleResult:
    """Outcome of applying a rule list to one candidate.

    Attributes:
        adjustment: Sum of ``score_adjustment`` over all matching rules.
        metrics: Metrics injected by matching rules via ``set_metric``.
        triggered: Evidence labels of matching rules, in rule order.
        skipped: Conditions that could not be parsed.
    """

    adjustment: int = 0
    metrics: dict[str, float] = field(default_factory=dict)
    triggered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def apply_rules(
    features: Mapping[str, Any],
    rules: Iterable[DeclarativeRule],
) -> RuleResult:
    """Evaluate ``rules`` in order against ``features``.

    Args:
        features: Feature vector for one candidate.
        rules:    Persona rules, in persona-defined order.

    Returns:
        A ``RuleResult``; empty when no rule matches.
    """
    result = RuleResult()

    for rule in rules:
        try:
            condition = parse_condition(rule.condition)
        except ConditionParseError as exc:
            logger.warning("Skipping rule: %s", exc)
            result.skipped.append(rule.condition)
            continue

        if not evaluate_condition(condition, features):
            continue

        result.triggered.append(rule.label)
        if rule.score_adjustment:
            result.adjustment += rule.score_adjustment
        if rule.set_metric is not None:
            result.metrics[rule.set_metric.name] = rule.set_metric.value

    return result
