"""
Risk classification for scored candidates.

``RiskModel`` is an ordered list of ``(matcher, level)`` pairs evaluated
against the candidate's feature vector; the first match wins and a candidate
that matches nothing gets ``default_level``.  Two matcher kinds exist:

  - ``action_id_contains`` — substring test on the ``action_id`` feature.
  - ``condition``          — any rule condition string, e.g. ``"temp_c > 90"``,
                             parsed by the same safe parser as persona rules.

Built-in model (``RiskConfig()`` defaults)::

    action id contains "maintenance" → LOW
    temp_c > 90                      → CRITICAL
    otherwise                        → MEDIUM
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from persona_engine.config import RiskConfig
from persona_engine.features.extractor import ACTION_ID
from persona_engine.rules.condition import Condition, evaluate_condition, parse_condition
from persona_engine.taxonomy.risk_taxonomy import RiskLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskRule:
    level: RiskLevel
    action_id_contains: Optional[str] = None
    condition: Optional[Condition] = None

    def matches(self, features: Mapping[str, Any]) -> bool:
        if self.action_id_contains is not None:
            return self.action_id_contains in str(features.get(ACTION_ID, ""))
        if self.condition is not None:
            return evaluate_condition(self.condition, features)
        return False


class RiskModel:
    """First-match risk classifier.

    Args:
        rules:         Ordered risk rules.
        default_level: Level assigned when no rule matches.
    """

    def __init__(
        self,
        rules: list[RiskRule],
        default_level: RiskLevel = RiskLevel.MEDIUM,
    ) -> None:
        self.rules = list(rules)
        self.default_level = default_level

    @classmethod
    def from_config(cls, config: RiskConfig) -> "RiskModel":
        """Build a model from the ``[risk]`` config section.

        Raises:
            ConditionParseError: If a configured condition cannot be parsed.
                Config errors surface at start-up, not per request.
        """
        rules = [
            RiskRule(
                level=RiskLevel(rule.level.upper()),
                action_id_contains=rule.action_id_contains,
                condition=parse_condition(rule.condition) if rule.condition else None,
            )
            for rule in config.rules
        ]
        return cls(rules, default_level=RiskLevel(config.default_level))

    def classify(self, features: Mapping[str, Any]) -> RiskLevel:
        for rule in self.rules:
            if rule.matches(features):
                return rule.level
        return self.default_level
