"""
Tests for persona_engine/engine/confidence.py.

What we test
------------
context_stability():
  - Known horizons use the table; missing / unknown → default 0.9.
compose_confidence():
  - Product of the three factors, clamped and rounded to 2 places.
confidence_label():
  - > 0.8 High, >= 0.5 Moderate, else Low.
build_explanation():
  - Summary names the decision type and the action label (or "action").
  - top_factors lists objective weights, heaviest first.
"""

from __future__ import annotations

import pytest

from persona_engine.config import ConfidenceConfig
from persona_engine.engine.confidence import (
    build_explanation,
    compose_confidence,
    confidence_label,
    context_stability,
)
from persona_engine.models.decision import Decision
from persona_engine.models.request import ActionCandidate
from persona_engine.taxonomy.risk_taxonomy import DecisionType


@pytest.fixture
def cfg() -> ConfidenceConfig:
    return ConfidenceConfig()


class TestContextStability:
    @pytest.mark.parametrize("horizon,expected", [
        ("realtime", 1.0),
        ("short_term", 0.95),
        ("MEDIUM_TERM", 0.9),
        ("long_term", 0.8),
        ("next_decade", 0.9),
        (None, 0.9),
        ("", 0.9),
    ])
    def test_table(self, cfg, horizon, expected):
        assert context_stability(horizon, cfg) == pytest.approx(expected)


class TestComposeConfidence:
    def test_product(self):
        assert compose_confidence(1.0, 1.0, 0.9) == 0.9

    def test_rounded(self):
        assert compose_confidence(0.7, 0.95, 0.9) == 0.6

    def test_clamped(self):
        assert compose_confidence(1.0, 1.5, 1.0) == 1.0
        assert compose_confidence(0.0, 0.5, 0.9) == 0.0


class TestConfidenceLabel:
    @pytest.mark.parametrize("value,label", [
        (0.95, "High"), (0.81, "High"), (0.8, "Moderate"),
        (0.5, "Moderate"), (0.49, "Low"), (0.0, "Low"),
    ])
    def test_labels(self, cfg, value, label):
        assert confidence_label(value, cfg) == label


class TestBuildExplanation:
    def test_recommend_summary(self, cfg):
        decision = Decision(
            type=DecisionType.RECOMMEND,
            action=ActionCandidate(id="a", name="Express courier"),
        )
        expl = build_explanation(decision, {"speed": 0.2, "price": 0.7}, 0.9, cfg)
        assert expl.summary == "Decision to RECOMMEND Express courier based on weighted scoring."
        assert [(f.factor, f.weight) for f in expl.top_factors] == [("price", 0.7), ("speed", 0.2)]
        assert expl.confidence_level == "High"

    def test_no_action_summary(self, cfg):
        decision = Decision(type=DecisionType.ESCALATE, reason="No valid candidates")
        expl = build_explanation(decision, {}, 0.6, cfg)
        assert expl.summary == "Decision to ESCALATE action based on weighted scoring."
        assert expl.top_factors == []
        assert expl.confidence_level == "Moderate"
