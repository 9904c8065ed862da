"""
Tests for persona_engine/engine/ranker.py.

What we test
------------
estimate_latency():
  - estimated_latency_ms preferred over latency_ms; default otherwise.
  - Non-numeric, bool, negative and non-finite values are ignored.
rank_candidates():
  - Score descending, then risk ascending, then latency ascending.
  - A CRITICAL candidate never outranks a LOW one with equal or higher score.
  - Full ties keep input order.
apply_gate():
  - RECOMMEND when score >= min_score and risk <= max_risk.
  - ESCALATE "Below thresholds" with the best action otherwise.
  - Unknown max_risk always escalates.
  - Empty list → ESCALATE "No valid candidates", action None.
"""

from __future__ import annotations

import itertools

import pytest

from persona_engine.engine.ranker import (
    REASON_BELOW_THRESHOLDS,
    REASON_NO_CANDIDATES,
    apply_gate,
    estimate_latency,
    rank_candidates,
)
from persona_engine.models.decision import ScoredCandidate
from persona_engine.models.request import ActionCandidate
from persona_engine.taxonomy.risk_taxonomy import DecisionType, RiskLevel


def _scored(
    action_id: str,
    score: float,
    risk: RiskLevel = RiskLevel.MEDIUM,
    latency_ms: float = 100.0,
) -> ScoredCandidate:
    return ScoredCandidate(
        action=ActionCandidate(id=action_id),
        score=score,
        risk=risk,
        latency_ms=latency_ms,
    )


class TestEstimateLatency:
    def test_estimated_preferred(self):
        cand = ActionCandidate(id="a", properties={"estimated_latency_ms": 20, "latency_ms": 5})
        assert estimate_latency(cand, 100.0) == 20.0

    def test_latency_fallback(self):
        assert estimate_latency(ActionCandidate(id="a", properties={"latency_ms": 5}), 100.0) == 5.0

    def test_default(self):
        assert estimate_latency(ActionCandidate(id="a"), 100.0) == 100.0

    @pytest.mark.parametrize("bad", ["fast", True, -1, float("nan"), float("inf")])
    def test_ignores_bad_values(self, bad):
        cand = ActionCandidate(id="a", properties={"estimated_latency_ms": bad})
        assert estimate_latency(cand, 100.0) == 100.0


class TestRankCandidates:
    def test_score_desc(self):
        ranked = rank_candidates([_scored("a", 40), _scored("b", 80), _scored("c", 60)])
        assert [c.action.id for c in ranked] == ["b", "c", "a"]

    def test_risk_breaks_ties(self):
        ranked = rank_candidates([
            _scored("crit", 70, RiskLevel.CRITICAL),
            _scored("low", 70, RiskLevel.LOW),
            _scored("high", 70, RiskLevel.HIGH),
        ])
        assert [c.action.id for c in ranked] == ["low", "high", "crit"]

    def test_latency_breaks_remaining_ties(self):
        ranked = rank_candidates([
            _scored("slow", 70, latency_ms=300),
            _scored("fast", 70, latency_ms=30),
        ])
        assert [c.action.id for c in ranked] == ["fast", "slow"]

    def test_stable_for_full_ties(self):
        ranked = rank_candidates([_scored("x", 50), _scored("y", 50)])
        assert [c.action.id for c in ranked] == ["x", "y"]

    def test_critical_never_ahead_of_low_with_equal_or_higher_score(self):
        scores = [0.0, 35.5, 70.0, 100.0]
        for crit_score, low_score in itertools.product(scores, scores):
            if low_score < crit_score:
                continue
            for order in ([0, 1], [1, 0]):
                pool = [
                    _scored("crit", crit_score, RiskLevel.CRITICAL, latency_ms=1),
                    _scored("low", low_score, RiskLevel.LOW, latency_ms=999),
                ]
                ranked = rank_candidates([pool[i] for i in order])
                assert ranked[0].action.id == "low"

    def test_empty(self):
        assert rank_candidates([]) == []


class TestApplyGate:
    def test_recommend(self):
        decision = apply_gate([_scored("a", 80, RiskLevel.MEDIUM)], 50, "HIGH")
        assert decision.type is DecisionType.RECOMMEND
        assert decision.action.id == "a"
        assert decision.reason is None

    def test_score_at_threshold_recommends(self):
        assert apply_gate([_scored("a", 50)], 50, "HIGH").type is DecisionType.RECOMMEND

    def test_below_min_score(self):
        decision = apply_gate([_scored("a", 70)], 90, "HIGH")
        assert decision.type is DecisionType.ESCALATE
        assert decision.action.id == "a"
        assert decision.reason == REASON_BELOW_THRESHOLDS

    def test_risk_above_max(self):
        decision = apply_gate([_scored("a", 95, RiskLevel.CRITICAL)], 50, "HIGH")
        assert decision.type is DecisionType.ESCALATE

    def test_unknown_max_risk(self):
        decision = apply_gate([_scored("a", 95, RiskLevel.LOW)], 50, "YOLO")
        assert decision.type is DecisionType.ESCALATE

    def test_empty(self):
        decision = apply_gate([], 50, "HIGH")
        assert decision.type is DecisionType.ESCALATE
        assert decision.action is None
        assert decision.reason == REASON_NO_CANDIDATES
