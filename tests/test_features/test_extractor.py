"""
Tests for persona_engine/features/extractor.py.

What we test
------------
build_feature_vector():
  - Raw data and candidate properties are merged; candidate wins on collision.
  - action_id, action_name and risk_tolerance are always set and always win.
  - action_name falls back to the candidate id.
  - Inputs are not mutated; nothing is defaulted.
"""

from __future__ import annotations

from persona_engine.features.extractor import build_feature_vector
from persona_engine.models.request import ActionCandidate


class TestBuildFeatureVector:
    def test_merge_candidate_wins(self):
        raw = {"price": 10, "region": "eu"}
        cand = ActionCandidate(id="a", name="Alpha", properties={"price": 20})
        features = build_feature_vector(raw, cand, "LOW")
        assert features["price"] == 20
        assert features["region"] == "eu"

    def test_identity_fields(self):
        cand = ActionCandidate(id="a", properties={"action_id": "spoofed"})
        features = build_feature_vector({"risk_tolerance": "HIGH"}, cand, "LOW")
        assert features["action_id"] == "a"
        assert features["action_name"] == "a"
        assert features["risk_tolerance"] == "LOW"

    def test_no_mutation_no_defaults(self):
        raw = {"region": "eu"}
        cand = ActionCandidate(id="a", properties={"price": 5})
        features = build_feature_vector(raw, cand, "MEDIUM")
        assert raw == {"region": "eu"}
        assert cand.properties == {"price": 5}
        assert "quality" not in features
