"""
Tests for persona_engine/taxonomy/risk_taxonomy.py.

What we test
------------
RiskLevel:
  - rank follows LOW < MEDIUM < HIGH < CRITICAL.
  - parse() is case-insensitive, strips whitespace, returns None for unknowns.
risk_rank():
  - Unknown values sort after CRITICAL.
is_risk_acceptable():
  - current <= maximum → True; above → False.
  - Unrecognized current or maximum → always False.
"""

from __future__ import annotations

import pytest

from persona_engine.taxonomy.risk_taxonomy import (
    UNKNOWN_RISK_RANK,
    DecisionType,
    RiskLevel,
    is_risk_acceptable,
    risk_rank,
)


class TestRiskLevel:
    def test_ordering(self):
        ranks = [RiskLevel.LOW.rank, RiskLevel.MEDIUM.rank,
                 RiskLevel.HIGH.rank, RiskLevel.CRITICAL.rank]
        assert ranks == [0, 1, 2, 3]

    @pytest.mark.parametrize("raw", ["high", " HIGH ", "High"])
    def test_parse_case_insensitive(self, raw):
        assert RiskLevel.parse(raw) is RiskLevel.HIGH

    @pytest.mark.parametrize("raw", ["EXTREME", "", None, 3])
    def test_parse_unknown(self, raw):
        assert RiskLevel.parse(raw) is None

    def test_str_value(self):
        assert str(RiskLevel.CRITICAL) == "CRITICAL"
        assert str(DecisionType.ESCALATE) == "ESCALATE"


class TestRiskRank:
    def test_known(self):
        assert risk_rank("medium") == 1

    def test_unknown_sorts_last(self):
        assert risk_rank("EXTREME") == UNKNOWN_RISK_RANK
        assert risk_rank("EXTREME") > risk_rank(RiskLevel.CRITICAL)


class TestIsRiskAcceptable:
    @pytest.mark.parametrize("current,maximum,expected", [
        ("LOW", "HIGH", True),
        ("HIGH", "HIGH", True),
        ("CRITICAL", "HIGH", False),
        ("MEDIUM", "LOW", False),
        (RiskLevel.MEDIUM, "medium", True),
    ])
    def test_ordering(self, current, maximum, expected):
        assert is_risk_acceptable(current, maximum) is expected

    def test_unknown_current_rejected(self):
        assert is_risk_acceptable("EXTREME", "CRITICAL") is False

    def test_unknown_maximum_rejected(self):
        assert is_risk_acceptable("LOW", "WHATEVER") is False
