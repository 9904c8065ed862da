"""
Tests for persona_engine/features/quality.py.

What we test
------------
validate_and_normalize():
  - Clean inputs → valid, no flags, data unchanged.
  - None values are flagged "missing" and kept in normalized_data.
  - NaN / inf floats and numeric strings that overflow are flagged "non_finite".
  - Numeric strings are coerced to float; other strings are untouched.
  - None inputs are treated as empty.
  - Idempotent: feeding normalized_data back yields the same data and flags.
score_data_quality():
  - 1.0 with no flags, minus decay per flag, floored at 0.
"""

from __future__ import annotations

import math

import pytest

from persona_engine.features.quality import score_data_quality, validate_and_normalize


class TestValidateAndNormalize:
    def test_clean_inputs(self):
        result = validate_and_normalize({"region": "eu", "basket": 3, "vip": True})
        assert result.valid is True
        assert result.quality_flags == []
        assert result.normalized_data == {"region": "eu", "basket": 3, "vip": True}

    def test_missing_flagged(self):
        result = validate_and_normalize({"region": None, "basket": 3})
        assert result.valid is False
        assert [(f.field, f.issue) for f in result.quality_flags] == [("region", "missing")]
        assert "region" in result.normalized_data

    def test_non_finite_flagged(self):
        result = validate_and_normalize({"a": float("nan"), "b": float("inf"), "c": "1e999"})
        issues = {f.field: f.issue for f in result.quality_flags}
        assert issues == {"a": "non_finite", "b": "non_finite", "c": "non_finite"}

    def test_numeric_strings_coerced(self):
        result = validate_and_normalize({"basket": "3", "price": " 4.5 ", "code": "A1"})
        assert result.normalized_data["basket"] == 3.0
        assert result.normalized_data["price"] == pytest.approx(4.5)
        assert result.normalized_data["code"] == "A1"

    def test_none_inputs(self):
        result = validate_and_normalize(None)
        assert result.valid is True
        assert result.normalized_data == {}

    def test_idempotent(self):
        raw = {"basket": "3", "region": None, "x": float("nan"), "name": "n"}
        first = validate_and_normalize(raw)
        second = validate_and_normalize(first.normalized_data)
        assert [f.field for f in second.quality_flags] == [f.field for f in first.quality_flags]
        assert second.normalized_data["basket"] == first.normalized_data["basket"]
        assert math.isnan(second.normalized_data["x"])


class TestScoreDataQuality:
    def test_no_flags(self):
        assert score_data_quality(0) == 1.0

    def test_decay(self):
        assert score_data_quality(3) == pytest.approx(0.7)

    def test_floor(self):
        assert score_data_quality(15) == 0.0

    def test_custom_decay(self):
        assert score_data_quality(2, decay=0.25) == pytest.approx(0.5)
