"""
Tests for persona_engine/rules/condition.py.

What we test
------------
parse_condition():
  - All six operators, including two-character operators (never split as one char).
  - Numeric literals (ints, decimals, signs, exponents) become floats.
  - Quoted string literals have their quotes stripped; bare words stay strings.
  - Operators inside quoted literals are not treated as operators.
  - Missing operator, several operators, multi-word feature key, empty
    literal and unterminated quotes raise ConditionParseError.
  - Operators must be whitespace-surrounded ("price>100" is rejected).
evaluate_condition():
  - Numeric comparisons, including numeric strings and bools as 1/0.
  - Missing feature and None value → False.
  - Non-numeric feature against numeric literal: only != matches.
  - Boolean features compare against "true"/"false" literals.
  - String features compare as text.
"""

from __future__ import annotations

import pytest

from persona_engine.exceptions import ConditionParseError
from persona_engine.rules.condition import Condition, evaluate_condition, parse_condition


class TestParseCondition:
    @pytest.mark.parametrize("text,op", [
        ("price > 100", ">"),
        ("price < 100", "<"),
        ("price >= 100", ">="),
        ("price <= 100", "<="),
        ("price == 100", "=="),
        ("price != 100", "!="),
    ])
    def test_operators(self, text, op):
        cond = parse_condition(text)
        assert cond == Condition(feature="price", op=op, literal=100.0)

    @pytest.mark.parametrize("raw,expected", [
        ("10", 10.0), ("-2.5", -2.5), ("+3", 3.0), (".5", 0.5), ("1e3", 1000.0),
    ])
    def test_numeric_literals(self, raw, expected):
        assert parse_condition(f"x == {raw}").literal == pytest.approx(expected)

    def test_double_quoted_literal(self):
        assert parse_condition('channel == "phone"').literal == "phone"

    def test_single_quoted_literal(self):
        assert parse_condition("channel == 'phone'").literal == "phone"

    def test_quoted_number_stays_string(self):
        assert parse_condition('code == "42"').literal == "42"

    def test_bare_word_literal(self):
        assert parse_condition("in_stock == false").literal == "false"

    def test_operator_inside_quotes_ignored(self):
        cond = parse_condition('note == "a > b"')
        assert cond.feature == "note"
        assert cond.literal == "a > b"

    def test_surrounding_whitespace(self):
        assert parse_condition("   price   >   5  ").feature == "price"

    @pytest.mark.parametrize("text", [
        "price 100",
        "price>100",
        "price > 100 > 5",
        "unit price > 100",
        "price > ",
        " > 100",
        'note == "unterminated',
    ])
    def test_invalid(self, text):
        with pytest.raises(ConditionParseError):
            parse_condition(text)

    def test_error_carries_condition(self):
        with pytest.raises(ConditionParseError) as exc_info:
            parse_condition("nonsense")
        assert exc_info.value.condition == "nonsense"
        assert isinstance(exc_info.value, ValueError)


class TestEvaluateCondition:
    def _eval(self, text: str, features: dict) -> bool:
        return evaluate_condition(parse_condition(text), features)

    def test_numeric_true(self):
        assert self._eval("price > 100", {"price": 150}) is True

    def test_numeric_false(self):
        assert self._eval("price > 100", {"price": 100}) is False

    def test_numeric_boundary(self):
        assert self._eval("price >= 100", {"price": 100}) is True

    def test_numeric_string_feature(self):
        assert self._eval("price > 100", {"price": "150"}) is True

    def test_missing_feature(self):
        assert self._eval("price > 100", {}) is False

    def test_none_feature(self):
        assert self._eval("price != 100", {"price": None}) is False

    def test_non_numeric_feature_vs_number(self):
        assert self._eval("price > 100", {"price": "cheap"}) is False
        assert self._eval("price == 100", {"price": "cheap"}) is False
        assert self._eval("price != 100", {"price": "cheap"}) is True

    def test_bool_vs_bare_literal(self):
        assert self._eval("in_stock == false", {"in_stock": False}) is True
        assert self._eval("in_stock == false", {"in_stock": True}) is False
        assert self._eval("in_stock == TRUE", {"in_stock": True}) is True

    def test_bool_vs_number(self):
        assert self._eval("flag == 1", {"flag": True}) is True

    def test_string_equality(self):
        assert self._eval('channel == "phone"', {"channel": "phone"}) is True
        assert self._eval('channel != "phone"', {"channel": "email"}) is True

    def test_string_ordering(self):
        assert self._eval('tier < "gold"', {"tier": "bronze"}) is True

    def test_number_vs_string_literal(self):
        assert self._eval('channel == "phone"', {"channel": 3}) is False
        assert self._eval('channel != "phone"', {"channel": 3}) is True

    def test_condition_method(self):
        assert parse_condition("temp_c > 90").evaluate({"temp_c": 95.5}) is True
