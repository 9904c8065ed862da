"""
Safe parser and evaluator for declarative rule conditions.

Grammar
-------
A condition is ``<feature> <op> <literal>`` where ``<op>`` is one of
``>  <  >=  <=  ==  !=`` and must be surrounded by whitespace::

    price > 100
    channel == "phone"
    in_stock == false

Parsing steps (no ``eval`` anywhere):
  1. Tokenize: scan the string once, tracking quote state, and collect every
     whitespace-surrounded operator token outside quotes.
  2. Split: exactly one operator token is required; zero or several is a
     parse error.
  3. Resolve: the left side is the feature key (a single bare word); the
     right side is a numeric literal if it reads as a decimal number,
     otherwise a string literal with one pair of surrounding quotes removed.

Evaluation semantics
--------------------
- Feature absent from the vector, or present with value ``None`` → False.
- Numeric literal: the feature must be numeric (bools count as 1/0; numeric
  strings are accepted).  A non-numeric feature only satisfies ``!=``.
- String literal: string features compare as text (ordering is
  lexicographic); bool features compare as ``"true"`` / ``"false"``;
  numeric features only satisfy ``!=``.
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Mapping

from persona_engine.exceptions import ConditionParseError

# Longest tokens first so ">=" is never read as ">".
OPERATORS: tuple[str, ...] = (">=", "<=", "==", "!=", ">", "<")

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    ">":  operator.gt,
    "<":  operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_QUOTES = "\"'"


@dataclass(frozen=True)
class Condition:
    """A parsed ``<feature> <op> <literal>`` condition."""

    feature: str
    op: str
    literal: float | str

    def evaluate(self, features: Mapping[str, Any]) -> bool:
        return evaluate_condition(self, features)


def _find_operator_tokens(text: str) -> list[tuple[int, str]]:
    """Return ``(start, op)`` for every whitespace-surrounded operator outside quotes."""
    found: list[tuple[int, str]] = []
    quote: str | None = None
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch.isspace():
            for op in OPERATORS:
                end = i + 1 + len(op)
                if text[i + 1:end] == op and end < n and text[end].isspace():
                    found.append((i + 1, op))
                    i = end
                    break
            else:
                i += 1
            continue
        i += 1
    if quote is not None:
        raise ConditionParseError(text, "unterminated quoted literal")
    return found


def _parse_literal(raw: str) -> float | str:
    if _NUMBER_RE.match(raw):
        return float(raw)
    if len(raw) >= 2 and raw[0] in _QUOTES and raw[-1] == raw[0]:
        return raw[1:-1]
    return raw


@lru_cache(maxsize=1024)
def parse_condition(text: str) -> Condition:
    """Parse a condition string.

    Raises:
        ConditionParseError: If the string does not contain exactly one
            operator token, the feature key is not a single bare word, or
            either side is empty.
    """
    if not isinstance(text, str):
        raise ConditionParseError(repr(text), "condition must be a string")

    tokens = _find_operator_tokens(text)
    if len(tokens) != 1:
        raise ConditionParseError(
            text, f"expected exactly one comparison operator, found {len(tokens)}"
        )

    start, op = tokens[0]
    feature = text[:start].strip()
    raw_literal = text[start + len(op):].strip()

    if not feature or any(c.isspace() for c in feature) or feature[0] in _QUOTES:
        raise ConditionParseError(text, f"invalid feature key {feature!r}")
    if not raw_literal:
        raise ConditionParseError(text, "missing literal")

    return Condition(feature=feature, op=op, literal=_parse_literal(raw_literal))


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and _NUMBER_RE.match(value.strip()):
        return float(value)
    return None


def evaluate_condition(condition: Condition, features: Mapping[str, Any]) -> bool:
    """Evaluate a parsed condition against a feature vector (pure function)."""
    value = features.get(condition.feature)
    if value is None:
        return False

    compare = _COMPARATORS[condition.op]

    if isinstance(condition.literal, float):
        number = _as_number(value)
        if number is None:
            return condition.op == "!="
        return compare(number, condition.literal)

    if isinstance(value, bool):
        return compare("true" if value else "false", condition.literal.lower())
    if isinstance(value, str):
        return compare(value, condition.literal)
    return condition.op == "!="
