"""
Risk and decision taxonomy for the persona decision engine.

Three small vocabularies describe every decision:
  - ``RiskLevel``      — how dangerous is it to auto-apply a candidate?
  - ``RiskTolerance``  — how much risk does the persona accept?
  - ``DecisionType``   — did the engine recommend or escalate?

``RiskLevel`` is totally ordered: LOW < MEDIUM < HIGH < CRITICAL.  Any value
outside the vocabulary has no rank and is never considered acceptable.

Usage example::

    from persona_engine.taxonomy.risk_taxonomy import RiskLevel, is_risk_acceptable

    is_risk_acceptable(RiskLevel.MEDIUM, "HIGH")   # True
    is_risk_acceptable("EXTREME", "HIGH")          # False

This module has NO imports from any other ``persona_engine`` package.
"""

from __future__ import annotations

from enum import StrEnum


class RiskLevel(StrEnum):
    """Severity of auto-applying a candidate action."""

    LOW = "LOW"
    """Routine, reversible action (e.g. scheduled maintenance)."""

    MEDIUM = "MEDIUM"
    """Default classification when no risk rule applies."""

    HIGH = "HIGH"
    """Action with noticeable downside; acceptable only for tolerant personas."""

    CRITICAL = "CRITICAL"
    """Action that must never be auto-applied without a human."""

    @property
    def rank(self) -> int:
        """Position in the fixed ordering (LOW = 0 … CRITICAL = 3)."""
        return _RISK_ORDER.index(self)

    @classmethod
    def parse(cls, value: object) -> RiskLevel | None:
        """Parse a risk value case-insensitively; ``None`` if unrecognized."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


_RISK_ORDER: tuple[RiskLevel, ...] = (
    RiskLevel.LOW,
    RiskLevel.MEDIUM,
    RiskLevel.HIGH,
    RiskLevel.CRITICAL,
)

# Rank used when sorting a value that is not a RiskLevel (sorts after CRITICAL).
UNKNOWN_RISK_RANK = len(_RISK_ORDER)


class RiskTolerance(StrEnum):
    """Risk appetite of a persona or a single request."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class DecisionType(StrEnum):
    """Outcome of the threshold gate."""

    RECOMMEND = "RECOMMEND"
    """The top candidate may be auto-applied."""

    ESCALATE = "ESCALATE"
    """A human must review; the top candidate (if any) is attached."""


def risk_rank(value: object) -> int:
    """Return the sort rank of a risk value; unknown values sort last."""
    level = RiskLevel.parse(value)
    return level.rank if level is not None else UNKNOWN_RISK_RANK


def is_risk_acceptable(current: object, maximum: object) -> bool:
    """Return True if ``current`` is at or below ``maximum`` in the fixed ordering.

    Either side being unrecognized makes the risk unacceptable.
    """
    current_level = RiskLevel.parse(current)
    max_level = RiskLevel.parse(maximum)
    if current_level is None or max_level is None:
        return False
    return current_level.rank <= max_level.rank
