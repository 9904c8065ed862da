"""
Candidate ranking and the threshold gate.

Ordering
--------
    1. score      descending
    2. risk       ascending  (LOW < MEDIUM < HIGH < CRITICAL)
    3. latency_ms ascending

The sort is stable, so fully tied candidates keep action-space order.

Gate
----
RECOMMEND the top candidate iff ``score >= min_score`` and its risk is at or
below ``max_risk``; otherwise ESCALATE with that candidate attached
(``"Below thresholds"``), or with no action when nothing was scored
(``"No valid candidates"``).
"""

from __future__ import annotations

import math
from typing import Sequence

from persona_engine.models.decision import Decision, ScoredCandidate
from persona_engine.models.request import ActionCandidate
from persona_engine.taxonomy.risk_taxonomy import DecisionType, is_risk_acceptable, risk_rank

REASON_BELOW_THRESHOLDS = "Below thresholds"
REASON_NO_CANDIDATES = "No valid candidates"

# Candidate properties read as a latency estimate, in priority order.
LATENCY_KEYS: tuple[str, ...] = ("estimated_latency_ms", "latency_ms")


def estimate_latency(candidate: ActionCandidate, default_ms: float) -> float:
    """Latency estimate for ``candidate`` in milliseconds.

    Uses the first finite, non-negative numeric latency property, else
    ``default_ms``.
    """
    for key in LATENCY_KEYS:
        value = candidate.properties.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if math.isfinite(value) and value >= 0:
            return float(value)
    return default_ms


def _sort_key(candidate: ScoredCandidate) -> tuple[float, int, float]:
    return (-candidate.score, risk_rank(candidate.risk), candidate.latency_ms)


def rank_candidates(scored: Sequence[ScoredCandidate]) -> list[ScoredCandidate]:
    return sorted(scored, key=_sort_key)


def apply_gate(
    ranked: Sequence[ScoredCandidate],
    min_score: float,
    max_risk: str,
) -> Decision:
    """Decide between RECOMMEND and ESCALATE for the top-ranked candidate."""
    if not ranked:
        return Decision(type=DecisionType.ESCALATE, action=None, reason=REASON_NO_CANDIDATES)

    best = ranked[0]
    if best.score >= min_score and is_risk_acceptable(best.risk, max_risk):
        return Decision(type=DecisionType.RECOMMEND, action=best.action)

    return Decision(
        type=DecisionType.ESCALATE,
        action=best.action,
        reason=REASON_BELOW_THRESHOLDS,
    )
