"""
Weighted multi-objective aggregation.

Formula
-------
For every ``(objective, weight)`` in the merged weight map::

    utility = metric[objective]  if computed by any source
            = 0.5                otherwise (neutral; the weight is still consumed)

    base  = Σ(utility · weight) / Σ(weight) · 100     (50 when Σweight == 0)
    score = clamp(base + rule_adjustment, 0, 100)

``rule_adjustment`` is a hard, unweighted delta that lives outside the 0–1
utility space: a ``-20`` rule always removes 20 points (unless clamped).

Metric sources are merged with fixed precedence, later wins::

    persona additional_metrics → normalizers → ML → optimizer → rule-injected

Only finite real numbers count as metrics.  A NaN or infinite value is
dropped at merge time, so the objective falls back to the neutral utility
instead of poisoning the weighted sum.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

NEUTRAL_UTILITY = 0.5
NEUTRAL_SCORE = 50.0


@dataclass
class AggregateScore:
    """Aggregated score for one candidate.

    Attributes:
        score:                Final clamped score in [0, 100].
        defaulted_objectives: Objectives scored at the neutral utility.
    """

    score: float
    defaulted_objectives: list[str] = field(default_factory=list)


def is_usable_metric(value: Any) -> bool:
    """True for finite ints and floats (bools are not metrics)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def merge_metric_sources(*sources: Mapping[str, float] | None) -> dict[str, float]:
    """Merge metric maps left to right; later sources overwrite earlier ones.

    Unusable values (see ``is_usable_metric``) are skipped and never
    overwrite a usable value from an earlier source.
    """
    merged: dict[str, float] = {}
    for source in sources:
        if not source:
            continue
        for name, value in source.items():
            if is_usable_metric(value):
                merged[name] = float(value)
    return merged


def weighted_score(
    metrics: Mapping[str, float],
    weights: Mapping[str, float],
    rule_adjustment: int = 0,
) -> AggregateScore:
    """Combine metrics under ``weights`` and apply the hard rule adjustment.

    Args:
        metrics:         Merged metric map (see ``merge_metric_sources``).
        weights:         Objective name → non-negative weight.  Non-finite
                         or negative weights are ignored.
        rule_adjustment: Unweighted points added after normalization.

    Returns:
        ``AggregateScore`` with ``0 <= score <= 100``.
    """
    total_score = 0.0
    total_weight = 0.0
    defaulted: list[str] = []

    for objective, weight in weights.items():
        if not is_usable_metric(weight) or weight < 0:
            continue
        utility = metrics.get(objective)
        if not is_usable_metric(utility):
            utility = NEUTRAL_UTILITY
            defaulted.append(objective)
        total_score += utility * weight
        total_weight += weight

    if total_weight > 0:
        base = total_score / total_weight * 100.0
    else:
        base = NEUTRAL_SCORE

    return AggregateScore(
        score=_clamp(base + rule_adjustment, 0.0, 100.0),
        defaulted_objectives=defaulted,
    )


def rank_weights(weights: Mapping[str, float]) -> Sequence[tuple[str, float]]:
    """Objective/weight pairs, heaviest first (ties keep insertion order)."""
    return sorted(weights.items(), key=lambda kv: -kv[1])


def _clamp(value: float, lo: float, hi: float) -> float:
    if math.isnan(value):
        raise ValueError("cannot clamp NaN")
    return max(lo, min(hi, value))
