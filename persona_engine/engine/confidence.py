"""
Confidence composition and the human-facing explanation.

    confidence = clamp(data_quality × model_confidence × context_stability, 0, 1)

rounded to two decimals.

- ``data_quality``      — from the validation stage (1.0 minus 0.1 per flag).
- ``model_confidence``  — 1.0 unless the predictor ran; then its self-report
                          (engine fallback on failure).
- ``context_stability`` — per-horizon table from ``[confidence.horizon_stability]``;
                          the configured default when no or an unknown horizon
                          is given.

Labels: ``High`` above ``high_threshold`` (0.8), ``Moderate`` at or above
``moderate_threshold`` (0.5), else ``Low``.
"""

from __future__ import annotations

from typing import Mapping, Optional

from persona_engine.config import ConfidenceConfig
from persona_engine.models.decision import (
    ConfidenceLabel,
    Decision,
    Explanation,
    FactorWeight,
)
from persona_engine.scoring.aggregator import rank_weights


def context_stability(time_horizon: Optional[str], config: ConfidenceConfig) -> float:
    if not time_horizon:
        return config.default_context_stability
    return config.horizon_stability.get(
        time_horizon.strip().lower(), config.default_context_stability
    )


def compose_confidence(
    data_quality: float,
    model_confidence: float,
    stability: float,
) -> float:
    raw = data_quality * model_confidence * stability
    return round(max(0.0, min(1.0, raw)), 2)


def confidence_label(confidence: float, config: ConfidenceConfig) -> ConfidenceLabel:
    if confidence > config.high_threshold:
        return "High"
    if confidence >= config.moderate_threshold:
        return "Moderate"
    return "Low"


def build_explanation(
    decision: Decision,
    weights: Mapping[str, float],
    confidence: float,
    config: ConfidenceConfig,
) -> Explanation:
    """Summary sentence, objective weights (heaviest first) and confidence label."""
    target = decision.action.label if decision.action is not None else "action"
    return Explanation(
        summary=f"Decision to {decision.type} {target} based on weighted scoring.",
        top_factors=[FactorWeight(factor=k, weight=w) for k, w in rank_weights(weights)],
        confidence_level=confidence_label(confidence, config),
    )
