"""
Feature extraction: one flat feature vector per candidate.

    features = {**raw_data, **candidate.properties,
                "action_id": ..., "action_name": ..., "risk_tolerance": ...}

Candidate properties win on key collision; the three identity fields always
win.  No coercion or defaulting happens here — missing keys stay missing so
rules and normalizers can tell "absent" from "zero".
"""

from __future__ import annotations

from typing import Any, Mapping

from persona_engine.models.request import ActionCandidate

ACTION_ID = "action_id"
ACTION_NAME = "action_name"
RISK_TOLERANCE = "risk_tolerance"


def build_feature_vector(
    raw_data: Mapping[str, Any],
    candidate: ActionCandidate,
    risk_appetite: str,
) -> dict[str, Any]:
    """Shallow-merge request data and candidate properties into a feature vector.

    Args:
        raw_data:      Validated request inputs shared by all candidates.
        candidate:     The candidate being scored.
        risk_appetite: Resolved risk appetite from the decision context.

    Returns:
        A new dict; neither input is mutated.
    """
    features: dict[str, Any] = dict(raw_data)
    features.update(candidate.properties)
    features[ACTION_ID] = candidate.id
    features[ACTION_NAME] = candidate.label
    features[RISK_TOLERANCE] = risk_appetite
    return features
