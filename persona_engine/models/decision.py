"""
Outbound models: scored candidates, decisions, validation and feedback results.

``DecisionResponse`` is the full answer to one ``decide()`` call.  It is
serialisable with ``model_dump(mode="json")`` and carries everything an
auditor needs: the gate decision, the top-K ranked candidates with their
evidence, the explanation, and telemetry about input quality and any
degraded dependencies.

All models are frozen.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from persona_engine.models.request import ActionCandidate
from persona_engine.taxonomy.risk_taxonomy import DecisionType, RiskLevel

ConfidenceLabel = Literal["High", "Moderate", "Low"]


class Evidence(BaseModel):
    """Why a candidate received its score.

    Attributes:
        rules_triggered: Reasons (or raw conditions) of every rule that fired.
        rules_skipped: Conditions of persona rules that could not be parsed.
        metrics_used: Names of every metric available to the aggregator.
        defaulted_objectives: Objectives with no usable metric, scored at neutral 0.5.
    """

    model_config = ConfigDict(frozen=True)

    rules_triggered: list[str] = []
    rules_skipped: list[str] = []
    metrics_used: list[str] = []
    defaulted_objectives: list[str] = []


class ScoredCandidate(BaseModel):
    """A candidate after scoring and risk classification."""

    model_config = ConfigDict(frozen=True)

    action: ActionCandidate
    score: float
    risk: RiskLevel
    latency_ms: float
    evidence: Evidence = Evidence()

    @field_validator("score")
    @classmethod
    def validate_score(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"score must be in [0, 100], got {v}.")
        return v


class Decision(BaseModel):
    """Outcome of the threshold gate.

    ``action`` is the top-ranked candidate for both RECOMMEND and ESCALATE;
    it is ``None`` only when the action space was empty.
    """

    model_config = ConfigDict(frozen=True)

    type: DecisionType
    action: Optional[ActionCandidate] = None
    reason: Optional[str] = None


class FactorWeight(BaseModel):
    model_config = ConfigDict(frozen=True)

    factor: str
    weight: float


class Explanation(BaseModel):
    """Human-facing rationale for the decision."""

    model_config = ConfigDict(frozen=True)

    summary: str
    top_factors: list[FactorWeight] = []
    confidence_level: ConfidenceLabel


class Telemetry(BaseModel):
    """Operational metadata for one decision.

    Attributes:
        data_quality: Input quality score in [0, 1].
        processing_time_ms: Wall-clock time spent inside ``decide()``.
        degraded_sources: Dependencies that failed or timed out and were
            replaced by defaults (e.g. ``"persona_store"``, ``"predictor"``).
    """

    model_config = ConfigDict(frozen=True)

    data_quality: float
    processing_time_ms: int
    degraded_sources: list[str] = []


class DecisionResponse(BaseModel):
    """Full answer to a ``decide()`` call."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    decision: Decision
    confidence: float
    top_candidates: list[ScoredCandidate] = []
    explanation: Explanation
    telemetry: Telemetry

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {v}.")
        return v


class QualityFlag(BaseModel):
    """One input-quality issue detected during validation."""

    model_config = ConfigDict(frozen=True)

    field: str
    issue: Literal["missing", "non_finite"]


class ValidationResult(BaseModel):
    """Result of the standalone ingest + normalize stage."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    quality_flags: list[QualityFlag] = []
    normalized_data: dict[str, Any] = {}


class FeedbackAck(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["acknowledged"] = "acknowledged"
