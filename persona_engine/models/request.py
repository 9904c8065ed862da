"""
Inbound request models for ``DecisionEngine.decide()``.

``DecisionRequest`` mirrors the JSON payload the calling layer receives.
Field names follow the wire format (snake_case, ``action_space`` for the
candidate list) so a request body can be passed straight to
``DecisionRequest.model_validate()``.

``SecurityContext`` carries the caller identity resolved by the transport
layer; the engine only uses ``tenant_id`` to scope persona lookups.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from persona_engine.taxonomy.risk_taxonomy import RiskTolerance
from persona_engine.utils.time_utils import epoch_ms

ScalarValue = float | int | bool | str | None


class Objective(BaseModel):
    """A named objective and its weight.

    ``weight`` defaults to 1.0 when omitted; an explicit 0 is honored.
    Negative and non-finite weights are rejected.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    weight: float = Field(default=1.0, ge=0, allow_inf_nan=False)

    @field_validator("weight", mode="before")
    @classmethod
    def default_missing_weight(cls, v: Any) -> Any:
        return 1.0 if v is None else v


class Constraints(BaseModel):
    """Request-level overrides of the persona thresholds."""

    model_config = ConfigDict(frozen=True)

    min_score: Optional[float] = None
    max_risk: Optional[str] = None

    @field_validator("max_risk")
    @classmethod
    def upper_max_risk(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class DecisionOptions(BaseModel):
    """Per-request switches.

    Attributes:
        ml_enabled: Call the ML predictor (if one is injected).
        optimization_enabled: Call the constrained optimizer (if injected).
        top_k: Number of ranked candidates returned; engine default if None.
        timeout_ms: Budget for each persona-store / scorer call; engine
            default if None.
    """

    model_config = ConfigDict(frozen=True)

    ml_enabled: bool = False
    optimization_enabled: bool = False
    top_k: Optional[int] = Field(default=None, ge=0)
    timeout_ms: Optional[int] = Field(default=None, gt=0)


class ActionCandidate(BaseModel):
    """One option in the decision space.

    Attributes:
        id: Candidate identifier (also exposed to rules as ``action_id``).
        name: Display name (exposed to rules as ``action_name``).
        properties: Flat domain-defined property map (price, quality, …).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None
    properties: dict[str, ScalarValue] = {}

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("properties", mode="before")
    @classmethod
    def none_properties(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def label(self) -> str:
        return self.name or self.id


class DecisionRequest(BaseModel):
    """A single decision call.

    Attributes:
        request_id: Caller-supplied correlation ID; ``REQ-<epoch ms>`` if omitted.
        persona_id: Persona identifier (preferred lookup key).
        persona_profile: Persona name (fallback lookup key).
        inputs: Raw contextual data shared by all candidates.
        objectives: Objective weights overriding/augmenting persona priorities.
        constraints: Threshold overrides.
        risk_appetite: Overrides the persona risk tolerance.
        time_horizon: Decision horizon (``realtime``, ``short_term`` …).
        options: Per-request switches.
        action_space: Candidates to score and rank.
    """

    model_config = ConfigDict(frozen=True)

    request_id: str = Field(default_factory=lambda: f"REQ-{epoch_ms()}")
    persona_id: Optional[str] = None
    persona_profile: Optional[str] = None
    inputs: dict[str, Any] = {}
    objectives: list[Objective] = []
    constraints: Constraints = Constraints()
    risk_appetite: Optional[RiskTolerance] = None
    time_horizon: Optional[str] = None
    options: DecisionOptions = DecisionOptions()
    action_space: list[ActionCandidate] = []

    @field_validator("inputs", "constraints", "options", "objectives", "action_space", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any, info) -> Any:
        if v is not None:
            return v
        return [] if info.field_name in ("objectives", "action_space") else {}

    @field_validator("risk_appetite", mode="before")
    @classmethod
    def upper_risk_appetite(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper() or None
        return v

    @property
    def persona_ref(self) -> Optional[str]:
        """Lookup key: the persona ID if given, else the persona name."""
        return self.persona_id or self.persona_profile


class SecurityContext(BaseModel):
    """Caller identity resolved by the transport layer."""

    model_config = ConfigDict(frozen=True)

    tenant_id: Optional[str] = None
    user_id: Optional[str] = None
