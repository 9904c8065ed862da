"""
Persona models — the read-only configuration a decision is personalised by.

``PersonaProfile`` is what a persona store returns.  Its ``attributes`` field
models the store's free-form attribute bag as typed optional fields, with
``additional_metrics`` as an escape hatch for domain-specific constant
metrics.  Unknown keys in the bag are ignored so newer stores stay readable.

``DeclarativeRule`` is one entry of a persona's ordered rule list.  Rules are
data: the condition string is parsed by ``persona_engine.rules.condition``,
never evaluated as code.

All models are frozen — the engine reads personas, it never edits them.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from persona_engine.taxonomy.risk_taxonomy import RiskTolerance

# Objective weights are non-negative finite numbers.
Weight = Annotated[float, Field(ge=0, allow_inf_nan=False)]


class MetricInjection(BaseModel):
    """Direct metric assignment performed when a rule fires.

    Attributes:
        name: Metric name (matched against objective names during aggregation).
        value: Utility value to inject; normally in [0, 1].
    """

    model_config = ConfigDict(frozen=True)

    name: str
    value: float


class DeclarativeRule(BaseModel):
    """A single ``"<feature> <op> <value>"`` rule.

    Accepts the legacy flat shape ``{"set_metric": "name", "value": 0.9}``
    as well as ``{"set_metric": {"name": "name", "value": 0.9}}``.

    Attributes:
        condition: Condition string, e.g. ``"price > 100"``.
        score_adjustment: Signed points added after normalization when matched.
        reason: Human-readable explanation used as evidence when matched.
        set_metric: Optional metric injected when matched.
    """

    model_config = ConfigDict(frozen=True)

    condition: str
    score_adjustment: Optional[int] = None
    reason: Optional[str] = None
    set_metric: Optional[MetricInjection] = None

    @model_validator(mode="before")
    @classmethod
    def convert_flat_set_metric(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("set_metric"), str):
            data = dict(data)
            data["set_metric"] = {
                "name": data["set_metric"],
                "value": data.pop("value", 0.0),
            }
        return data

    @property
    def label(self) -> str:
        """Evidence label: the reason if given, else the raw condition."""
        return self.reason or self.condition


class PersonaThresholds(BaseModel):
    """Persona-level decision gate thresholds (either may be absent)."""

    model_config = ConfigDict(frozen=True)

    min_score: Optional[float] = None
    max_risk: Optional[str] = None

    @field_validator("max_risk")
    @classmethod
    def upper_max_risk(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class PersonaAttributes(BaseModel):
    """Typed view over a persona's free-form attribute bag.

    Attributes:
        priorities: Objective name → weight (0–1).
        risk_tolerance: ``LOW``, ``MEDIUM`` or ``HIGH`` (case-insensitive).
        thresholds: Gate thresholds (``min_score``, ``max_risk``).
        rules: Ordered declarative rules.
        model_id: Identifier passed to the ML predictor.
        additional_metrics: Constant metrics contributed to every candidate
            at the lowest precedence.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", protected_namespaces=())

    priorities: dict[str, Weight] = {}
    risk_tolerance: Optional[RiskTolerance] = None
    thresholds: PersonaThresholds = PersonaThresholds()
    rules: list[DeclarativeRule] = []
    model_id: Optional[str] = None
    additional_metrics: dict[str, float] = {}

    @field_validator("risk_tolerance", mode="before")
    @classmethod
    def upper_risk_tolerance(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper() or None
        return v

    @field_validator("thresholds", mode="before")
    @classmethod
    def none_thresholds(cls, v: Any) -> Any:
        return {} if v is None else v


class PersonaProfile(BaseModel):
    """A persona record as returned by a persona store.

    Attributes:
        persona_id: Store identifier.
        name: Unique (per tenant) persona name, usable as a lookup key.
        display_name: Human-readable name; defaults to ``name``.
        tenant_id: Tenant scope the persona belongs to.
        attributes: Typed attribute bag.
    """

    model_config = ConfigDict(frozen=True)

    persona_id: str
    name: str
    display_name: Optional[str] = None
    tenant_id: str
    attributes: PersonaAttributes = PersonaAttributes()

    @field_validator("persona_id", "tenant_id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("attributes", mode="before")
    @classmethod
    def none_attributes(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def label(self) -> str:
        return self.display_name or self.name
