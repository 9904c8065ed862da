"""
Decision context: the resolved, immutable configuration of one request.

Resolution order for every field is engine defaults → persona record →
request, with the request winning:

    risk_appetite  request.risk_appetite → persona risk_tolerance → engine default
    weights        persona priorities, then overwritten per key by request objectives
    min_score      request constraint → persona threshold → engine default
    max_risk       request constraint → persona threshold → engine default
    rules          persona rules only (requests cannot inject rules)
    model_id       persona model_id → engine default
    top_k          request option → engine default

"Absent" means ``None``: an explicit ``min_score = 0`` or objective weight of
0 is honored.

Persona lookup runs only when the security context carries a tenant ID and
the request names a persona.  Store failures, timeouts and misses are logged
and the context falls back to defaults; they never fail the request.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from persona_engine.config import EngineConfig
from persona_engine.models.persona import DeclarativeRule, PersonaProfile
from persona_engine.models.request import DecisionRequest, SecurityContext
from persona_engine.store.base import PersonaStore
from persona_engine.taxonomy.risk_taxonomy import RiskTolerance

logger = logging.getLogger(__name__)


def _empty_map() -> Mapping[str, float]:
    return MappingProxyType({})


@dataclass(frozen=True)
class DecisionContext:
    """Resolved per-request configuration.  Never mutated after construction.

    Attributes:
        request_id:         Correlation ID of the request.
        persona:            Persona record, or None if none was resolved.
        risk_appetite:      Effective risk appetite (``LOW`` / ``MEDIUM`` / ``HIGH``).
        weights:            Read-only objective → weight map.
        min_score:          Gate threshold on the best score.
        max_risk:           Gate threshold on the best candidate's risk; kept
                            verbatim so an unrecognized value still rejects.
        rules:              Persona rules, in order.
        model_id:           Model passed to the predictor.
        top_k:              Number of ranked candidates returned.
        time_horizon:       Request time horizon, if any.
        additional_metrics: Persona constant metrics (lowest precedence).
        ml_enabled:         Request asked for the ML predictor.
        optimization_enabled: Request asked for the optimizer.
        timeout_s:          Per-call budget for store / scorer calls.
    """

    request_id: str
    persona: Optional[PersonaProfile] = None
    risk_appetite: RiskTolerance = RiskTolerance.MEDIUM
    weights: Mapping[str, float] = field(default_factory=_empty_map)
    min_score: float = 50.0
    max_risk: str = "HIGH"
    rules: tuple[DeclarativeRule, ...] = ()
    model_id: str = "default_model"
    top_k: int = 3
    time_horizon: Optional[str] = None
    additional_metrics: Mapping[str, float] = field(default_factory=_empty_map)
    ml_enabled: bool = False
    optimization_enabled: bool = False
    timeout_s: float = 2.0


def resolve_timeout(request: DecisionRequest, config: EngineConfig) -> float:
    """Per-call budget in seconds: ``options.timeout_ms`` else the engine default."""
    if request.options.timeout_ms is not None:
        return request.options.timeout_ms / 1000.0
    return config.backend_timeout_s


async def fetch_persona(
    store: Optional[PersonaStore],
    request: DecisionRequest,
    security: SecurityContext,
    timeout_s: float,
) -> tuple[Optional[PersonaProfile], bool]:
    """Look up the request's persona within the caller's tenant.

    Returns:
        ``(persona, degraded)``.  ``degraded`` is True when the store failed
        or timed out; a plain miss is not a degradation.
    """
    ref = request.persona_ref
    if store is None or not security.tenant_id or not ref:
        return None, False

    lookup = store.lookup
    try:
        if inspect.iscoroutinefunction(lookup):
            coro = lookup(security.tenant_id, ref)
        else:
            coro = asyncio.to_thread(lookup, security.tenant_id, ref)
        persona = await asyncio.wait_for(coro, timeout=timeout_s)
    except asyncio.TimeoutError:
        logger.warning(
            "Persona lookup timed out after %.2fs (tenant=%s, persona=%s); using defaults",
            timeout_s, security.tenant_id, ref,
            extra={"request_id": request.request_id},
        )
        return None, True
    except Exception as exc:
        logger.warning(
            "Persona lookup failed (tenant=%s, persona=%s): %s; using defaults",
            security.tenant_id, ref, exc,
            extra={"request_id": request.request_id},
        )
        return None, True

    if persona is None:
        logger.warning(
            "Persona %r not found for tenant %r; using defaults",
            ref, security.tenant_id,
            extra={"request_id": request.request_id},
        )
    return persona, False


def build_context(
    request: DecisionRequest,
    persona: Optional[PersonaProfile],
    config: EngineConfig,
) -> DecisionContext:
    """Merge engine defaults, the persona record and the request (pure)."""
    attrs = persona.attributes if persona is not None else None

    weights: dict[str, float] = dict(attrs.priorities) if attrs else {}
    for objective in request.objectives:
        weights[objective.name] = objective.weight

    persona_min = attrs.thresholds.min_score if attrs else None
    persona_max = attrs.thresholds.max_risk if attrs else None

    if request.constraints.min_score is not None:
        min_score = request.constraints.min_score
    elif persona_min is not None:
        min_score = persona_min
    else:
        min_score = config.default_min_score

    max_risk = request.constraints.max_risk or persona_max or config.default_max_risk

    risk_appetite = (
        request.risk_appetite
        or (attrs.risk_tolerance if attrs else None)
        or config.default_risk_appetite
    )

    top_k = request.options.top_k
    if top_k is None:
        top_k = config.default_top_k

    return DecisionContext(
        request_id=request.request_id,
        persona=persona,
        risk_appetite=risk_appetite,
        weights=MappingProxyType(weights),
        min_score=float(min_score),
        max_risk=max_risk,
        rules=tuple(attrs.rules) if attrs else (),
        model_id=(attrs.model_id if attrs else None) or config.default_model_id,
        top_k=top_k,
        time_horizon=request.time_horizon,
        additional_metrics=MappingProxyType(dict(attrs.additional_metrics) if attrs else {}),
        ml_enabled=request.options.ml_enabled,
        optimization_enabled=request.options.optimization_enabled,
        timeout_s=resolve_timeout(request, config),
    )
