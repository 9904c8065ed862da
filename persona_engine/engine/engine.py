"""
DecisionEngine: persona-driven scoring, ranking and gating of candidate actions.

Pipeline for one ``decide()`` call::

    persona lookup ─► context ─► validate inputs
        └─► per candidate (concurrently, asyncio.gather):
              features → rules → normalizers → [predictor] → [optimizer]
              → weighted score → risk → latency
        └─► rank → gate → confidence → explanation → response
        └─► audit record (background task, never awaited here)

Failure policy
--------------
- Persona store failure / timeout, scorer failure / timeout, unparsable rule:
  logged, replaced by defaults, reported in ``telemetry.degraded_sources``.
- Malformed request payload: ``pydantic.ValidationError`` before the
  pipeline starts.
- Anything else raised inside the pipeline: logged and re-raised as
  ``DecisionEngineError``.

The engine holds no per-request state; one instance serves concurrent calls.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping, Optional

from persona_engine.audit.sink import AuditRecord, AuditSink
from persona_engine.config import AppConfig
from persona_engine.engine.confidence import (
    build_explanation,
    compose_confidence,
    context_stability,
)
from persona_engine.engine.context import (
    DecisionContext,
    build_context,
    fetch_persona,
    resolve_timeout,
)
from persona_engine.engine.ranker import apply_gate, estimate_latency, rank_candidates
from persona_engine.exceptions import DecisionEngineError
from persona_engine.features.extractor import build_feature_vector
from persona_engine.features.quality import score_data_quality, validate_and_normalize
from persona_engine.models.decision import (
    DecisionResponse,
    Evidence,
    FeedbackAck,
    ScoredCandidate,
    Telemetry,
    ValidationResult,
)
from persona_engine.models.request import (
    ActionCandidate,
    DecisionRequest,
    SecurityContext,
)
from persona_engine.rules.evaluator import apply_rules
from persona_engine.scorers.base import Predictor, Scorer
from persona_engine.scoring.aggregator import (
    is_usable_metric,
    merge_metric_sources,
    weighted_score,
)
from persona_engine.scoring.normalizers import compute_metrics
from persona_engine.scoring.risk import RiskModel
from persona_engine.store.base import PersonaStore
from persona_engine.utils.time_utils import elapsed_ms

logger = logging.getLogger(__name__)

# Names reported in telemetry.degraded_sources.
SOURCE_PERSONA_STORE = "persona_store"
SOURCE_PREDICTOR = "predictor"
SOURCE_OPTIMIZER = "optimizer"
SOURCE_MODEL_CONFIDENCE = "model_confidence"


class DecisionEngine:
    """Scores, ranks and gates candidate actions for a persona.

    Args:
        config:     Application config; built-in defaults if omitted.
        store:      Persona store.  Without one every request uses defaults.
        predictor:  Optional ML predictor, used when ``options.ml_enabled``.
        optimizer:  Optional optimizer, used when ``options.optimization_enabled``.
        audit_sink: Optional sink receiving one ``AuditRecord`` per decision.
        risk_model: Risk classifier; built from ``config.risk`` if omitted.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[PersonaStore] = None,
        predictor: Optional[Predictor] = None,
        optimizer: Optional[Scorer] = None,
        audit_sink: Optional[AuditSink] = None,
        risk_model: Optional[RiskModel] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.store = store
        self.predictor = predictor
        self.optimizer = optimizer
        self.audit_sink = audit_sink
        self.risk_model = risk_model or RiskModel.from_config(self.config.risk)
        self._audit_tasks: set[asyncio.Task] = set()

    # ── Public API ────────────────────────────────────────────────────────────

    async def decide(
        self,
        request: DecisionRequest | Mapping[str, Any],
        security: Optional[SecurityContext] = None,
    ) -> DecisionResponse:
        """Run the full decision pipeline for one request.

        Args:
            request:  A ``DecisionRequest`` or its raw JSON-like mapping.
            security: Caller identity; persona lookup needs ``tenant_id``.

        Returns:
            ``DecisionResponse``.  ESCALATE is a normal outcome, not an error.

        Raises:
            pydantic.ValidationError: If ``request`` is a malformed mapping.
            DecisionEngineError: If the pipeline fails unexpectedly.
        """
        if not isinstance(request, DecisionRequest):
            request = DecisionRequest.model_validate(request)
        security = security or SecurityContext()
        started = time.perf_counter()

        try:
            response = await self._run(request, security, started)
        except Exception as exc:
            logger.exception(
                "Decision %s failed", request.request_id,
                extra={"request_id": request.request_id},
            )
            raise DecisionEngineError(
                f"Decision {request.request_id} failed: {exc}",
                request_id=request.request_id,
            ) from exc

        logger.debug(
            "Decision %s: %s in %d ms (%d candidates)",
            response.request_id,
            response.decision.type,
            response.telemetry.processing_time_ms,
            len(request.action_space),
            extra={"request_id": response.request_id},
        )
        self._schedule_audit(request, security, response)
        return response

    def validate(self, raw_inputs: Mapping[str, Any] | None) -> ValidationResult:
        """Run only the input validation stage (pre-flight check)."""
        return validate_and_normalize(raw_inputs)

    async def feedback(self, payload: Mapping[str, Any]) -> FeedbackAck:
        """Acknowledge outcome feedback for a past decision.

        The payload is logged for offline analysis; nothing is learned online.
        """
        logger.info(
            "Feedback received for request %s: %s",
            payload.get("request_id", "-"), dict(payload),
            extra={"request_id": payload.get("request_id")},
        )
        return FeedbackAck()

    async def drain_audit(self) -> None:
        """Wait for all pending audit writes (call before shutting down)."""
        while self._audit_tasks:
            await asyncio.gather(*list(self._audit_tasks), return_exceptions=True)

    # ── Pipeline ──────────────────────────────────────────────────────────────

    async def _run(
        self,
        request: DecisionRequest,
        security: SecurityContext,
        started: float,
    ) -> DecisionResponse:
        engine_cfg = self.config.engine
        degraded: list[str] = []

        timeout_s = resolve_timeout(request, engine_cfg)
        persona, store_degraded = await fetch_persona(self.store, request, security, timeout_s)
        if store_degraded:
            degraded.append(SOURCE_PERSONA_STORE)

        context = build_context(request, persona, engine_cfg)

        validation = validate_and_normalize(request.inputs)
        data_quality = score_data_quality(
            len(validation.quality_flags), engine_cfg.quality_flag_decay
        )

        use_predictor = context.ml_enabled and self.predictor is not None
        use_optimizer = context.optimization_enabled and self.optimizer is not None

        # Every candidate coroutine runs to completion before the first
        # error, if any, is re-raised.
        results = await asyncio.gather(*(
            self._score_candidate(
                candidate, validation.normalized_data, context, use_predictor, use_optimizer
            )
            for candidate in request.action_space
        ), return_exceptions=True)
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            raise errors[0]

        scored: list[ScoredCandidate] = []
        for candidate, failed_sources in results:
            scored.append(candidate)
            for source in failed_sources:
                if source not in degraded:
                    degraded.append(source)

        ranked = rank_candidates(scored)
        decision = apply_gate(ranked, context.min_score, context.max_risk)

        model_confidence = 1.0
        if use_predictor:
            model_confidence = await self._model_confidence(context, degraded)

        confidence = compose_confidence(
            data_quality,
            model_confidence,
            context_stability(context.time_horizon, self.config.confidence),
        )

        return DecisionResponse(
            request_id=request.request_id,
            decision=decision,
            confidence=confidence,
            top_candidates=ranked[: context.top_k],
            explanation=build_explanation(
                decision, context.weights, confidence, self.config.confidence
            ),
            telemetry=Telemetry(
                data_quality=round(data_quality, 2),
                processing_time_ms=elapsed_ms(started),
                degraded_sources=degraded,
            ),
        )

    async def _score_candidate(
        self,
        candidate: ActionCandidate,
        data: Mapping[str, Any],
        context: DecisionContext,
        use_predictor: bool,
        use_optimizer: bool,
    ) -> tuple[ScoredCandidate, list[str]]:
        failed: list[str] = []
        features = build_feature_vector(data, candidate, context.risk_appetite)

        rule_result = apply_rules(features, context.rules)
        normalized = compute_metrics(features, self.config.normalizers)

        ml_metrics: dict[str, float] = {}
        if use_predictor:
            ml_metrics = await self._call_scorer(
                SOURCE_PREDICTOR, self.predictor, features, context, failed
            )

        opt_metrics: dict[str, float] = {}
        if use_optimizer:
            opt_metrics = await self._call_scorer(
                SOURCE_OPTIMIZER, self.optimizer, features, context, failed
            )

        metrics = merge_metric_sources(
            context.additional_metrics,
            normalized,
            ml_metrics,
            opt_metrics,
            rule_result.metrics,
        )
        aggregate = weighted_score(metrics, context.weights, rule_result.adjustment)

        scored = ScoredCandidate(
            action=candidate,
            score=aggregate.score,
            risk=self.risk_model.classify(features),
            latency_ms=estimate_latency(candidate, self.config.engine.default_latency_ms),
            evidence=Evidence(
                rules_triggered=rule_result.triggered,
                rules_skipped=rule_result.skipped,
                metrics_used=sorted(metrics),
                defaulted_objectives=aggregate.defaulted_objectives,
            ),
        )
        return scored, failed

    async def _call_scorer(
        self,
        source: str,
        scorer: Scorer,
        features: Mapping[str, Any],
        context: DecisionContext,
        failed: list[str],
    ) -> dict[str, float]:
        """Call one scorer under the request timeout; ``{}`` on any failure.

        Metrics that are not finite numbers are dropped and the source is
        reported as degraded.
        """
        try:
            metrics = await asyncio.wait_for(
                scorer.score(features, context), timeout=context.timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning(
                "%s timed out after %.2fs for action %s",
                source, context.timeout_s, features.get("action_id"),
                extra={"request_id": context.request_id},
            )
            failed.append(source)
            return {}
        except Exception as exc:
            logger.warning(
                "%s failed for action %s: %s",
                source, features.get("action_id"), exc,
                extra={"request_id": context.request_id},
            )
            failed.append(source)
            return {}

        if not isinstance(metrics, Mapping):
            logger.warning(
                "%s returned %s instead of a metric map; ignored",
                source, type(metrics).__name__,
                extra={"request_id": context.request_id},
            )
            failed.append(source)
            return {}
        usable = {
            name: float(value) for name, value in metrics.items() if is_usable_metric(value)
        }
        if len(usable) != len(metrics):
            logger.warning(
                "%s returned unusable metrics %s for action %s; dropped",
                source, sorted(str(name) for name in metrics if name not in usable),
                features.get("action_id"),
                extra={"request_id": context.request_id},
            )
            failed.append(source)
        return usable

    async def _model_confidence(
        self, context: DecisionContext, degraded: list[str]
    ) -> float:
        fallback = self.config.engine.fallback_model_confidence
        try:
            value = await asyncio.wait_for(
                self.predictor.model_confidence(context.model_id),
                timeout=context.timeout_s,
            )
        except Exception as exc:
            logger.warning(
                "Model confidence unavailable for %s (%r); using %.2f",
                context.model_id, exc, fallback,
                extra={"request_id": context.request_id},
            )
            degraded.append(SOURCE_MODEL_CONFIDENCE)
            return fallback

        if not is_usable_metric(value):
            logger.warning(
                "Model confidence for %s is not a finite number (%r); using %.2f",
                context.model_id, value, fallback,
                extra={"request_id": context.request_id},
            )
            degraded.append(SOURCE_MODEL_CONFIDENCE)
            return fallback
        return max(0.0, min(1.0, float(value)))

    # ── Audit ─────────────────────────────────────────────────────────────────

    def _schedule_audit(
        self,
        request: DecisionRequest,
        security: SecurityContext,
        response: DecisionResponse,
    ) -> None:
        if self.audit_sink is None:
            return
        record = AuditRecord.from_decision(request, security, response)
        task = asyncio.get_running_loop().create_task(self._write_audit(record))
        self._audit_tasks.add(task)
        task.add_done_callback(self._audit_tasks.discard)

    async def _write_audit(self, record: AuditRecord) -> None:
        try:
            await self.audit_sink.write(record)
        except Exception as exc:
            logger.warning(
                "Audit write failed for %s: %s", record.request_id, exc,
                extra={"request_id": record.request_id},
            )
