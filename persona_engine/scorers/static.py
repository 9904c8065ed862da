"""
StaticScorer: returns fixed metrics without calling anything.

Useful as an offline stand-in for a predictor or optimizer::

    scorer = StaticScorer(
        metrics={"quality": 0.8},
        per_action={"courier-express": {"speed": 0.95}},
        confidence=0.9,
    )

``per_action`` entries are merged over ``metrics`` for the matching
``action_id``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional

from persona_engine.features.extractor import ACTION_ID

if TYPE_CHECKING:
    from persona_engine.engine.context import DecisionContext


class StaticScorer:
    """Fixed-output scorer implementing the ``Predictor`` protocol.

    Attributes:
        calls: Number of ``score()`` invocations (handy in tests).
    """

    def __init__(
        self,
        metrics: Optional[Mapping[str, float]] = None,
        per_action: Optional[Mapping[str, Mapping[str, float]]] = None,
        confidence: float = 1.0,
    ) -> None:
        self.metrics = dict(metrics or {})
        self.per_action = {k: dict(v) for k, v in (per_action or {}).items()}
        self.confidence = confidence
        self.calls = 0

    async def score(
        self, features: Mapping[str, Any], context: "DecisionContext"
    ) -> dict[str, float]:
        self.calls += 1
        result = dict(self.metrics)
        result.update(self.per_action.get(str(features.get(ACTION_ID)), {}))
        return result

    async def model_confidence(self, model_id: str) -> float:
        return self.confidence
