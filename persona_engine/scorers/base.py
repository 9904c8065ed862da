"""
Scorer protocols.

A scorer is an opaque metric producer: it receives one candidate's feature
vector plus the resolved ``DecisionContext`` and returns ``{metric: value}``
with values normally in [0, 1].  Its metrics are merged into the aggregator
input above the heuristic normalizers (see ``scoring.aggregator``).

The engine wraps every call in ``asyncio.wait_for`` and treats any exception
as a degraded source; implementations should raise ``ScorerError`` for
backend failures rather than returning partial garbage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Protocol, runtime_checkable

if TYPE_CHECKING:
    from persona_engine.engine.context import DecisionContext


@runtime_checkable
class Scorer(Protocol):
    async def score(
        self, features: Mapping[str, Any], context: "DecisionContext"
    ) -> dict[str, float]:
        ...


@runtime_checkable
class Predictor(Scorer, Protocol):
    """A scorer that can also report its own model confidence in [0, 1]."""

    async def model_confidence(self, model_id: str) -> float:
        ...
