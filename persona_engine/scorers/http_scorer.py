"""
HttpScorer: remote ML predictor / optimizer over HTTP.

Endpoints (relative to ``base_url``)::

    POST /score
        request:  {"request_id": "...", "model_id": "...",
                   "time_horizon": "...", "features": {...}}
        response: {"metrics": {"speed": 0.8, ...}}

    GET  /models/{model_id}/confidence
        response: {"confidence": 0.87}

A fresh ``httpx.AsyncClient`` is opened per call, so the scorer holds no
connection state between requests and is safe to share across engines.
The per-call deadline is enforced by the engine; ``timeout_s`` is only the
transport-level ceiling.

Any transport error, non-2xx status or malformed payload raises
``ScorerError``.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any, Mapping, Optional

import httpx

from persona_engine.exceptions import ScorerError

if TYPE_CHECKING:
    from persona_engine.engine.context import DecisionContext

logger = logging.getLogger(__name__)


class HttpScorer:
    """``Predictor`` implementation backed by a remote scoring service.

    Args:
        base_url:  Service root, e.g. ``"http://ml-scorer:8080"``.
        timeout_s: Transport timeout for each HTTP call.
        transport: Optional custom transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_s,
            transport=self._transport,
        )

    async def score(
        self, features: Mapping[str, Any], context: "DecisionContext"
    ) -> dict[str, float]:
        payload = {
            "request_id": context.request_id,
            "model_id": context.model_id,
            "time_horizon": context.time_horizon,
            "features": dict(features),
        }
        body = await self._request("POST", "/score", json=payload)
        metrics = body.get("metrics")
        if not isinstance(metrics, dict):
            raise ScorerError(f"{self.base_url}/score: response has no 'metrics' object")

        result: dict[str, float] = {}
        for name, value in metrics.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ScorerError(
                    f"{self.base_url}/score: metric {name!r} is not numeric ({value!r})"
                )
            if not math.isfinite(value):
                raise ScorerError(f"{self.base_url}/score: metric {name!r} is not finite")
            result[str(name)] = float(value)
        return result

    async def model_confidence(self, model_id: str) -> float:
        body = await self._request("GET", f"/models/{model_id}/confidence")
        value = body.get("confidence")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ScorerError(
                f"{self.base_url}: confidence for model {model_id!r} is not numeric"
            )
        if not math.isfinite(value):
            raise ScorerError(
                f"{self.base_url}: confidence for model {model_id!r} is not finite"
            )
        return max(0.0, min(1.0, float(value)))

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.request(method, path, **kwargs)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPError as exc:
            raise ScorerError(f"{method} {self.base_url}{path} failed: {exc}") from exc
        except ValueError as exc:
            raise ScorerError(f"{method} {self.base_url}{path}: invalid JSON") from exc

        if not isinstance(body, dict):
            raise ScorerError(f"{method} {self.base_url}{path}: expected a JSON object")
        logger.debug("%s %s%s -> %d", method, self.base_url, path, resp.status_code)
        return body
