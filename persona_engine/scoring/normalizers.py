"""
Metric normalizers: turn raw features into bounded utility metrics.

Each ``NormalizerSpec`` (see ``persona_engine.config``) names a raw feature,
a curve and the metric name(s) the result is published under.  Defaults:

    price            → price, cost_efficiency = 1 / (1 + price / 50)
    duration_minutes → speed                  = 1 / (1 + minutes / 30)
    convenience      → convenience            (pass-through)
    quality          → quality                (pass-through)

``inverse_decay`` curves are "lower is better": 0 maps to 1.0 and the value
halves at ``scale``.  Negative inputs are floored at 0 so the curve stays in
(0, 1].  Features that are absent, non-numeric or non-finite (NaN, ±inf)
produce no metric; the aggregator then falls back to its neutral default.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Sequence

from persona_engine.config import DEFAULT_NORMALIZERS, NormalizerSpec

logger = logging.getLogger(__name__)


def inverse_decay(value: float, scale: float) -> float:
    """``1 / (1 + max(value, 0) / scale)``."""
    return 1.0 / (1.0 + max(value, 0.0) / scale)


def _numeric(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    return None


def apply_normalizer(spec: NormalizerSpec, value: float) -> float:
    if spec.curve == "inverse_decay":
        return inverse_decay(value, spec.scale)
    return value


def compute_metrics(
    features: Mapping[str, Any],
    normalizers: Sequence[NormalizerSpec] = DEFAULT_NORMALIZERS,
) -> dict[str, float]:
    """Compute all normalizer metrics available for ``features``.

    Args:
        features:    Feature vector for one candidate.
        normalizers: Normalizer table (config ``[[normalizers]]``).

    Returns:
        Metric name → utility.  Later table rows overwrite earlier ones that
        publish the same metric name.
    """
    metrics: dict[str, float] = {}
    for spec in normalizers:
        if spec.feature not in features:
            continue
        value = _numeric(features[spec.feature])
        if value is None:
            logger.debug(
                "Normalizer '%s': unusable value %r ignored",
                spec.feature, features[spec.feature],
            )
            continue
        utility = apply_normalizer(spec, value)
        for name in spec.metrics:
            metrics[name] = utility
    return metrics
