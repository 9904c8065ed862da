"""
Input validation and normalization for raw decision inputs.

``validate_and_normalize()`` is the ingest stage of ``decide()`` and is also
exposed standalone through ``DecisionEngine.validate()`` so callers can run
pre-flight checks.

Checks
------
- ``missing``    — the key is present with a ``None`` value.
- ``non_finite`` — a float (or numeric string) is NaN or ±inf.

Normalization
-------------
Strings that read as decimal numbers (``"42"``, ``" 3.5 "``, ``"1e3"``) are
converted to ``float``.  Everything else is copied unchanged.

Normalization is idempotent: running the output back through this function
yields the same data and the same flags, so ``validate()`` followed by
``decide()`` never introduces new quality flags.
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping

from persona_engine.models.decision import QualityFlag, ValidationResult

_NUMERIC_STRING_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def validate_and_normalize(raw_inputs: Mapping[str, Any] | None) -> ValidationResult:
    """Flag quality issues and coerce numeric strings in ``raw_inputs``.

    Args:
        raw_inputs: Raw request data; ``None`` is treated as empty.

    Returns:
        ``ValidationResult`` with ``valid`` True iff no flags were raised.
    """
    data: dict[str, Any] = {}
    flags: list[QualityFlag] = []

    for key, val in (raw_inputs or {}).items():
        if isinstance(val, str) and _NUMERIC_STRING_RE.match(val):
            val = float(val)

        if val is None:
            flags.append(QualityFlag(field=key, issue="missing"))
        elif isinstance(val, float) and not math.isfinite(val):
            flags.append(QualityFlag(field=key, issue="non_finite"))

        data[key] = val

    return ValidationResult(valid=not flags, quality_flags=flags, normalized_data=data)


def score_data_quality(flag_count: int, decay: float = 0.1) -> float:
    """Quality score in [0, 1]: 1.0 minus ``decay`` per flag, floored at 0."""
    if flag_count <= 0:
        return 1.0
    return max(0.0, 1.0 - flag_count * decay)
