"""
Time helpers used for request IDs, audit timestamps and processing telemetry.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def epoch_ms() -> int:
    """Return the current Unix time in whole milliseconds."""
    return int(time.time() * 1000)


def elapsed_ms(started: float) -> int:
    """Milliseconds elapsed since ``started`` (a ``time.perf_counter()`` value)."""
    return int((time.perf_counter() - started) * 1000)
