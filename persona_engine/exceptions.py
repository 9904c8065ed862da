"""
Exception hierarchy for the persona decision engine.

Only ``DecisionEngineError`` ever escapes ``DecisionEngine.decide()``.  The
other exceptions are raised by adapters and parsers and caught at the seam
where the engine degrades to defaults (persona lookup, scorer calls, rule
parsing).
"""

from __future__ import annotations


class PersonaEngineError(Exception):
    """Base class for all persona engine errors."""


class DecisionEngineError(PersonaEngineError):
    """The engine could not run for this request.

    Distinct from an ESCALATE decision, which means the engine ran and
    recommends human review.

    Attributes:
        request_id: ID of the failed request, if known.
    """

    def __init__(self, message: str, request_id: str | None = None) -> None:
        self.request_id = request_id
        super().__init__(message)


class ConditionParseError(PersonaEngineError, ValueError):
    """A declarative rule condition string could not be parsed.

    Attributes:
        condition: The offending condition string.
    """

    def __init__(self, condition: str, detail: str) -> None:
        self.condition = condition
        super().__init__(f"Cannot parse condition {condition!r}: {detail}")


class PersonaStoreError(PersonaEngineError):
    """The persona store was unreachable or returned an unusable record."""


class ScorerError(PersonaEngineError):
    """A pluggable scorer backend failed or returned a malformed payload."""
