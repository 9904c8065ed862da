"""
Shared pytest fixtures for the persona engine test suite.

Provides:
  - ``in_memory_db``: a fresh in-memory SQLite connection with the schema applied.
  - ``budget_persona`` / ``exec_persona``: persona records for tenant ``demo``.
  - ``persona_store``: an ``InMemoryPersonaStore`` holding both personas.
  - ``security``: a ``SecurityContext`` for tenant ``demo``.
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from persona_engine.db.schema import apply_schema
from persona_engine.models.persona import PersonaProfile
from persona_engine.models.request import SecurityContext
from persona_engine.store.base import InMemoryPersonaStore


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── Personas ──────────────────────────────────────────────────────────────────

@pytest.fixture
def budget_persona() -> PersonaProfile:
    """Price-sensitive persona with an over-budget penalty rule."""
    return PersonaProfile.model_validate({
        "persona_id": "p-budget",
        "name": "budget_shopper",
        "display_name": "Budget Shopper",
        "tenant_id": "demo",
        "attributes": {
            "priorities": {"price": 0.7, "speed": 0.2, "quality": 0.1},
            "risk_tolerance": "LOW",
            "thresholds": {"min_score": 55, "max_risk": "MEDIUM"},
            "rules": [
                {"condition": "price > 100", "score_adjustment": -20, "reason": "Over budget"},
            ],
        },
    })


@pytest.fixture
def exec_persona() -> PersonaProfile:
    """Speed-first persona with a metric-injecting rule and a custom model."""
    return PersonaProfile.model_validate({
        "persona_id": "p-exec",
        "name": "time_poor_executive",
        "tenant_id": "demo",
        "attributes": {
            "priorities": {"speed": 0.6, "convenience": 0.4},
            "risk_tolerance": "HIGH",
            "model_id": "exec_model_v2",
            "rules": [
                {"condition": 'channel == "phone"', "set_metric": "convenience", "value": 1.0},
            ],
        },
    })


@pytest.fixture
def persona_store(budget_persona, exec_persona) -> InMemoryPersonaStore:
    return InMemoryPersonaStore([budget_persona, exec_persona])


@pytest.fixture
def security() -> SecurityContext:
    return SecurityContext(tenant_id="demo", user_id="u-1")
