"""
SQLite schema DDL for the persona store and the decision audit log.

Tables
------
personas        — read-only persona records (owned by an external admin
                  process; the engine only SELECTs).  ``attributes_json``
                  holds the free-form attribute bag as a JSON object.
decision_audit  — one row per ``decide()`` call, written by
                  ``SqliteAuditSink``.

Every statement uses ``IF NOT EXISTS``; ``apply_schema()`` is idempotent.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

_DDL_PERSONAS = """
CREATE TABLE IF NOT EXISTS personas (
    persona_id      TEXT    NOT NULL,
    tenant_id       TEXT    NOT NULL,
    name            TEXT    NOT NULL,
    display_name    TEXT,
    attributes_json TEXT    NOT NULL DEFAULT '{}',
    updated_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    PRIMARY KEY (tenant_id, persona_id),
    UNIQUE (tenant_id, name)
);
"""

_DDL_DECISION_AUDIT = """
CREATE TABLE IF NOT EXISTS decision_audit (
    audit_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    request_id      TEXT    NOT NULL,
    tenant_id       TEXT,
    user_id         TEXT,
    persona_ref     TEXT,
    decision_type   TEXT    NOT NULL CHECK (decision_type IN ('RECOMMEND', 'ESCALATE')),
    action_id       TEXT,
    confidence      REAL    NOT NULL,
    response_json   TEXT    NOT NULL,
    created_at      TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_decision_audit_request
    ON decision_audit (request_id);

CREATE INDEX IF NOT EXISTS idx_decision_audit_tenant_time
    ON decision_audit (tenant_id, created_at);
"""

_ALL_DDL: list[str] = [_DDL_PERSONAS, _DDL_DECISION_AUDIT]

ALL_TABLE_NAMES: list[str] = ["personas", "decision_audit"]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes on ``conn`` (idempotent)."""
    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)
    conn.commit()
    logger.info("Schema applied: %d tables verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return the table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' "
        "AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
