"""
Audit sinks: one record per ``decide()`` call.

The engine builds an ``AuditRecord`` after every successful decision and
hands it to the configured sink on a background task; the response never
waits for the write.  Sink exceptions are caught and logged by the engine.

Sinks
-----
LoggingAuditSink — logs one INFO line per decision (``persona_engine.audit``
                   logger); with JSON logging the record fields become keys.
SqliteAuditSink  — inserts into ``decision_audit`` from a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from persona_engine.config import DatabaseConfig
from persona_engine.db.connection import get_connection
from persona_engine.models.decision import DecisionResponse
from persona_engine.models.request import DecisionRequest, SecurityContext
from persona_engine.taxonomy.risk_taxonomy import DecisionType
from persona_engine.utils.time_utils import utcnow

logger = logging.getLogger("persona_engine.audit")


class AuditRecord(BaseModel):
    """Immutable audit entry for one decision."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    tenant_id: Optional[str] = None
    user_id: Optional[str] = None
    persona_ref: Optional[str] = None
    decision_type: DecisionType
    action_id: Optional[str] = None
    confidence: float
    response_json: str
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_decision(
        cls,
        request: DecisionRequest,
        security: SecurityContext,
        response: DecisionResponse,
    ) -> "AuditRecord":
        action = response.decision.action
        return cls(
            request_id=response.request_id,
            tenant_id=security.tenant_id,
            user_id=security.user_id,
            persona_ref=request.persona_ref,
            decision_type=response.decision.type,
            action_id=action.id if action is not None else None,
            confidence=response.confidence,
            response_json=response.model_dump_json(),
        )


class AuditSink(Protocol):
    async def write(self, record: AuditRecord) -> None:
        ...


class LoggingAuditSink:
    async def write(self, record: AuditRecord) -> None:
        logger.info(
            "Decision %s: %s %s (confidence=%.2f, persona=%s, tenant=%s)",
            record.request_id,
            record.decision_type,
            record.action_id or "-",
            record.confidence,
            record.persona_ref or "-",
            record.tenant_id or "-",
            extra={
                "request_id": record.request_id,
                "decision_type": str(record.decision_type),
                "action_id": record.action_id,
            },
        )


class SqliteAuditSink:
    """Append-only writer for the ``decision_audit`` table.

    The table must exist (``persona-engine init-db``).
    """

    def __init__(
        self,
        db_path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        self.db_path = db_path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "SqliteAuditSink":
        return cls(config.db_path, config.wal_mode, config.busy_timeout_ms)

    async def write(self, record: AuditRecord) -> None:
        await asyncio.to_thread(self._insert, record)

    def _insert(self, record: AuditRecord) -> None:
        with get_connection(self.db_path, self.wal_mode, self.busy_timeout_ms) as conn:
            conn.execute(
                """
                INSERT INTO decision_audit (
                    request_id, tenant_id, user_id, persona_ref, decision_type,
                    action_id, confidence, response_json, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    record.request_id,
                    record.tenant_id,
                    record.user_id,
                    record.persona_ref,
                    record.decision_type.value,
                    record.action_id,
                    record.confidence,
                    record.response_json,
                    record.created_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
                ),
            )
