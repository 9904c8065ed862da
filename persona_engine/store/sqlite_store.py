"""
SQLite-backed persona store.

Reads the ``personas`` table created by ``persona_engine.db.schema``.
``lookup`` is a blocking call; the context builder runs it in a worker
thread, and every call opens its own connection.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from persona_engine.config import DatabaseConfig
from persona_engine.db.connection import get_connection
from persona_engine.exceptions import PersonaStoreError
from persona_engine.models.persona import PersonaProfile

logger = logging.getLogger(__name__)

_LOOKUP_SQL = """
SELECT persona_id, tenant_id, name, display_name, attributes_json
  FROM personas
 WHERE tenant_id = ?
   AND (persona_id = ? OR name = ?)
 ORDER BY CASE WHEN persona_id = ? THEN 0 ELSE 1 END
 LIMIT 1;
"""


class SqlitePersonaStore:
    """Read-only access to the ``personas`` table."""

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
    def from_config(cls, config: DatabaseConfig) -> "SqlitePersonaStore":
        return cls(config.db_path, config.wal_mode, config.busy_timeout_ms)

    def lookup(self, tenant_id: str, identifier: str) -> Optional[PersonaProfile]:
        """Fetch one persona by ID or name.

        Raises:
            PersonaStoreError: On database errors or an unreadable record.
        """
        try:
            with get_connection(self.db_path, self.wal_mode, self.busy_timeout_ms) as conn:
                row = conn.execute(
                    _LOOKUP_SQL, (tenant_id, identifier, identifier, identifier)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersonaStoreError(f"Persona lookup failed: {exc}") from exc

        return _row_to_profile(row) if row else None


def _row_to_profile(row: sqlite3.Row) -> PersonaProfile:
    try:
        attributes = json.loads(row["attributes_json"] or "{}")
        return PersonaProfile(
            persona_id=row["persona_id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            display_name=row["display_name"],
            attributes=attributes,
        )
    except ValueError as exc:
        raise PersonaStoreError(
            f"Persona {row['persona_id']!r} has unreadable attributes: {exc}"
        ) from exc
