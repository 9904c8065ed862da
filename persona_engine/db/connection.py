"""
SQLite connection management.

``get_connection()`` is a context manager that opens a configured
connection for one unit of work:
  - foreign keys ON, busy timeout set, optional WAL journal mode;
  - ``sqlite3.Row`` row factory (rows index by column name);
  - commit on clean exit, rollback on exception, always closed.

The persona store and the audit sink call it from worker threads
(``asyncio.to_thread``), one connection per call, so no connection object
is ever shared between threads.

Usage::

    from persona_engine.db.connection import get_connection

    with get_connection(config.database.db_path) as conn:
        conn.execute("SELECT ...")
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Yield an open, configured SQLite connection.

    Parent directories of ``db_path`` are created when missing.

    Args:
        db_path: Database file path, or ``":memory:"``.
        wal_mode: Enable WAL journal mode (ignored for ``":memory:"``).
        busy_timeout_ms: Lock wait before ``OperationalError`` is raised.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened or is locked.
    """
    in_memory = db_path == ":memory:"
    if not in_memory:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row

    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
        if wal_mode and not in_memory:
            conn.execute("PRAGMA journal_mode = WAL;")

        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
