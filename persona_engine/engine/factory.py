"""
build_engine(): wire a ``DecisionEngine`` from ``AppConfig``.

Hosts (the CLI, a web service) call this once at start-up; tests construct
``DecisionEngine`` directly with in-memory collaborators instead.

Backend selection
-----------------
store    memory → empty InMemoryPersonaStore
         json   → InMemoryPersonaStore.from_json_file(store.json_path)
         sqlite → SqlitePersonaStore(database.*)
         http   → HttpPersonaStore(store.http_base_url)
scorers  predictor / optimizer → HttpScorer when the URL is set, else absent
audit    log → LoggingAuditSink, sqlite → SqliteAuditSink, none → no audit
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from persona_engine.audit.sink import AuditSink, LoggingAuditSink, SqliteAuditSink
from persona_engine.config import AppConfig
from persona_engine.engine.engine import DecisionEngine
from persona_engine.scorers.http_scorer import HttpScorer
from persona_engine.store.base import InMemoryPersonaStore, PersonaStore
from persona_engine.store.http_store import HttpPersonaStore
from persona_engine.store.sqlite_store import SqlitePersonaStore

logger = logging.getLogger(__name__)


def build_store(config: AppConfig, personas_path: Optional[Path] = None) -> PersonaStore:
    """Create the configured persona store.

    Args:
        config:        Application config.
        personas_path: JSON seed file; forces the in-memory store when given.

    Raises:
        ValueError: If the http backend is selected without a base URL.
        FileNotFoundError: If the JSON seed file does not exist.
    """
    if personas_path is not None:
        return InMemoryPersonaStore.from_json_file(personas_path)

    backend = config.store.backend
    if backend == "json":
        return InMemoryPersonaStore.from_json_file(config.store.json_path)
    if backend == "sqlite":
        return SqlitePersonaStore.from_config(config.database)
    if backend == "http":
        if not config.store.http_base_url:
            raise ValueError("store.backend = 'http' requires store.http_base_url.")
        return HttpPersonaStore(config.store.http_base_url, config.store.http_timeout_s)
    return InMemoryPersonaStore()


def build_audit_sink(config: AppConfig) -> Optional[AuditSink]:
    backend = config.audit.backend
    if backend == "sqlite":
        return SqliteAuditSink.from_config(config.database)
    if backend == "log":
        return LoggingAuditSink()
    return None


def build_engine(
    config: AppConfig,
    personas_path: Optional[Path] = None,
) -> DecisionEngine:
    """Construct a fully wired ``DecisionEngine`` from ``config``."""
    scorers = config.scorers
    predictor = (
        HttpScorer(scorers.predictor_url, scorers.http_timeout_s)
        if scorers.predictor_url else None
    )
    optimizer = (
        HttpScorer(scorers.optimizer_url, scorers.http_timeout_s)
        if scorers.optimizer_url else None
    )

    engine = DecisionEngine(
        config=config,
        store=build_store(config, personas_path),
        predictor=predictor,
        optimizer=optimizer,
        audit_sink=build_audit_sink(config),
    )
    logger.debug(
        "Engine built: store=%s predictor=%s optimizer=%s audit=%s",
        type(engine.store).__name__,
        "on" if predictor else "off",
        "on" if optimizer else "off",
        config.audit.backend,
    )
    return engine
