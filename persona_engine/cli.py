"""
Persona Engine — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging (stderr, so stdout carries only command output).
  3. Build what the command needs (engine, store, DB connection).
  4. Print the result to stdout.

Install and run::

    pip install -e .
    persona-engine --help
    persona-engine validate-config
    persona-engine init-db
    persona-engine show-persona budget_shopper --tenant demo
    persona-engine decide examples/request_budget.json --tenant demo
    persona-engine validate examples/request_budget.json
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer

app = typer.Typer(
    name="persona-engine",
    help="Persona-driven decision engine — score, rank and gate candidate actions.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from persona_engine.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config) -> None:
    from persona_engine.utils.logging import configure_logging
    configure_logging(config.logging)


def _read_json_or_exit(path: Path) -> Any:
    if not path.exists():
        typer.echo(f"[ERROR] File not found: {path}", err=True)
        raise typer.Exit(code=1)
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] {path} is not valid JSON: {exc}", err=True)
        raise typer.Exit(code=1)


def _emit(text: str, output: Optional[str]) -> None:
    if output:
        out_path = Path(output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text + "\n", encoding="utf-8")
        typer.echo(f"Written to {out_path}", err=True)
    else:
        typer.echo(text)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("decide")
def decide(
    request_file: str = typer.Argument(..., help="Decision request JSON file."),
    tenant: Optional[str] = typer.Option(
        None, "--tenant", "-t", help="Tenant ID used to scope the persona lookup.",
    ),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Caller user ID."),
    personas: Optional[str] = typer.Option(
        None, "--personas", help="Persona JSON seed file (overrides [store]).",
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write the response JSON to this file.",
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file.",
    ),
) -> None:
    """Run one decision request and print the response JSON.

    Without --tenant no persona is looked up and engine defaults apply.
    """
    from pydantic import ValidationError

    from persona_engine.engine.factory import build_engine
    from persona_engine.exceptions import DecisionEngineError, PersonaStoreError
    from persona_engine.models.request import DecisionRequest, SecurityContext

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    raw = _read_json_or_exit(Path(request_file))
    try:
        request = DecisionRequest.model_validate(raw)
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid decision request:\n{exc}", err=True)
        raise typer.Exit(code=1)

    try:
        engine = build_engine(config, Path(personas) if personas else None)
    except (FileNotFoundError, PersonaStoreError, ValueError) as exc:
        typer.echo(f"[ERROR] Cannot build engine: {exc}", err=True)
        raise typer.Exit(code=1)

    security = SecurityContext(tenant_id=tenant, user_id=user)

    async def _run():
        try:
            return await engine.decide(request, security)
        finally:
            await engine.drain_audit()

    try:
        response = asyncio.run(_run())
    except DecisionEngineError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    _emit(response.model_dump_json(indent=2), output)


@app.command("validate")
def validate(
    inputs_file: str = typer.Argument(
        ..., help="JSON file: a raw inputs object, or a request with an 'inputs' key.",
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file.",
    ),
) -> None:
    """Run the input validation stage only and print quality flags.

    Exits with code 2 when any quality flag is raised.
    """
    from persona_engine.features.quality import validate_and_normalize

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    raw = _read_json_or_exit(Path(inputs_file))
    if not isinstance(raw, dict):
        typer.echo("[ERROR] Expected a JSON object.", err=True)
        raise typer.Exit(code=1)
    inputs = raw["inputs"] if "inputs" in raw else raw
    if not isinstance(inputs, dict):
        typer.echo("[ERROR] 'inputs' must be a JSON object.", err=True)
        raise typer.Exit(code=1)

    result = validate_and_normalize(inputs)
    typer.echo(result.model_dump_json(indent=2))
    if not result.valid:
        raise typer.Exit(code=2)


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False, "--full", help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print the key settings.

    Also compiles the risk model so broken risk conditions fail here rather
    than on the first request.
    """
    from persona_engine.exceptions import ConditionParseError
    from persona_engine.scoring.risk import RiskModel

    config = _load_config_or_exit(config_path)

    try:
        risk_model = RiskModel.from_config(config.risk)
    except ConditionParseError as exc:
        typer.echo(f"[ERROR] Risk model: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Store backend:    {config.store.backend}")
    typer.echo(f"  Audit backend:    {config.audit.backend}")
    typer.echo(f"  Database path:    {config.database.db_path}")
    typer.echo(f"  Min score / risk: {config.engine.default_min_score} / {config.engine.default_max_risk}")
    typer.echo(f"  Backend timeout:  {config.engine.backend_timeout_s}s")
    typer.echo(f"  Normalizers:      {len(config.normalizers)}")
    typer.echo(f"  Risk rules:       {len(risk_model.rules)}")
    typer.echo(f"  Predictor:        {config.scorers.predictor_url or '-'}")
    typer.echo(f"  Optimizer:        {config.scorers.optimizer_url or '-'}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None, "--db-path", help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file.",
    ),
) -> None:
    """Create the SQLite persona and audit tables.

    Safe to run multiple times — all DDL uses IF NOT EXISTS.
    """
    from persona_engine.db.connection import get_connection
    from persona_engine.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("show-persona")
def show_persona(
    identifier: str = typer.Argument(..., help="Persona ID or name."),
    tenant: str = typer.Option(..., "--tenant", "-t", help="Tenant ID."),
    personas: Optional[str] = typer.Option(
        None, "--personas", help="Persona JSON seed file (overrides [store]).",
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file.",
    ),
) -> None:
    """Resolve a persona through the configured store and print it as JSON."""
    import inspect

    from persona_engine.engine.factory import build_store
    from persona_engine.exceptions import PersonaStoreError

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        store = build_store(config, Path(personas) if personas else None)
        if inspect.iscoroutinefunction(store.lookup):
            persona = asyncio.run(store.lookup(tenant, identifier))
        else:
            persona = store.lookup(tenant, identifier)
    except (FileNotFoundError, PersonaStoreError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    if persona is None:
        typer.echo(f"[ERROR] Persona {identifier!r} not found for tenant {tenant!r}.", err=True)
        raise typer.Exit(code=1)

    typer.echo(persona.model_dump_json(indent=2))


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
