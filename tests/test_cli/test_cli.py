"""
Tests for persona_engine/cli.py (typer.testing.CliRunner).

What we test
------------
decide:
  - Prints response JSON for the demo persona (tenant-scoped lookup).
  - Without --tenant, defaults apply and the persona is not used.
  - --output writes the JSON to a file.
  - Missing request file / invalid request → exit code 1.
validate:
  - Clean inputs → exit 0; flagged inputs → exit 2 with flags in the output.
validate-config:
  - Valid config → [OK]; broken risk condition → exit 1.
init-db:
  - Creates both tables.
show-persona:
  - Found → JSON; unknown → exit 1.
"""

from __future__ import annotations

import json
import logging
import sqlite3

import pytest
from typer.testing import CliRunner

from persona_engine.cli import app

runner = CliRunner()

PERSONAS = [{
    "persona_id": "p-budget",
    "name": "budget_shopper",
    "tenant_id": "demo",
    "attributes": {
        "priorities": {"price": 1.0},
        "thresholds": {"min_score": 55, "max_risk": "MEDIUM"},
        "rules": [{"condition": "price > 100", "score_adjustment": -20, "reason": "Over budget"}],
    },
}]

REQUEST = {
    "request_id": "REQ-cli",
    "persona_profile": "budget_shopper",
    "action_space": [
        {"id": "cheap", "properties": {"price": 10}},
        {"id": "pricey", "properties": {"price": 150}},
    ],
}


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def workspace(tmp_path):
    """Config, persona seed and request files in a temp directory."""
    personas = tmp_path / "personas.json"
    personas.write_text(json.dumps(PERSONAS))
    db_path = tmp_path / "db" / "engine.db"

    config = tmp_path / "app.toml"
    config.write_text(
        f'[database]\ndb_path = "{db_path.as_posix()}"\n'
        f'[store]\nbackend = "json"\njson_path = "{personas.as_posix()}"\n'
        '[audit]\nbackend = "none"\n'
        '[logging]\nlevel = "ERROR"\n'
    )
    request = tmp_path / "request.json"
    request.write_text(json.dumps(REQUEST))
    return {"config": str(config), "request": str(request), "db": db_path, "dir": tmp_path}


class TestDecide:
    def test_with_persona(self, workspace):
        result = runner.invoke(app, [
            "decide", workspace["request"], "--tenant", "demo", "--config", workspace["config"],
        ])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["request_id"] == "REQ-cli"
        assert data["decision"]["type"] == "RECOMMEND"
        assert data["decision"]["action"]["id"] == "cheap"
        pricey = next(c for c in data["top_candidates"] if c["action"]["id"] == "pricey")
        assert pricey["evidence"]["rules_triggered"] == ["Over budget"]

    def test_without_tenant_uses_defaults(self, workspace):
        result = runner.invoke(app, [
            "decide", workspace["request"], "--config", workspace["config"],
        ])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["explanation"]["top_factors"] == []
        assert all(c["score"] == 50.0 for c in data["top_candidates"])

    def test_output_file(self, workspace):
        out = workspace["dir"] / "out" / "response.json"
        result = runner.invoke(app, [
            "decide", workspace["request"], "--tenant", "demo",
            "--config", workspace["config"], "--output", str(out),
        ])
        assert result.exit_code == 0, result.output
        assert json.loads(out.read_text())["request_id"] == "REQ-cli"

    def test_missing_request_file(self, workspace):
        result = runner.invoke(app, [
            "decide", str(workspace["dir"] / "absent.json"), "--config", workspace["config"],
        ])
        assert result.exit_code == 1

    def test_invalid_request(self, workspace):
        bad = workspace["dir"] / "bad.json"
        bad.write_text(json.dumps({"action_space": "nope"}))
        result = runner.invoke(app, ["decide", str(bad), "--config", workspace["config"]])
        assert result.exit_code == 1


class TestValidate:
    def test_clean(self, workspace):
        path = workspace["dir"] / "inputs.json"
        path.write_text(json.dumps({"inputs": {"basket": "3"}}))
        result = runner.invoke(app, ["validate", str(path), "--config", workspace["config"]])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["normalized_data"] == {"basket": 3.0}

    def test_flagged(self, workspace):
        path = workspace["dir"] / "inputs.json"
        path.write_text(json.dumps({"region": None}))
        result = runner.invoke(app, ["validate", str(path), "--config", workspace["config"]])
        assert result.exit_code == 2
        assert json.loads(result.stdout)["quality_flags"] == [
            {"field": "region", "issue": "missing"}
        ]


class TestValidateConfig:
    def test_ok(self, workspace):
        result = runner.invoke(app, ["validate-config", "--config", workspace["config"]])
        assert result.exit_code == 0, result.output
        assert "[OK] Config valid." in result.stdout

    def test_broken_risk_condition(self, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text('[[risk.rules]]\nlevel = "LOW"\ncondition = "temp_c >> 1"\n')
        result = runner.invoke(app, ["validate-config", "--config", str(config)])
        assert result.exit_code == 1

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["validate-config", "--config", str(tmp_path / "x.toml")])
        assert result.exit_code == 1


class TestInitDb:
    def test_creates_tables(self, workspace):
        result = runner.invoke(app, ["init-db", "--config", workspace["config"]])
        assert result.exit_code == 0, result.output
        conn = sqlite3.connect(workspace["db"])
        try:
            names = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        finally:
            conn.close()
        assert {"personas", "decision_audit"} <= names


class TestShowPersona:
    def test_found(self, workspace):
        result = runner.invoke(app, [
            "show-persona", "p-budget", "--tenant", "demo", "--config", workspace["config"],
        ])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["name"] == "budget_shopper"

    def test_not_found(self, workspace):
        result = runner.invoke(app, [
            "show-persona", "nobody", "--tenant", "demo", "--config", workspace["config"],
        ])
        assert result.exit_code == 1
