"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``PERSONA_ENGINE_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The engine, its adapters and the CLI receive an ``AppConfig`` (or one of its
sections) — never raw dicts or scattered env var lookups.  ``AppConfig()``
with no arguments yields the built-in defaults, which match
``config/default.toml``.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from persona_engine.taxonomy.risk_taxonomy import RiskLevel, RiskTolerance

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite connection settings (persona store and audit sink)."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/persona_engine.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class EngineConfig(BaseModel):
    """Engine-level defaults applied when neither persona nor request sets a value."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    default_risk_appetite: RiskTolerance = RiskTolerance.MEDIUM
    default_min_score: float = 50.0
    default_max_risk: str = "HIGH"
    default_top_k: int = 3
    default_model_id: str = "default_model"
    default_latency_ms: float = 100.0
    backend_timeout_s: float = 2.0
    quality_flag_decay: float = 0.1
    fallback_model_confidence: float = 0.5

    @field_validator("default_max_risk")
    @classmethod
    def validate_risk(cls, v: str) -> str:
        if RiskLevel.parse(v) is None:
            raise ValueError(f"Unknown risk level '{v}'.")
        return v.upper()

    @field_validator("default_risk_appetite", mode="before")
    @classmethod
    def upper_risk_appetite(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("backend_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"backend_timeout_s must be > 0, got {v}.")
        return v


class ConfidenceConfig(BaseModel):
    """Confidence composition and labelling."""

    model_config = ConfigDict(frozen=True)

    high_threshold: float = 0.8
    moderate_threshold: float = 0.5
    default_context_stability: float = 0.9
    horizon_stability: dict[str, float] = {
        "realtime":    1.0,
        "short_term":  0.95,
        "medium_term": 0.9,
        "long_term":   0.8,
    }

    @model_validator(mode="after")
    def validate_thresholds(self) -> "ConfidenceConfig":
        if not 0.0 <= self.moderate_threshold <= self.high_threshold <= 1.0:
            raise ValueError(
                "Expected 0 <= moderate_threshold <= high_threshold <= 1, got "
                f"{self.moderate_threshold} / {self.high_threshold}."
            )
        return self


class NormalizerSpec(BaseModel):
    """One row of the metric normalizer table.

    Attributes:
        feature: Raw feature key read from the feature vector.
        metrics: Metric names the transformed value is published under.
        curve: ``"inverse_decay"`` → ``1 / (1 + x/scale)``;
               ``"identity"`` → value passed through unchanged.
        scale: Half-utility point for ``inverse_decay`` curves.
    """

    model_config = ConfigDict(frozen=True)

    feature: str
    metrics: list[str]
    curve: Literal["inverse_decay", "identity"] = "identity"
    scale: Optional[float] = None

    @model_validator(mode="after")
    def validate_scale(self) -> "NormalizerSpec":
        if self.curve == "inverse_decay" and (self.scale is None or self.scale <= 0):
            raise ValueError(f"Normalizer '{self.feature}': inverse_decay needs scale > 0.")
        if not self.metrics:
            raise ValueError(f"Normalizer '{self.feature}': metrics must be non-empty.")
        return self


DEFAULT_NORMALIZERS: list[NormalizerSpec] = [
    NormalizerSpec(feature="price", metrics=["price", "cost_efficiency"],
                   curve="inverse_decay", scale=50.0),
    NormalizerSpec(feature="duration_minutes", metrics=["speed"],
                   curve="inverse_decay", scale=30.0),
    NormalizerSpec(feature="convenience", metrics=["convenience"]),
    NormalizerSpec(feature="quality", metrics=["quality"]),
]


class RiskRuleConfig(BaseModel):
    """One risk-model rule: a match condition mapped to a fixed level.

    Exactly one of ``action_id_contains`` / ``condition`` must be set.
    """

    model_config = ConfigDict(frozen=True)

    level: str
    action_id_contains: Optional[str] = None
    condition: Optional[str] = None

    @model_validator(mode="after")
    def validate_rule(self) -> "RiskRuleConfig":
        if RiskLevel.parse(self.level) is None:
            raise ValueError(f"Unknown risk level '{self.level}'.")
        if (self.action_id_contains is None) == (self.condition is None):
            raise ValueError(
                "Risk rule needs exactly one of 'action_id_contains' or 'condition'."
            )
        return self


class RiskConfig(BaseModel):
    """Domain risk model: first matching rule wins, else ``default_level``."""

    model_config = ConfigDict(frozen=True)

    default_level: str = "MEDIUM"
    rules: list[RiskRuleConfig] = [
        RiskRuleConfig(level="LOW", action_id_contains="maintenance"),
        RiskRuleConfig(level="CRITICAL", condition="temp_c > 90"),
    ]

    @field_validator("default_level")
    @classmethod
    def validate_default(cls, v: str) -> str:
        if RiskLevel.parse(v) is None:
            raise ValueError(f"Unknown risk level '{v}'.")
        return v.upper()


class StoreConfig(BaseModel):
    """Persona store backend selection."""

    model_config = ConfigDict(frozen=True)

    backend: Literal["memory", "json", "sqlite", "http"] = "json"
    json_path: str = "config/personas.json"
    http_base_url: Optional[str] = None
    http_timeout_s: float = 5.0


class ScorersConfig(BaseModel):
    """Remote scorer endpoints; an empty URL means the backend is not injected."""

    model_config = ConfigDict(frozen=True)

    predictor_url: Optional[str] = None
    optimizer_url: Optional[str] = None
    http_timeout_s: float = 5.0


class AuditConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    backend: Literal["log", "sqlite", "none"] = "log"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth."""

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    engine: EngineConfig = EngineConfig()
    confidence: ConfidenceConfig = ConfidenceConfig()
    normalizers: list[NormalizerSpec] = DEFAULT_NORMALIZERS
    risk: RiskConfig = RiskConfig()
    store: StoreConfig = StoreConfig()
    scorers: ScorersConfig = ScorersConfig()
    audit: AuditConfig = AuditConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the config file does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Pass --config or create config/default.toml first."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            raw = _deep_merge(raw, tomllib.load(f))

    raw = _apply_env_overrides(raw)

    return AppConfig.model_validate(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply PERSONA_ENGINE_* env vars to the raw config dict.

    Supported overrides:
      PERSONA_ENGINE_DB_PATH            → raw["database"]["db_path"]
      PERSONA_ENGINE_LOG_LEVEL          → raw["logging"]["level"]
      PERSONA_ENGINE_STORE_BACKEND      → raw["store"]["backend"]
      PERSONA_ENGINE_BACKEND_TIMEOUT_S  → raw["engine"]["backend_timeout_s"]
      PERSONA_ENGINE_DEBUG              → raw["debug"]
    """
    if db_path := os.environ.get("PERSONA_ENGINE_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("PERSONA_ENGINE_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if backend := os.environ.get("PERSONA_ENGINE_STORE_BACKEND"):
        raw.setdefault("store", {})["backend"] = backend

    if timeout := os.environ.get("PERSONA_ENGINE_BACKEND_TIMEOUT_S"):
        raw.setdefault("engine", {})["backend_timeout_s"] = float(timeout)

    if debug := os.environ.get("PERSONA_ENGINE_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw
