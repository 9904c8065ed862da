"""
Logging setup for the persona decision engine.

Call ``configure_logging(config)`` once at process entry (CLI command or host
service start-up).  Library modules only ever use
``logging.getLogger(__name__)`` — they never call ``configure_logging`` or
``basicConfig`` themselves.

Console output goes to **stderr**: the CLI writes decision JSON to stdout, and
the two streams must not interleave.

JSON format (``json_format = true`` in config/default.toml [logging]) emits
one object per line::

    {"ts": "2026-10-19T09:00:00Z", "level": "WARNING",
     "logger": "persona_engine.engine.context", "msg": "...",
     "request_id": "REQ-1760864400000"}

Keys passed through ``extra=`` (such as ``request_id``) are copied to the top
level of the JSON object.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from persona_engine.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes every LogRecord carries; anything else came from ``extra=``.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


class JsonLineFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        for key, val in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                payload[key] = val
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig") -> None:
    """Configure the root logger from a ``LoggingConfig`` section.

    Installs a stderr handler and, when ``config.log_file`` is set, a file
    handler (parent directories are created).  Re-running replaces any
    previously installed handlers.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    formatter: logging.Formatter
    if config.json_format:
        formatter = JsonLineFormatter()
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
