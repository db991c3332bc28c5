"""
LawPilot Configuration

Environment-driven settings and logging setup.

Environment variables:
    LP_TABLES_DIR        Rule table directory (default: packaged tables)
    LP_STORE_PATH        JSON file for the artifact store (default: in memory)
    LP_LOG_LEVEL         Log level (default: INFO)
    LP_LOG_FORMAT        "json" or "text" (default: json)
    LP_DEFAULT_SEVERITY  Severity for the authority analysis (default: medium)
    LP_TABLE_WORKERS     Thread pool size for concurrent table loads (default: 4)
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional


DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"
DEFAULT_SEVERITY = "medium"
DEFAULT_TABLE_WORKERS = 4

LOG_FORMATS = ("json", "text")
TEXT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# LogRecord attributes copied into JSON output when a call site sets them
LOG_EXTRA_FIELDS = ("stage", "table", "condition")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for one pipeline process."""
    tables_dir: Optional[str] = None
    store_path: Optional[str] = None
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT
    default_severity: str = DEFAULT_SEVERITY
    table_workers: int = DEFAULT_TABLE_WORKERS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """
        Build settings from environment variables.

        Reads os.environ unless a mapping is given. Unset values fall back to
        the defaults above.

        Raises:
            ValueError: If LP_TABLE_WORKERS is not an integer
        """
        env = os.environ if environ is None else environ
        return cls(
            tables_dir=env.get("LP_TABLES_DIR") or None,
            store_path=env.get("LP_STORE_PATH") or None,
            log_level=env.get("LP_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
            log_format=env.get("LP_LOG_FORMAT", DEFAULT_LOG_FORMAT).lower(),
            default_severity=env.get("LP_DEFAULT_SEVERITY", DEFAULT_SEVERITY).lower(),
            table_workers=int(env.get("LP_TABLE_WORKERS", DEFAULT_TABLE_WORKERS)),
        )

    def override(self, **changes: Any) -> Settings:
        """Copy with the non-None changes applied (CLI flags over environment)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in LOG_EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = DEFAULT_LOG_LEVEL, fmt: str = DEFAULT_LOG_FORMAT) -> logging.Logger:
    """
    Configure the "lawpilot" logger namespace.

    Replaces any handlers installed by an earlier call, so it is safe to
    call more than once.
    """
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {fmt!r} (expected one of {LOG_FORMATS})")

    logger = logging.getLogger("lawpilot")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_LOG_FORMAT))
    logger.addHandler(handler)
    return logger
