"""Centralized logging configuration using Loguru.

Every lightdao module logs through the single logger exported here so the
host application controls verbosity from one place.

Usage:
    from lightdao.utils.logging import logger
    logger.debug("SQL: {sql}", sql=statement.sql)

Environment Variables:
    LIGHTDAO_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: WARNING)
    LIGHTDAO_LOG_JSON: 0|1 (default: 0, human-readable)
    LIGHTDAO_LOG_FILE: path to an NDJSON log file (optional)
"""

import json
import os
import sys
from pathlib import Path

from loguru import logger

logger.remove()

# Pino-compatible numeric levels
PINO_LEVELS = {
    "TRACE": 10,
    "DEBUG": 20,
    "INFO": 30,
    "WARNING": 40,
    "ERROR": 50,
    "CRITICAL": 60,
}

_log_level = os.environ.get("LIGHTDAO_LOG_LEVEL", "WARNING").upper()
_json_mode = os.environ.get("LIGHTDAO_LOG_JSON", "0") == "1"
_log_file = os.environ.get("LIGHTDAO_LOG_FILE")


def _to_pino(record) -> dict:
    """Convert a loguru record into a Pino-style dict."""
    pino_log = {
        "level": PINO_LEVELS.get(record["level"].name, 30),
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "pid": record["process"].id,
        "module": record["name"],
    }

    for key, value in record["extra"].items():
        pino_log[key] = value if isinstance(value, (str, int, float, bool)) else str(value)

    if record["exception"]:
        pino_log["err"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else "Error",
            "message": str(record["exception"].value) if record["exception"].value else "",
        }
    return pino_log


def pino_compatible_sink(message):
    """Write log records to stdout as NDJSON."""
    # Never call logger.* inside a sink - causes infinite recursion
    sys.stdout.write(json.dumps(_to_pino(message.record)) + "\n")
    sys.stdout.flush()


_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

if _json_mode:
    logger.add(pino_compatible_sink, level=_log_level, colorize=False)
else:
    logger.add(
        sys.stderr,
        level=_log_level,
        format=_human_format,
        colorize=None,
    )

if _log_file:

    def _file_pino_sink(message):
        """Append NDJSON records to the configured log file."""
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(_to_pino(message.record)) + "\n")

    logger.add(_file_pino_sink, level="DEBUG")


def configure_file_logging(log_dir: Path, level: str = "DEBUG") -> int:
    """Add a rotating human-readable log file under ``log_dir``.

    Returns:
        The loguru handler id, so callers can remove it again.
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    return logger.add(
        log_dir / "lightdao.log",
        rotation="10 MB",
        retention="7 days",
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    )


__all__ = [
    "logger",
    "configure_file_logging",
]
