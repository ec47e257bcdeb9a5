from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "hsm_rest_client"
DEFAULT_LOG_FILE = "logs/hsm-rest-client.log"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 5
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _parse_int(value: str, name: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got: {value}") from exc
    if parsed < 0:
        raise ValueError(f"{name} must be >= 0, got: {value}")
    return parsed


def _parse_level(value: str | int) -> int:
    if not isinstance(value, str):
        return int(value)
    normalized = value.strip().upper()
    if normalized.isdigit():
        return int(normalized)
    numeric_level = getattr(logging, normalized, None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {value}")
    return numeric_level


def configure_logging(
    *,
    log_file: str | Path | None = None,
    level: str | int | None = None,
    max_bytes: int | None = None,
    backup_count: int | None = None,
    console: bool | None = None,
) -> logging.Logger:
    """
    Configure rotating file logging for the hsm_rest_client logger namespace.

    Environment variable overrides:
    - HSM_CLIENT_LOG_FILE
    - HSM_CLIENT_LOG_LEVEL
    - HSM_CLIENT_LOG_MAX_BYTES
    - HSM_CLIENT_LOG_BACKUP_COUNT
    - HSM_CLIENT_LOG_CONSOLE (mirror records to stderr when "1"/"true")

    Calling it again with the same log file only updates the level.
    """

    resolved_log_file = Path(
        str(log_file or os.environ.get("HSM_CLIENT_LOG_FILE", DEFAULT_LOG_FILE))
    )
    numeric_level = _parse_level(
        level or os.environ.get("HSM_CLIENT_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    )

    if max_bytes is None:
        max_bytes = _parse_int(
            os.environ.get("HSM_CLIENT_LOG_MAX_BYTES", str(DEFAULT_LOG_MAX_BYTES)),
            "HSM_CLIENT_LOG_MAX_BYTES",
        )
    if backup_count is None:
        backup_count = _parse_int(
            os.environ.get("HSM_CLIENT_LOG_BACKUP_COUNT", str(DEFAULT_LOG_BACKUP_COUNT)),
            "HSM_CLIENT_LOG_BACKUP_COUNT",
        )
    if max_bytes < 0:
        raise ValueError("max_bytes must be >= 0.")
    if backup_count < 0:
        raise ValueError("backup_count must be >= 0.")
    if console is None:
        console = os.environ.get("HSM_CLIENT_LOG_CONSOLE", "").strip().lower() in {
            "1",
            "true",
            "yes",
        }

    resolved_log_file.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)
    logger.propagate = False
    formatter = logging.Formatter(LOG_FORMAT)

    if console and not any(
        type(existing) is logging.StreamHandler for existing in logger.handlers
    ):
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    resolved_path = resolved_log_file.resolve()
    for existing in logger.handlers:
        existing.setLevel(numeric_level)
        if (
            isinstance(existing, RotatingFileHandler)
            and Path(existing.baseFilename).resolve() == resolved_path
        ):
            return logger

    handler = RotatingFileHandler(
        resolved_log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(numeric_level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    logger.info(
        "Configured rotating file logging (path=%s, level=%s, max_bytes=%d, backup_count=%d)",
        resolved_log_file,
        logging.getLevelName(numeric_level),
        max_bytes,
        backup_count,
    )
    return logger
