from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from hsm_rest_client import configure_logging


@pytest.fixture(autouse=True)
def reset_logger():
    logger = logging.getLogger("hsm_rest_client")
    saved = list(logger.handlers)
    yield
    for handler in logger.handlers:
        if handler not in saved:
            handler.close()
    logger.handlers = saved
    logger.propagate = True


def test_configure_logging_creates_rotating_log_file(tmp_path: Path) -> None:
    log_file = tmp_path / "hsm-rest-client.log"
    logger = configure_logging(
        log_file=log_file,
        level="INFO",
        max_bytes=1024,
        backup_count=2,
    )
    logger.info("logging test message")

    for handler in logger.handlers:
        handler.flush()

    assert log_file.exists()
    contents = log_file.read_text(encoding="utf-8")
    assert "logging test message" in contents


def test_configure_logging_is_idempotent_per_file(tmp_path: Path) -> None:
    log_file = tmp_path / "nested" / "client.log"
    configure_logging(log_file=log_file, level="INFO")
    logger = configure_logging(log_file=log_file, level="DEBUG")

    file_handlers = [
        h
        for h in logger.handlers
        if isinstance(h, RotatingFileHandler)
        and Path(h.baseFilename).resolve() == log_file.resolve()
    ]
    assert len(file_handlers) == 1
    assert file_handlers[0].level == logging.DEBUG
    assert logger.level == logging.DEBUG


def test_configure_logging_reads_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    log_file = tmp_path / "env.log"
    monkeypatch.setenv("HSM_CLIENT_LOG_FILE", str(log_file))
    monkeypatch.setenv("HSM_CLIENT_LOG_LEVEL", "warning")

    logger = configure_logging()

    assert logger.level == logging.WARNING
    assert log_file.parent.exists()


def test_configure_logging_rejects_bad_values(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Invalid log level"):
        configure_logging(log_file=tmp_path / "a.log", level="LOUD")
    with pytest.raises(ValueError, match="max_bytes"):
        configure_logging(log_file=tmp_path / "a.log", max_bytes=-1)


def test_configure_logging_console_mirror_from_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("HSM_CLIENT_LOG_CONSOLE", "true")

    logger = configure_logging(log_file=tmp_path / "console.log", level="INFO")
    configure_logging(log_file=tmp_path / "console.log", level="INFO")

    stream_handlers = [h for h in logger.handlers if type(h) is logging.StreamHandler]
    assert len(stream_handlers) == 1
