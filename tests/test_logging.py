"""Tests for logging configuration."""

import logging
from pathlib import Path

from forensight.config.models import LoggingSettings
from forensight.log import configure_logging


def test_configure_logging_writes_rotating_file(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "forensight.log"
    settings = LoggingSettings(level="INFO", file=str(log_path), max_size_mb=1, backup_count=2)

    logger = configure_logging(settings)
    logging.getLogger("forensight.analysis.pipeline").info("hashed %s", "sample.bin")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.INFO
    assert "hashed sample.bin" in log_path.read_text(encoding="utf-8")

    configure_logging(LoggingSettings())


def test_configure_logging_replaces_handlers() -> None:
    configure_logging(LoggingSettings())
    logger = configure_logging(LoggingSettings(), verbose=True)

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG

    configure_logging(LoggingSettings())
