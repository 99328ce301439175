"""Tests for logging configuration."""

from __future__ import annotations

import json
import logging

import pytest

from turfops.config import LoggingConfig
from turfops.utils.logging import _JsonFormatter, configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_file_handler_written(tmp_path):
    log_file = tmp_path / "logs" / "turfops.log"
    configure_logging(LoggingConfig(level="INFO", log_file=str(log_file)))
    logging.getLogger("turfops.test").info("hello lawn")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello lawn" in log_file.read_text(encoding="utf-8")


def test_no_file_handler_when_log_file_empty():
    configure_logging(LoggingConfig(level="WARNING", log_file=""))
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert not any(isinstance(h, logging.FileHandler) for h in root.handlers)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_json_formatter_includes_extra():
    record = logging.LogRecord("turfops.engine", logging.INFO, __file__, 1, "pass %s", ("done",), None)
    record.rule_id = "pre_emergent"
    payload = json.loads(_JsonFormatter().format(record))
    assert payload["msg"] == "pass done"
    assert payload["level"] == "INFO"
    assert payload["rule_id"] == "pre_emergent"


def test_debug_flag_overrides_level():
    configure_logging(LoggingConfig(level="ERROR", log_file=""), debug=True)
    assert logging.getLogger().level == logging.DEBUG


def test_file_rotates(tmp_path):
    log_file = tmp_path / "turfops.log"
    configure_logging(LoggingConfig(level="INFO", log_file=str(log_file), max_bytes=200, backup_count=1))
    log = logging.getLogger("turfops.test")
    for i in range(20):
        log.info("reading batch %d imported", i)
    assert (tmp_path / "turfops.log.1").exists()
