from __future__ import annotations

import json
import logging

import pytest

from biovoice.config.settings import Settings
from biovoice.core.logger import ROOT_LOGGER, JsonFormatter, configure_logging
from biovoice.core.trace import new_trace_id, set_trace_id


@pytest.fixture()
def package_logger():
    logger = logging.getLogger(ROOT_LOGGER)
    saved, level = list(logger.handlers), logger.level
    logger.handlers.clear()
    yield logger
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved


def test_json_formatter_carries_trace_id():
    set_trace_id("abc123")
    record = logging.LogRecord("biovoice.runtime", logging.WARNING, __file__, 1, "Statut %s", ("error",), None)
    entry = json.loads(JsonFormatter().format(record))
    assert entry["level"] == "WARNING"
    assert entry["category"] == "biovoice.runtime"
    assert entry["message"] == "Statut error"
    assert entry["trace_id"] == "abc123"
    assert "exception" not in entry


def test_configure_logging_writes_json_lines(tmp_path, package_logger):
    logger = configure_logging(Settings(log_level="debug"), log_dir=tmp_path, console=False)
    assert configure_logging(Settings(), log_dir=tmp_path, console=False) is logger
    assert len(logger.handlers) == 1

    trace = new_trace_id()
    logging.getLogger("biovoice.services.chat").info("Session de chat ouverte.")
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "biovoice.jsonl").read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert entry["message"] == "Session de chat ouverte."
    assert entry["trace_id"] == trace
