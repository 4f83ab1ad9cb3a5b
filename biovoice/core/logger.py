"""Logging setup: JSON lines on a rotating file, plain text on stderr."""

from __future__ import annotations

import json
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from ..config.paths import logs_dir
from ..config.settings import Settings
from .trace import get_trace_id


ROOT_LOGGER = "biovoice"


class JsonFormatter(logging.Formatter):
    """Formateur qui sérialise les entrées en JSON."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "category": record.name,
            "message": record.getMessage(),
            "trace_id": getattr(record, "trace_id", None) or get_trace_id(),
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False)


class TraceIdFilter(logging.Filter):
    """Attach the current turn trace id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id() or "-"
        return True


class SizeAndTimeRotatingFileHandler(TimedRotatingFileHandler):
    """Rotation basée sur la taille et le temps."""

    def __init__(
        self,
        filename: str | Path,
        max_bytes: int = 0,
        backup_count: int = 0,
        when: str = "midnight",
        encoding: str | None = "utf-8",
    ) -> None:
        self.maxBytes = max_bytes
        super().__init__(str(filename), when=when, backupCount=backup_count, encoding=encoding, delay=True)

    def shouldRollover(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if self.maxBytes > 0:
            if self.stream is None:
                self.stream = self._open()
            size = len(f"{self.format(record)}\n".encode(self.encoding or "utf-8"))
            if self.stream.tell() + size >= self.maxBytes:
                return True
        return super().shouldRollover(record)


def configure_logging(settings: Settings, *, log_dir: Path | None = None, console: bool = True) -> logging.Logger:
    """Install handlers on the package logger (idempotent)."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(settings.log_level.upper())
    if logger.handlers:
        return logger

    target = (log_dir or logs_dir()) / "biovoice.jsonl"
    file_handler = SizeAndTimeRotatingFileHandler(
        target,
        max_bytes=settings.log_rotate_mb * 1024 * 1024,
        backup_count=settings.log_retention_days,
    )
    file_handler.setFormatter(JsonFormatter())
    logger.addHandler(file_handler)

    if console:
        stream = logging.StreamHandler()
        stream.addFilter(TraceIdFilter())
        stream.setLevel(logging.WARNING)
        stream.setFormatter(logging.Formatter("[%(levelname)s] %(name)s (%(trace_id)s): %(message)s"))
        logger.addHandler(stream)
    return logger
