"""Structured logging utilities."""

import json
import logging
from typing import Any, Dict, Optional

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
}


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with JSON formatting configured."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def log_batch(
    logger: logging.Logger,
    batch_id: str,
    counts: Dict[str, int],
    duration_ms: int,
) -> None:
    """Log a completed upload batch."""
    logger.info(
        "Batch processed",
        extra={
            "batch_id": batch_id,
            "stage": "batch",
            "counts": counts,
            "duration_ms": duration_ms,
        },
    )


def log_record_error(
    logger: logging.Logger,
    batch_id: str,
    index: int,
    error: str,
    phone: Optional[str] = None,
) -> None:
    """Log a record rejected during a batch."""
    extra: Dict[str, Any] = {
        "batch_id": batch_id,
        "stage": "record",
        "index": index,
        "error": error,
    }
    if phone:
        extra["phone"] = phone
    logger.warning("Record rejected", extra=extra)


def log_store_retry(
    logger: logging.Logger,
    operation: str,
    attempt: int,
    error: str,
) -> None:
    """Log a transient store failure about to be retried."""
    logger.warning(
        f"Store {operation} failed, retrying",
        extra={
            "stage": f"store_{operation}",
            "attempt": attempt,
            "error": error,
        },
    )
