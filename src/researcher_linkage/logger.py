from __future__ import annotations

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator

# Candidate-level context (candidate name, pipeline stage) for the current task
_CONTEXT: ContextVar[dict[str, Any]] = ContextVar("linkage_log_context", default={})


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.hostname = os.getenv("HOSTNAME", "localhost")

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
            "pid": record.process,
            "module": record.module,
        }
        log_obj.update(_CONTEXT.get())

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Candidate-level fields attached via log_extra()
        if hasattr(record, "extra_fields"):
            log_obj.update(record.extra_fields)

        return json.dumps(log_obj)


def configure_logging(level: str | None = None, json_output: bool = False) -> None:
    """Configure logging with optional JSON output for production."""
    lvl_str = (level or os.getenv("LINKAGE_LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO").upper()
    lvl = getattr(logging, lvl_str, logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_output or os.getenv("LOG_FORMAT") == "json":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logging.basicConfig(level=lvl, handlers=[handler], force=True)
        return

    from rich.logging import RichHandler

    logging.basicConfig(
        level=lvl,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(
            rich_tracebacks=True,
            markup=False,
            show_time=True,
            show_level=True,
            show_path=False,
        )],
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def log_extra(**kwargs: Any) -> dict[str, Any]:
    """Helper to create extra fields for structured logging."""
    return {"extra_fields": kwargs}


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Stamp ``fields`` onto every JSON record logged inside the block.

    Nested blocks add to the outer context. Values are copied into worker
    threads started with ``asyncio.to_thread``.
    """
    token = _CONTEXT.set({**_CONTEXT.get(), **fields})
    try:
        yield
    finally:
        _CONTEXT.reset(token)
