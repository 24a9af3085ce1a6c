"""
observability/logger.py — CodeScout Structured Logging

structlog routed through stdlib logging:
  - JSON lines to a rotating file under log_dir
  - optional console output (JSON, or coloured key=value in dev mode)
  - session_id bound through contextvars, so every line emitted while a
    search session runs carries it without being passed around

Usage:
    from observability.logger import get_logger, setup_logging

    setup_logging(level="DEBUG", json_format=False)
    log = get_logger(__name__)
    log.info("search_loop.round_start", round=1, files=0)
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog

_LOG_FILE_NAME = "codescout.log"


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path = "./data/logs",
    json_format: bool = True,
    console_output: bool = True,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure structlog and stdlib logging. Call once, at startup.

    Args:
        level:          DEBUG | INFO | WARNING | ERROR | CRITICAL
        log_dir:        Directory for the rotating log file.
        json_format:    JSON on the console too; False gives coloured dev output.
        console_output: Emit to stdout at all.
        max_bytes:      Rotate the file after this many bytes.
        backup_count:   Rotated files to keep.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            filename=log_dir / _LOG_FILE_NAME,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    ]
    if console_output:
        handlers.append(logging.StreamHandler(sys.stdout))

    logging.basicConfig(format="%(message)s", level=numeric_level, handlers=handlers, force=True)

    shared = _shared_processors()
    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=shared,
    )
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)


def get_logger(name: str = "codescout", **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """
    Return a structlog logger, optionally with permanently bound values.

    Example:
        log = get_logger(__name__, component="repository")
        log.debug("repository.keyword", query="generate_report", tags=2)
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


def bind_session(session_id: str, **extra: Any) -> None:
    """
    Attach session_id (and any extra fields) to every log line emitted in
    the current asyncio task and the tasks it spawns.
    """
    structlog.contextvars.bind_contextvars(session_id=session_id, **extra)


def clear_session() -> None:
    structlog.contextvars.clear_contextvars()
