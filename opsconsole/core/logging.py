"""Structured logging setup shared by the web app, the CLI and the arq worker."""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from opsconsole.config import get_config

# Per-request lines from the platform HTTP clients drown out job progress
QUIET_LOGGERS = ("httpx", "httpcore", "arq.jobs")

_configured = False


def configure_logging(force: bool = False) -> None:
    """Configure structlog over stdlib logging from LOG_LEVEL and LOG_FORMAT.

    LOG_FORMAT=json selects the JSON renderer (one event per line), anything
    else the console renderer. Calling again is a no-op unless ``force``.
    """
    global _configured
    if _configured and not force:
        return

    config = get_config()

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.log_format.lower() == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    # Detection runs are also kept on disk when a logs/ directory exists
    log_file = Path("logs/opsconsole.log")
    if log_file.parent.is_dir():
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        format="%(message)s",
        handlers=handlers,
        level=config.log_level.upper(),
        force=force,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
