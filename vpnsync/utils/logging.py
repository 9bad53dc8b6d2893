"""structlog setup for the sync core.

The core is usually embedded in a dashboard process that owns logging, so
nothing here runs unless the host asks for it (``VpnSyncApp(...,
configure_logging=True)``). Loggers from ``get_logger`` work either way.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

import structlog

# One line per request from httpx would drown the settings events
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(
    debug: bool = False,
    log_dir: Optional[str] = "logs",
    log_max_bytes: int = 10_000_000,
    log_backup_count: int = 5,
    log_name: str = "vpnsync.log",
    app_name: Optional[str] = None,
) -> None:
    """Route vpnsync events to stdout and, when ``log_dir`` is set, a rotating file.

    Console rendering in debug mode, JSON lines otherwise. ``app_name`` is
    bound into every event so several embedded instances can share a sink.
    """
    log_level = logging.DEBUG if debug else logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    if app_name:
        structlog.contextvars.bind_contextvars(app=app_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(log_level)
    stdout_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(stdout_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    if log_dir is None:
        return

    try:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, log_name),
            maxBytes=log_max_bytes,
            backupCount=log_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(file_handler)
    except OSError:
        # Host without a writable log dir
        pass


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
