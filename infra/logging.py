"""
OpenTrade Centralized Logging
-----------------------------
Structured logging with request_id propagation.

Design:
- Every domain call runs inside a request context with a unique request_id
- request_id propagates through: RestRequest -> token refresh -> HTTP -> decoder
- Supports both console (Rich) and file (JSON lines) output
- Severity discipline: DEBUG=HTTP exchange and upstream debug detail,
  INFO=cache refresh, WARNING=degraded result, ERROR=failed write
- Importing this module configures nothing; applications call
  configure_logging() once

Usage:
    from infra.logging import configure_logging, get_logger, RequestContext

    configure_logging(logging.DEBUG)
    logger = get_logger("shop.views")

    with RequestContext() as request_id:
        logger.info("Rendering catalog")
"""

import contextvars
import json
import logging
import uuid
from datetime import datetime, timezone
from functools import wraps
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "opentrade"

# Context variable for request_id - thread-safe and async-safe
_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return f"req_{uuid.uuid4().hex[:12]}"


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return _request_id_var.get()


class RequestContext:
    """
    Context manager for request scoping.

    A nested context reuses the enclosing request_id unless one is given,
    so a domain call made from inside another keeps a single id.

    Usage:
        with RequestContext() as request_id:
            logger.info("Processing...")
    """

    def __init__(self, request_id: Optional[str] = None):
        self._request_id = request_id
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        current = get_request_id()
        if self._request_id is None and current is not None:
            return current
        request_id = self._request_id or generate_request_id()
        self._token = _request_id_var.set(request_id)
        return request_id

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _request_id_var.reset(self._token)
            self._token = None


def with_request_context(func: Callable) -> Callable:
    """Decorator running the wrapped call inside a RequestContext."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        with RequestContext():
            return func(*args, **kwargs)
    return wrapper


class RequestIdFilter(logging.Filter):
    """Logging filter that adds request_id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured file logging."""

    EXTRA_FIELDS = ("http_method", "path", "http_status", "elapsed_ms", "operation")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry, default=str)


def _console_handler(level: int) -> logging.Handler:
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("[%(request_id)s] %(name)s: %(message)s"))
    return handler


# Global configuration state
_logging_initialized = False
_log_file_path: Optional[Path] = None


def configure_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    console: bool = True,
    json_file: bool = False,
    force: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the OpenTrade logging system.

    Args:
        level: Logging level (default INFO)
        log_dir: Directory for the JSON log file (default: ./logs)
        console: Enable Rich console output
        json_file: Enable JSON-lines file output
        force: Replace handlers installed by an earlier call

    Returns:
        The 'opentrade' root logger
    """
    global _logging_initialized, _log_file_path

    root_logger = logging.getLogger(ROOT_LOGGER)
    if _logging_initialized and not force:
        return root_logger

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(min(level, logging.DEBUG) if json_file else level)

    request_filter = RequestIdFilter()

    if console:
        console_handler = _console_handler(level)
        console_handler.addFilter(request_filter)
        root_logger.addHandler(console_handler)

    if json_file:
        log_path = Path(log_dir) if log_dir else Path("logs")
        log_path.mkdir(parents=True, exist_ok=True)
        _log_file_path = log_path / "opentrade.log"

        file_handler = RotatingFileHandler(
            str(_log_file_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)  # File gets everything
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(request_filter)
        root_logger.addHandler(file_handler)

    _logging_initialized = True
    return root_logger


def get_log_file_path() -> Optional[Path]:
    return _log_file_path


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the OpenTrade namespace.

    Args:
        name: Logger name (prefixed with 'opentrade.' if not already)
    """
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
