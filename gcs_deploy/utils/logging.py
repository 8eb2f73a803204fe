"""
Logging utilities for gcs-deploy.

Provides console logging (colorized through coloredlogs, or JSON when
``LOG_FORMAT=json``), a per-run identifier shared by every record of one
deployment, and a decorator that traces pipeline stage calls.

Example usage:
    >>> from gcs_deploy.utils.logging import get_logger, log_function_call
    >>>
    >>> logger = get_logger(__name__)
    >>>
    >>> @log_function_call
    >>> def discover(root: str) -> list:
    >>>     logger.info("Scanning %s", root)
    >>>     return []
"""

import functools
import json
import logging
import os
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, TypeVar, cast

import coloredlogs

F = TypeVar("F", bound=Callable[..., Any])

_run_id: ContextVar[Optional[str]] = ContextVar("run_id", default=None)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord has; anything else was passed through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


# ============================================================================
# Run ID Management
# ============================================================================

def get_run_id() -> str:
    """
    Get the current run ID, generating one on first use.

    Returns:
        Identifier shared by all log records of the current deployment
    """
    run_id = _run_id.get()
    if run_id is None:
        run_id = uuid.uuid4().hex[:12]
        _run_id.set(run_id)
    return run_id


def set_run_id(run_id: str) -> None:
    """Set the run ID for the current context."""
    _run_id.set(run_id)


def clear_run_id() -> None:
    """Clear the run ID for the current context."""
    _run_id.set(None)


# ============================================================================
# JSON Formatter
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for machine-readable deploy logs.

    Example output:
        {
            "timestamp": "2026-10-17T10:30:15.123456+00:00",
            "level": "INFO",
            "logger": "gcs_deploy.uploader.uploader",
            "message": "index.html uploaded to site/v1/index.html.",
            "run_id": "3f2a9c1b7d4e"
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": get_run_id(),
        }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, default=str)


def setup_logging(level: Optional[str] = None, enable_colors: bool = True) -> None:
    """
    Configure the root logger for a deploy run.

    Uses JSON output when the ``LOG_FORMAT`` environment variable is ``json``,
    colorized text via coloredlogs otherwise (plain text if colors are off).

    Args:
        level: Logging level name; falls back to ``LOG_LEVEL`` env var, then INFO
        enable_colors: Whether to colorize console output

    Example:
        >>> setup_logging(level="DEBUG")
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if os.getenv("LOG_FORMAT", "text").lower() == "json":
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(console_handler)
    elif enable_colors:
        coloredlogs.install(
            level=log_level,
            fmt=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            logger=root_logger,
        )
    else:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root_logger.addHandler(console_handler)

    # The storage SDK is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(max(log_level, logging.INFO))
    logging.getLogger("google").setLevel(max(log_level, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (usually the calling module's ``__name__``)."""
    return logging.getLogger(name)


def log_function_call(func: F) -> F:
    """
    Decorator that logs entry, exit and failure of a pipeline stage.

    Entry, exit and failure are all logged at DEBUG with the call's duration.
    Exceptions are re-raised unchanged; reporting them is the caller's job.

    Example:
        >>> @log_function_call
        >>> def resolve_paths(config) -> ResolvedPaths:
        >>>     ...
        >>>
        >>> # 2026-10-17 10:30:15 - gcs_deploy.paths - DEBUG - ENTER resolve_paths(...)
        >>> # 2026-10-17 10:30:15 - gcs_deploy.paths - DEBUG - EXIT resolve_paths (0.00s)
    """
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        run_id = get_run_id()
        arg_names = func.__code__.co_varnames[: func.__code__.co_argcount]
        args_repr = [f"{name}={value!r}" for name, value in zip(arg_names, args)]
        kwargs_repr = [f"{key}={value!r}" for key, value in kwargs.items()]

        logger.debug(
            f"ENTER {func.__name__}({', '.join(args_repr + kwargs_repr)})",
            extra={"function": func.__name__, "run_id": run_id, "event": "function_entry"},
        )
        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
        except Exception as error:
            duration = (datetime.now() - start_time).total_seconds()
            logger.debug(
                f"ERROR {func.__name__} raised {type(error).__name__}: {error}",
                extra={
                    "function": func.__name__,
                    "run_id": run_id,
                    "event": "function_error",
                    "duration_seconds": duration,
                },
            )
            raise

        duration = (datetime.now() - start_time).total_seconds()
        logger.debug(
            f"EXIT {func.__name__} ({duration:.2f}s)",
            extra={
                "function": func.__name__,
                "run_id": run_id,
                "event": "function_exit",
                "duration_seconds": duration,
            },
        )
        return result

    return cast(F, wrapper)
