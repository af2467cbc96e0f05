"""
Logging set-up for traitlab: Rich console output and JSON-lines log files.

Modules log through ``logging.getLogger(__name__)``, so configuring the
``traitlab`` logger once covers the whole package. Messages emitted while a
pipeline step runs carry the step and plugin names, which end up as fields
of the JSON log lines.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from traitlab.common.exceptions import LoggingError, TraitlabError

ROOT_LOGGER = "traitlab"
STEP_FIELDS = ("step", "plugin")


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with step context and TraitlabError details."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in STEP_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        error = record.exc_info[1] if record.exc_info else None
        if error is not None:
            entry["error"] = {"type": type(error).__name__, "message": str(error)}
            if isinstance(error, TraitlabError) and error.details:
                entry["error"]["details"] = error.details

        error_details = getattr(record, "error_details", None)
        if error_details is not None:
            entry["error_details"] = error_details
        return json.dumps(entry, default=str)


def _console_handler(level: int, console_format: Optional[str]) -> logging.Handler:
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_time=True,
        show_path=False,
    )
    if console_format:
        handler.setFormatter(logging.Formatter(console_format))
    handler.setLevel(level)
    return handler


def _file_handler(log_dir: str, logger_name: str, level: int) -> logging.Handler:
    try:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path / f"{logger_name.lower()}.log", encoding="utf-8")
    except OSError as e:
        raise LoggingError(
            f"Cannot write log files in {log_dir}",
            details={"directory": log_dir, "error": str(e)},
        )
    handler.setFormatter(JsonFormatter())
    handler.setLevel(level)
    return handler


def setup_logging(
    component_name: Optional[str] = None,
    log_directory: Optional[str] = None,
    log_level: int = logging.INFO,
    enable_console: bool = True,
    enable_file: bool = True,
    console_format: Optional[str] = None,
) -> logging.Logger:
    """
    Configure a logger (``traitlab`` by default), replacing its handlers.

    Args:
        component_name: Logger to configure; also names the log file
        log_directory: Directory of the log file (``TRAITLAB_LOGS`` or ``logs``)
        log_level: Level of the logger and its handlers
        enable_console: Add a Rich handler writing to stderr
        enable_file: Add a JSON-lines file handler
        console_format: Optional format string for the console handler

    Returns:
        The configured logger

    Raises:
        LoggingError: If the log directory cannot be used
    """
    name = component_name or ROOT_LOGGER
    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if enable_console:
        logger.addHandler(_console_handler(log_level, console_format))
    if enable_file:
        log_dir = log_directory or os.getenv("TRAITLAB_LOGS", "logs")
        logger.addHandler(_file_handler(log_dir, name, log_level))
    return logger


class StepLoggerAdapter(logging.LoggerAdapter):
    """Adds the running step and plugin names to every record."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple[str, Dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def step_logger(
    logger: logging.Logger, step: str, plugin: Optional[str] = None
) -> StepLoggerAdapter:
    """Logger adapter for the messages of one pipeline step."""
    return StepLoggerAdapter(logger, {"step": step, "plugin": plugin})


def log_error(
    logger: logging.Logger,
    error: Exception,
    additional_info: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log an error with its traceback and a structured ``error_details`` record.

    Call from an ``except`` block so the traceback is attached.
    """
    info: Dict[str, Any] = {"error_type": type(error).__name__, "error_message": str(error)}
    if isinstance(error, TraitlabError):
        info["details"] = error.details
    if additional_info:
        info["additional_info"] = additional_info
    logger.error(str(error), extra={"error_details": info}, exc_info=True)
