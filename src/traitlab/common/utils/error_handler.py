"""
Error handling utilities for traitlab.

``error_handler`` wraps CLI commands and service entry points: traitlab
errors are reported (log and console) once, then re-raised unchanged;
``ValueError`` and ``OSError`` leave as a ``ProcessError``.
"""

import logging
import os
import sys
import traceback
from functools import wraps
from typing import Any, Callable, List, Optional, Tuple, Type, TypeVar

from rich.console import Console

from traitlab.common.exceptions import (
    ArgumentError,
    CLIError,
    CommandError,
    ConfigurationError,
    DataTransformError,
    DataValidationError,
    FileError,
    LoggingError,
    NullModelError,
    ProcessError,
    TraitlabError,
)

console = Console()
logger = logging.getLogger(__name__)
T = TypeVar("T")

# First matching class wins, so subclasses come before their parents
_MESSAGE_FORMATS: List[Tuple[Type[Exception], Callable[[Any], str]]] = [
    (FileError, lambda e: f"File error on {e.file_path}: {e}"),
    (ConfigurationError, lambda e: f"Configuration error ({e.config_key}): {e}"),
    (DataValidationError, lambda e: f"Data validation error: {e}"),
    (CommandError, lambda e: f"Command error ({e.command}): {e}"),
    (ArgumentError, lambda e: f"Argument error ({e.argument}): {e}"),
    (CLIError, lambda e: f"CLI error: {e}"),
    (NullModelError, lambda e: f"Null model error: {e}"),
    (ProcessError, lambda e: f"Analysis error: {e}"),
    (LoggingError, lambda e: f"Logging error: {e}"),
]

# Error attributes worth reporting next to ``details``
_CONTEXT_ATTRIBUTES = ("file_path", "config_key", "command", "argument")


def get_error_details(error: Exception) -> dict:
    """Error type, traceback, traitlab details and context attributes as one dict."""
    details = {"error_type": type(error).__name__, "traceback": traceback.format_exc()}
    if isinstance(error, TraitlabError):
        details.update(error.details)
        for attribute in _CONTEXT_ATTRIBUTES:
            if hasattr(error, attribute):
                details[attribute] = getattr(error, attribute)
    return details


def format_error_message(error: Exception) -> str:
    """One-line message naming the kind of error."""
    for error_class, formatter in _MESSAGE_FORMATS:
        if isinstance(error, error_class):
            return formatter(error)
    return f"Error ({type(error).__name__}): {error}"


def _user_message(error: Exception) -> str:
    if isinstance(error, TraitlabError):
        return error.get_user_message()
    return str(error)


def handle_error(
    error: Exception,
    log: bool = True,
    raise_error: bool = True,
    console_output: bool = True,
) -> None:
    """
    Report an error and optionally re-raise it.

    An error that crossed several decorated layers is only reported by the
    innermost one.

    Args:
        error: The exception to handle
        log: Log the error (with traceback for non-traitlab errors)
        raise_error: Re-raise after reporting
        console_output: Print the message on the console

    Raises:
        TraitlabError: The original error, or a ProcessError wrapping any
            other exception, when ``raise_error`` is set
    """
    if not getattr(error, "_handled", False):
        error._handled = True
        message = _user_message(error)
        if log:
            if isinstance(error, TraitlabError):
                logger.error("Error: %s", message)
            else:
                logger.error("Unexpected error: %s", message, exc_info=error)
        if console_output:
            # Step failures are recoverable by editing analysis.yml
            style, mark = (
                ("yellow", "⚠") if isinstance(error, DataTransformError) else ("red", "✗")
            )
            console.print(f"[{style}]{mark} {message}[/{style}]")

    if not raise_error:
        return
    if isinstance(error, TraitlabError):
        raise error
    raise ProcessError(str(error), details={"original_error": str(error)}) from error


def error_handler(
    *, log: bool = True, raise_error: bool = True, console_output: bool = True
) -> Callable:
    """
    Decorator routing traitlab errors, ``ValueError`` and ``OSError`` to ``handle_error``.

    Keyword Arguments:
        log: Log the error
        raise_error: Re-raise it; otherwise the decorated call returns None
        console_output: Print it on the console
    """

    def decorator(func: Callable[..., T]) -> Callable[..., Optional[T]]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Optional[T]:
            try:
                return func(*args, **kwargs)
            except (TraitlabError, ValueError, OSError) as e:
                handle_error(
                    e, log=log, raise_error=raise_error, console_output=console_output
                )
                return None

        return wrapper

    return decorator


def setup_global_exception_handler() -> None:
    """
    Report uncaught exceptions through ``handle_error`` instead of a traceback.

    ``TRAITLAB_DEBUG=1`` prints the standard traceback as well.
    """

    def report(exc_type: type, exc_value: BaseException, exc_traceback: Any) -> None:
        if issubclass(exc_type, KeyboardInterrupt) or os.environ.get("TRAITLAB_DEBUG") == "1":
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
        if not issubclass(exc_type, KeyboardInterrupt):
            handle_error(exc_value, log=True, raise_error=False, console_output=True)

    sys.excepthook = report
