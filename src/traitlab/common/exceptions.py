"""
Exception hierarchy of traitlab.

Every error carries a ``details`` dict that ends up in the JSON log lines.
``get_user_message`` is what the CLI prints.
"""

import difflib
from typing import Any, Dict, List, Optional


class TraitlabError(Exception):
    """Base class of traitlab errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}

    def get_user_message(self) -> str:
        return str(self)


def _available_hint(details: Dict[str, Any]) -> str:
    """``Available: ...`` line, plus a close match of ``requested`` when there is one."""
    available = [str(name) for name in details["available"]]
    hint = f"\nAvailable: {', '.join(available)}"
    requested = details.get("requested")
    if requested:
        matches = difflib.get_close_matches(str(requested), available, n=1)
        if matches:
            hint += f"\nDid you mean '{matches[0]}'?"
    return hint


class ConfigurationError(TraitlabError):
    """Invalid or missing configuration; ``config_key`` names the offending entry."""

    def __init__(self, config_key: str, message: str, details: Optional[dict] = None):
        super().__init__(message, details)
        self.config_key = config_key

    def get_user_message(self) -> str:
        message = f"{self} (configuration key: {self.config_key})"
        if "help" in self.details:
            return f"{message}\n{self.details['help']}"
        if "available" in self.details:
            return message + _available_hint(self.details)
        return message


class EnvironmentSetupError(TraitlabError):
    """Project home or directories cannot be used."""


class LoggingError(TraitlabError):
    pass


class CLIError(TraitlabError):
    """Base class of command line errors."""


class CommandError(CLIError):
    def __init__(self, command: str, message: str, details: Optional[dict] = None):
        super().__init__(message, details)
        self.command = command


class ArgumentError(CLIError):
    def __init__(self, argument: str, message: str, details: Optional[dict] = None):
        super().__init__(message, details)
        self.argument = argument


class DataValidationError(TraitlabError):
    """A community table has the wrong shape or content; one dict per problem."""

    def __init__(self, message: str, validation_errors: List[Dict[str, Any]]):
        super().__init__(message, {"validation_errors": validation_errors})
        self.validation_errors = validation_errors


class DataLoadError(TraitlabError):
    """Community tables cannot be read or aligned."""


class FileError(TraitlabError):
    """Base class of file errors; ``file_path`` is the file involved."""

    def __init__(self, file_path: str, message: str, details: Optional[dict] = None):
        super().__init__(message, details)
        self.file_path = file_path


class FileReadError(FileError):
    pass


class FileWriteError(FileError):
    pass


class FileFormatError(FileError):
    """The file exists but cannot be parsed."""


class SnapshotError(FileError):
    """A randomisation snapshot cannot be saved or restored."""


class ProcessError(TraitlabError):
    """An analysis step failed; ``step`` and ``error`` details are shown to the user."""

    def get_user_message(self) -> str:
        message = str(self)
        if "step" in self.details:
            message += f"\nStep: {self.details['step']}"
        cause = self.details.get("error")
        if isinstance(cause, str):
            message += f"\nCause: {cause}"
        return message


class DataTransformError(ProcessError):
    """A plugin cannot transform its input."""


class NullModelError(ProcessError):
    """A randomisation cannot be carried out."""
