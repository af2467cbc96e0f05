"""
Entry point of the ``traitlab`` command.
"""

import logging
import os
import sys
from typing import Optional

from rich.console import Console

from traitlab.cli import create_cli
from traitlab.common.config import Config
from traitlab.common.exceptions import LoggingError, TraitlabError
from traitlab.common.utils import error_handler, setup_global_exception_handler
from traitlab.common.utils.logging_utils import setup_logging

console = Console()


def _project_logs_dir() -> Optional[str]:
    """Logs directory of an initialized project, None elsewhere."""
    home = os.environ.get("TRAITLAB_HOME") or os.getcwd()
    config_dir = os.path.join(home, "config")
    if not os.path.exists(os.path.join(config_dir, "config.yml")):
        return None
    return Config(config_dir, create_default=False).logs_path


@error_handler(log=True, raise_error=False, console_output=True)
def init_logging() -> None:
    """
    Configure the ``traitlab`` logger for a CLI run.

    Log lines go to the project logs directory when the current project is
    initialized, to ``TRAITLAB_LOGS`` (or ``./logs``) otherwise.
    """
    try:
        log_directory = _project_logs_dir()
    except TraitlabError:
        log_directory = None
    try:
        setup_logging(log_directory=log_directory, log_level=logging.INFO)
    except OSError as e:
        raise LoggingError("Failed to initialize logging", details={"error": str(e)})


def _report(error: Exception) -> None:
    if isinstance(error, TraitlabError):
        for key, value in error.details.items():
            console.print(f"  [yellow]{key}:[/yellow] {value}")
        console.print(f"[red]✗ Application error: {error}[/red]")
    else:
        console.print(f"[red]✗ An unexpected error occurred: {error}[/red]")
    if "--debug" in sys.argv:
        console.print_exception()


def main() -> None:
    """Set up logging and the exception hook, then run the CLI."""
    try:
        init_logging()
        setup_global_exception_handler()
        create_cli()()
    except Exception as e:
        _report(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
