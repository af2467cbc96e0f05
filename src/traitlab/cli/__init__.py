"""
Main CLI package for traitlab.
"""

import os
import sys

from .commands import create_cli

# Errors are already reported by error_handler; set TRAITLAB_DEBUG=1 for tracebacks
if os.environ.get("TRAITLAB_DEBUG") != "1":

    def _clean_exception_hook(exc_type, exc_value, exc_traceback):
        """Suppress the default traceback output, except for KeyboardInterrupt."""
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)

    sys.excepthook = _clean_exception_hook

cli = create_cli()

__all__ = ["cli", "create_cli"]
