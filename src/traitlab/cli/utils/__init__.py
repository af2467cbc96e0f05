"""
Utility modules for the traitlab CLI.
"""

from .console import print_success, print_error, print_warning, print_info

__all__ = [
    "print_success",
    "print_error",
    "print_warning",
    "print_info",
]
