"""
Console output helpers shared by the traitlab commands.

Each kind of message has an emoji prefix and a plain-text fallback, picked
once at import time (``TRAITLAB_USE_EMOJIS`` overrides the platform default).
"""

import os
import platform
from typing import Dict

from rich.console import Console

console = Console()

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _should_use_emojis() -> bool:
    setting = os.getenv("TRAITLAB_USE_EMOJIS", "").lower()
    if setting in _TRUE:
        return True
    if setting in _FALSE:
        return False
    return platform.system() != "Windows"


USE_EMOJIS = _should_use_emojis()

# kind -> (emoji prefix, plain prefix, style)
_KINDS = {
    "success": ("✅ ", "[✓] ", "green"),
    "error": ("❌ ", "[✗] ", "bold red"),
    "warning": ("⚠️  ", "[!] ", "yellow"),
    "info": ("ℹ️  ", "[i] ", "blue"),
    "start": ("🌱 ", "[*] ", "bold blue"),
    "duration": ("⏱️  ", "[t] ", "dim"),
    "file": ("📁 ", "[+] ", "cyan"),
}


def _emit(kind: str, message: str, icon: bool = True) -> None:
    emoji, plain, style = _KINDS[kind]
    prefix = (emoji if USE_EMOJIS else plain) if icon else ""
    console.print(f"{prefix}{message}", style=style)


def print_success(message: str, icon: bool = True) -> None:
    if message.strip():
        _emit("success", message, icon)


def print_error(message: str, icon: bool = True) -> None:
    if message.strip():
        _emit("error", message, icon)


def print_warning(message: str, icon: bool = True) -> None:
    if message.strip():
        _emit("warning", message, icon)


def print_info(message: str, icon: bool = True) -> None:
    """Info line; blank lines and lines opening with a newline get no icon."""
    _emit("info", message, icon and not message.startswith("\n") and bool(message.strip()))


def print_start(message: str) -> None:
    _emit("start", message)


def print_duration(seconds: float) -> None:
    """Elapsed time as ``12.3s`` below a minute, ``2m 5s`` above."""
    if seconds < 60:
        text = f"{seconds:.1f}s"
    else:
        text = f"{int(seconds // 60)}m {int(seconds % 60)}s"
    _emit("duration", f"Duration: {text}")


def print_files_written(files: Dict[str, str]) -> None:
    """One line per written file, as ``label: path``."""
    for label, path in files.items():
        _emit("file", f"{label}: {path}")
