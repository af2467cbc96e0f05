"""
Base click group and shared helpers of the traitlab CLI.

``RichCLI`` prints the command list as Rich tables grouped by purpose
(project set-up, analysis) instead of Click's plain help.
"""

from importlib import metadata
from typing import Dict, List

import click
from rich import box
from rich.console import Console
from rich.table import Table

from traitlab.common.exceptions import CommandError
from traitlab.common.utils import error_handler

TRAITLAB_BANNER = """
   |   |   |   |   |
  \\|/ \\|/ \\|/ \\|/ \\|/
   |   |   |   |   |
  ------------------------
  TRAITLAB - Functional trait ecology
"""

# Commands not listed here are shown under "Other"
COMMAND_SECTIONS: Dict[str, List[str]] = {
    "Project": ["init", "simulate"],
    "Analysis": ["run", "plugins"],
}

QUICK_START = [
    ("Create a project", ["traitlab init my-project"]),
    (
        "Add data (or simulate a dataset)",
        ["traitlab simulate --plots 30 --species 20 --seed 42"],
    ),
    (
        "Run the analysis pipeline (config/analysis.yml)",
        [
            "traitlab run                # All steps",
            "traitlab run --step cwm_rda # One step and its sources",
        ],
    ),
]


def get_version() -> str:
    """Installed package version, or the source tree version when not installed."""
    try:
        return metadata.version("traitlab")
    except metadata.PackageNotFoundError:
        from traitlab import __version__

        return __version__


VERSION = get_version()


def _summary(command: click.Command) -> str:
    doc = command.callback.__doc__ if command.callback else None
    return doc.strip().splitlines()[0] if doc else "No description"


class RichCLI(click.Group):
    """Click group listing commands in registration order, with Rich help."""

    def list_commands(self, ctx: click.Context) -> List[str]:
        return list(self.commands)

    def _sections(self, ctx: click.Context) -> Dict[str, List[str]]:
        names = self.list_commands(ctx)
        sections = {
            title: [n for n in members if n in names]
            for title, members in COMMAND_SECTIONS.items()
        }
        listed = {n for members in sections.values() for n in members}
        sections["Other"] = [n for n in names if n not in listed]
        return {title: members for title, members in sections.items() if members}

    @error_handler(log=True)
    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Print the banner, usage, command tables and the quick start."""
        console = Console()
        console.print(TRAITLAB_BANNER, style="green")
        console.print(
            f"[bold]traitlab CLI, version {VERSION}[/bold]\n\n"
            "[bold yellow]Usage:[/bold yellow] traitlab [OPTIONS] COMMAND [ARGS]...\n\n"
            "Functional-trait analysis of plant communities: community-weighted\n"
            "means, null-model tests, ordination and trait-environment links.\n\n"
            "[bold yellow]Options:[/bold yellow]\n"
            "  --help  [dim]Show this message and exit.[/dim]"
        )
        for title, names in self._sections(ctx).items():
            table = Table(show_header=True, header_style="bold cyan", box=box.SIMPLE)
            table.add_column("Command", style="green")
            table.add_column("Description")
            for name in names:
                command = self.get_command(ctx, name)
                if command is not None:
                    table.add_row(name, _summary(command))
            console.print(f"\n[bold yellow]{title} commands[/bold yellow]")
            console.print(table)
        display_next_steps()


@error_handler(log=True)
def display_next_steps() -> None:
    """Print the quick start shown after the help and after ``init``."""
    console = Console()
    console.print("\n[bold yellow]Quick Start:[/bold yellow]\n")
    for i, (title, commands) in enumerate(QUICK_START, 1):
        console.print(f"[bold cyan]{i}. {title}[/bold cyan]")
        for command in commands:
            console.print(f"[green]   $ {command}[/green]")
    console.print("\n[dim]Run 'traitlab <command> --help' for detailed usage[/dim]")


@error_handler(log=True, raise_error=True)
def confirm_action(question: str, default: bool = False) -> bool:
    """
    Ask the user a yes/no question.

    Raises:
        CommandError: If the prompt is aborted (Ctrl-C, closed input)
    """
    try:
        return click.confirm(question, default=default)
    except click.Abort:
        raise CommandError(
            command="confirm_action",
            message="User aborted the action",
            details={"question": question},
        )
