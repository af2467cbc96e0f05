"""
Commands for initializing and resetting a traitlab project.
Handles configuration files and the project directory layout.
"""

import os
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from traitlab.common.config import Config
from traitlab.common.environment import Environment
from traitlab.common.exceptions import CommandError, TraitlabError
from traitlab.common.utils import error_handler
from ..utils.console import print_info, print_success, print_warning
from .base import confirm_action, display_next_steps


@click.command(name="init")
@click.argument("project_name", required=False)
@click.option(
    "--reset",
    is_flag=True,
    help="Remove outputs, snapshots and logs of an existing project.",
)
@click.option(
    "--force",
    is_flag=True,
    help="Reset without confirmation prompt (use with --reset).",
)
@error_handler(log=True, raise_error=True)
def init_environment(project_name: Optional[str], reset: bool, force: bool) -> None:
    """
    Initialize or reset a traitlab project, and display its status.

    Examples:
        traitlab init                # Initialize in TRAITLAB_HOME or the current directory
        traitlab init my-project     # Create ./my-project/ and initialize it
        traitlab init --reset        # Clear generated results

    Creates:
      - config/config.yml (data sources, outputs, simulation settings)
      - config/analysis.yml (analysis steps)
      - data/, outputs/, snapshots/, logs/ and plugins/
    """
    try:
        if project_name:
            target_path = Path.cwd() / project_name
            if target_path.exists() and not reset:
                raise CommandError(
                    command="init",
                    message=f"Directory '{project_name}' already exists",
                    details={
                        "help": "Choose another name or use --reset on the existing project"
                    },
                )
            target_path.mkdir(parents=True, exist_ok=True)
        else:
            target_path = Path(Config.get_traitlab_home())

        config_dir = str(target_path / "config")
        environment = Environment(config_dir, project_name=project_name or target_path.name)
        already_initialized = os.path.exists(environment.config_file)

        if already_initialized and reset:
            if not force and not confirm_reset():
                print_warning("Project reset cancelled by user.")
                return
            environment.reset()
            print_success("Project reset: outputs, snapshots and logs cleared.")
        elif already_initialized:
            print_info(f"Project already initialized in {target_path}")
        else:
            environment.initialize()
            print_success(f"Project initialized in {target_path}")

        display_environment_status(config_dir)
        if project_name:
            print_info("\nTo start working with your project, run:")
            print_info(f"  cd {project_name}")
        else:
            display_next_steps()

    except TraitlabError:
        raise
    except Exception as e:
        raise CommandError(
            command="init", message="Initialization failed", details={"error": str(e)}
        )


def confirm_reset() -> bool:
    """
    Ask for user confirmation before resetting the project.

    Returns:
        bool: True if the user confirms, False otherwise.
    """
    click.echo(
        click.style(
            "This will remove all generated files in outputs, snapshots and logs.",
            fg="red",
            bold=True,
        )
    )
    return confirm_action("Are you sure you want to reset?", default=False)


def display_environment_status(config_dir: str) -> None:
    """
    Print a table listing the project files and directories and whether they exist.

    Args:
        config_dir (str): Path to the configuration directory.
    """
    config = Config(config_dir, create_default=False)
    entries = {
        "config.yml": os.path.join(config_dir, "config.yml"),
        "analysis.yml": os.path.join(config_dir, "analysis.yml"),
        "data": config.resolve_path("data"),
        "outputs": config.outputs_path,
        "snapshots": config.snapshots_path,
        "logs": config.logs_path,
        "plugins": config.plugins_dir,
    }

    table = Table(title="Project status", show_header=True, header_style="bold cyan")
    table.add_column("Item", style="green")
    table.add_column("Path")
    table.add_column("Status")
    for label, path in entries.items():
        status = "[green]ok[/green]" if os.path.exists(path) else "[red]missing[/red]"
        table.add_row(label, path, status)
    Console().print(table)
