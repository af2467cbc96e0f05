"""
Command modules for the traitlab CLI.

This module defines and registers the commands of the traitlab
command-line interface: project initialization, dataset simulation,
running the analysis pipeline and listing plugins.
"""

import click

from .base import RichCLI
from .initialize import init_environment
from .plugins import plugins
from .run import run_pipeline
from .simulate import simulate_command


def create_cli() -> click.Group:
    """Create and configure the main CLI group with all commands.

    Registered commands:
        - `init`: Initializes or resets a project.
        - `simulate`: Writes a simulated dataset.
        - `run`: Runs the analysis pipeline.
        - `plugins`: Lists available plugins.

    Returns:
        click.Group: The root command group for the traitlab CLI.
    """

    @click.group(cls=RichCLI)
    def cli():
        """Command line interface for traitlab."""
        pass

    cli.add_command(init_environment, name="init")
    cli.add_command(simulate_command)
    cli.add_command(run_pipeline)
    cli.add_command(plugins)

    return cli
