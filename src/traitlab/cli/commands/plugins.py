"""Plugin listing command for traitlab CLI."""

from collections import Counter
from pathlib import Path
from typing import Optional

import click
from rich.table import Table

from traitlab.common.config import Config
from traitlab.common.exceptions import TraitlabError
from traitlab.core.plugins.base import PluginType
from traitlab.core.plugins.plugin_loader import PluginLoader
from ..utils.console import console


@click.command()
@click.option(
    "--type",
    "-t",
    "plugin_type",
    type=click.Choice([t.value for t in PluginType], case_sensitive=False),
    help="Filter plugins by type",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show the module defining each plugin",
)
def plugins(plugin_type: Optional[str], verbose: bool) -> None:
    """List all available plugins.

    Examples:
        traitlab plugins
        traitlab plugins --type null_model
        traitlab plugins --verbose
    """
    try:
        loader = PluginLoader()
        loader.load_plugins(_project_plugins_dir())

        details = loader.get_plugin_details()
        if plugin_type:
            details = [d for d in details if d["type"] == plugin_type.lower()]

        if not details:
            suffix = f" of type {plugin_type}" if plugin_type else ""
            console.print(f"[yellow]No plugins found{suffix}[/yellow]")
            return

        table = Table(title="Available traitlab plugins", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Type", style="magenta")
        table.add_column("Description", style="white")
        if verbose:
            table.add_column("Module", style="dim")
        for detail in details:
            row = [detail["name"], detail["type"], detail["description"]]
            if verbose:
                row.append(detail["module"])
            table.add_row(*row)
        console.print(table)

        by_type = Counter(detail["type"] for detail in details)
        console.print(f"\n[dim]Total: {len(details)} plugins")
        console.print(
            "[dim]By type: "
            + ", ".join(f"{t}: {c}" for t, c in by_type.items())
            + "[/dim]"
        )

    except TraitlabError as e:
        console.print(f"[red]Error listing plugins: {e}[/red]")
        raise click.ClickException(str(e))


def _project_plugins_dir() -> Optional[Path]:
    """Plugins directory of the current project, if it is initialized."""
    home = Path(Config.get_traitlab_home())
    if not (home / "config" / "config.yml").exists():
        return None
    return Path(Config(str(home / "config"), create_default=False).plugins_dir)
