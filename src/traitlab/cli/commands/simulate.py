"""
Command writing a simulated plot x species x trait dataset.
"""

import os
from typing import Any, Dict, Optional

import click
from pydantic import ValidationError as PydanticValidationError

from traitlab.common.config import Config
from traitlab.common.exceptions import ArgumentError
from traitlab.common.utils import error_handler
from traitlab.core.simulation import (
    SimulationParams,
    simulate_community,
    write_simulated_community,
)
from ..utils.console import print_files_written, print_start, print_success


def _project_settings(home: str) -> Dict[str, Any]:
    """Simulation section of config.yml when the project is initialized."""
    config_dir = os.path.join(home, "config")
    if not os.path.exists(os.path.join(config_dir, "config.yml")):
        return {}
    return dict(Config(config_dir, create_default=False).simulation_config)


@click.command(name="simulate")
@click.option("--plots", type=int, help="Number of plots.")
@click.option("--species", type=int, help="Number of species in the pool.")
@click.option(
    "--individuals", type=int, help="Maximum individuals measured per species and plot."
)
@click.option("--seed", type=int, help="Random seed.")
@click.option(
    "--output",
    type=click.Path(file_okay=False),
    help="Output directory (default: <project>/data).",
)
@error_handler(log=True, raise_error=True)
def simulate_command(
    plots: Optional[int],
    species: Optional[int],
    individuals: Optional[int],
    seed: Optional[int],
    output: Optional[str],
) -> None:
    """
    Write a simulated dataset along temperature and rainfall gradients.

    Settings come from the simulation section of config.yml when the
    project is initialized; command-line options override them.

    Examples:
        traitlab simulate
        traitlab simulate --plots 50 --species 30 --seed 1
        traitlab simulate --output /tmp/community
    """
    home = Config.get_traitlab_home()
    settings = _project_settings(home)
    overrides = {
        "n_plots": plots,
        "n_species": species,
        "n_individuals": individuals,
        "seed": seed,
    }
    settings.update({k: v for k, v in overrides.items() if v is not None})
    try:
        params = SimulationParams(**settings)
    except PydanticValidationError as e:
        raise ArgumentError(
            argument="simulation",
            message="Invalid simulation settings",
            details={"errors": e.errors(include_url=False)},
        )

    output_dir = output or os.path.join(home, "data")
    print_start(
        f"Simulating {params.n_plots} plots and {params.n_species} species "
        f"(seed={params.seed})"
    )
    result = simulate_community(params)
    files = write_simulated_community(result, output_dir)
    print_files_written({label: str(path) for label, path in files.items()})
    print_success(
        f"Simulated {len(result.abundance)} occurrences and "
        f"{len(result.individuals)} individuals"
    )
