"""
Command running the analysis pipeline described in config/analysis.yml.
"""

import logging
import time
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.table import Table

from traitlab.common.config import Config
from traitlab.common.progress import set_progress_mode
from traitlab.common.utils import error_handler
from traitlab.core.services.analysis import AnalysisService
from traitlab.core.services.context import as_frame
from ..utils.console import print_duration, print_start, print_success


def _describe(result: Any) -> str:
    try:
        frame = as_frame(result)
    except TypeError:
        return type(result).__name__
    return f"{frame.shape[0]} x {frame.shape[1]}"


def display_results(results: Dict[str, Any], outputs_path: str) -> None:
    """Print one row per step with the type and shape of its result."""
    table = Table(title="Analysis results", show_header=True, header_style="bold cyan")
    table.add_column("Step", style="green")
    table.add_column("Result")
    table.add_column("Table")
    for name, result in results.items():
        table.add_row(name, type(result).__name__, _describe(result))
    console = Console()
    console.print(table)
    console.print(f"[dim]Tables written to {outputs_path}[/dim]")


@click.command(name="run")
@click.option(
    "--step",
    type=str,
    help="Only run this step (and the steps it reads its source from).",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show detailed processing information.",
)
@click.option(
    "--no-progress",
    is_flag=True,
    help="Log progress lines instead of drawing progress bars.",
)
@error_handler(log=True, raise_error=True)
def run_pipeline(step: Optional[str], verbose: bool, no_progress: bool) -> None:
    """
    Run the analysis pipeline of the current project.

    Steps are read from config/analysis.yml and run in order; each result
    is written under the outputs directory.

    Examples:
        traitlab run
        traitlab run --step ses_cwm
        traitlab run --verbose --no-progress
    """
    if verbose:
        logging.getLogger("traitlab").setLevel(logging.DEBUG)
    set_progress_mode(use_progress_bar=not no_progress)

    config = Config()
    service = AnalysisService(config)
    print_start(f"Running analysis{f' step {step}' if step else ''}...")
    start = time.perf_counter()
    results = service.run_analysis(step=step)
    display_results(results, config.outputs_path)
    print_success(f"{len(results)} step(s) completed")
    print_duration(time.perf_counter() - start)
