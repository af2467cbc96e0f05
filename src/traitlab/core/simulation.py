"""
Synthetic plot x species x trait dataset along two environmental gradients.

Species respond to temperature and rainfall seasonality with Gaussian
niche curves, so their cover tracks the environment; their mean height is
tied to the temperature optimum and their SLA to the rainfall optimum,
which makes community trait means respond to the gradients. Seed mass is
drawn independently of the niches and serves as a trait with no signal.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from traitlab.core.data.writers import write_table

logger = logging.getLogger(__name__)

TEMPERATURE_RANGE = (5.0, 25.0)
SEASONALITY_RANGE = (20.0, 120.0)


class SimulationParams(BaseModel):
    """Parameters of the synthetic community."""

    model_config = ConfigDict(extra="forbid")

    n_plots: int = Field(default=30, ge=2, description="Number of plots")
    n_species: int = Field(default=20, ge=2, description="Size of the species pool")
    n_individuals: int = Field(
        default=5, ge=1, description="Maximum individuals measured per species and plot"
    )
    max_abundance: float = Field(
        default=50.0, gt=0, description="Expected cover at a species' optimum"
    )
    niche_breadth: float = Field(
        default=0.25, gt=0, description="Niche width as a fraction of the gradient range"
    )
    intraspecific_cv: float = Field(
        default=0.15, ge=0, description="Coefficient of variation among individuals"
    )
    seed: Optional[int] = Field(default=None, description="Random seed")


@dataclass
class SimulatedCommunity:
    """Tables of one simulated dataset."""

    environment: pd.DataFrame
    abundance: pd.DataFrame
    individuals: pd.DataFrame
    species: pd.DataFrame
    params: SimulationParams


def _ids(prefix: str, n: int) -> list:
    width = max(2, len(str(n)))
    return [f"{prefix}{i + 1:0{width}d}" for i in range(n)]


def _gaussian_response(values: np.ndarray, optima: np.ndarray, width: float) -> np.ndarray:
    return np.exp(-((values[:, None] - optima[None, :]) ** 2) / (2.0 * width**2))


def _scaled(values: np.ndarray, bounds: tuple) -> np.ndarray:
    low, high = bounds
    return (values - low) / (high - low)


def simulate_community(params: Optional[SimulationParams] = None) -> SimulatedCommunity:
    """
    Draw a synthetic dataset.

    Args:
        params: Simulation parameters (defaults when None)

    Returns:
        SimulatedCommunity with environment, long abundance, individual
        traits and the species truth table
    """
    params = params or SimulationParams()
    rng = np.random.default_rng(params.seed)
    plots = _ids("plot", params.n_plots)
    species = _ids("sp", params.n_species)

    temperature = rng.uniform(*TEMPERATURE_RANGE, size=params.n_plots)
    seasonality = rng.uniform(*SEASONALITY_RANGE, size=params.n_plots)
    environment = pd.DataFrame(
        {
            "plot_id": plots,
            "temperature": temperature.round(2),
            "rainfall_seasonality": seasonality.round(1),
        }
    )

    opt_temperature = rng.uniform(*TEMPERATURE_RANGE, size=params.n_species)
    opt_seasonality = rng.uniform(*SEASONALITY_RANGE, size=params.n_species)
    width_t = params.niche_breadth * (TEMPERATURE_RANGE[1] - TEMPERATURE_RANGE[0])
    width_s = params.niche_breadth * (SEASONALITY_RANGE[1] - SEASONALITY_RANGE[0])

    expected = (
        params.max_abundance
        * _gaussian_response(temperature, opt_temperature, width_t)
        * _gaussian_response(seasonality, opt_seasonality, width_s)
    )
    cover = rng.poisson(expected).astype(float)

    # Warm-adapted species are taller, species of seasonal sites have higher SLA
    height_mean = 10 ** (
        0.3 + 1.2 * _scaled(opt_temperature, TEMPERATURE_RANGE)
        + rng.normal(0.0, 0.1, params.n_species)
    )
    sla_mean = np.clip(
        8.0
        + 22.0 * _scaled(opt_seasonality, SEASONALITY_RANGE)
        + rng.normal(0.0, 1.5, params.n_species),
        2.0,
        None,
    )
    seed_mass_mean = 10 ** rng.normal(0.0, 0.6, params.n_species)

    species_table = pd.DataFrame(
        {
            "species_id": species,
            "temperature_optimum": opt_temperature.round(2),
            "seasonality_optimum": opt_seasonality.round(1),
            "plant_height": height_mean,
            "sla": sla_mean,
            "seed_mass": seed_mass_mean,
        }
    )

    plot_idx, species_idx = np.nonzero(cover > 0)
    abundance = pd.DataFrame(
        {
            "plot_id": np.asarray(plots, dtype=object)[plot_idx],
            "species_id": np.asarray(species, dtype=object)[species_idx],
            "cover": cover[plot_idx, species_idx],
        }
    )

    sigma = np.sqrt(np.log1p(params.intraspecific_cv**2))
    rows = []
    for i, j in zip(plot_idx, species_idx):
        n = int(rng.integers(1, params.n_individuals + 1))
        noise = rng.normal(-(sigma**2) / 2.0, sigma, size=(n, 3))
        values = np.array([height_mean[j], sla_mean[j], seed_mass_mean[j]]) * np.exp(noise)
        for measured in values:
            rows.append((plots[i], species[j], *measured))
    individuals = pd.DataFrame(
        rows, columns=["plot_id", "species_id", "plant_height", "sla", "seed_mass"]
    )
    individuals.insert(0, "individual_id", _ids("ind", len(individuals)))

    logger.info(
        f"Simulated {params.n_plots} plots, {params.n_species} species, "
        f"{len(abundance)} occurrences and {len(individuals)} individuals"
    )
    return SimulatedCommunity(
        environment=environment,
        abundance=abundance,
        individuals=individuals,
        species=species_table,
        params=params,
    )


def write_simulated_community(
    result: SimulatedCommunity, output_dir: Union[str, Path]
) -> Dict[str, Path]:
    """Write the simulated tables as CSV files and return their paths."""
    output_dir = Path(output_dir)
    files = {
        "environment": output_dir / "environment.csv",
        "abundance": output_dir / "abundance.csv",
        "individuals": output_dir / "individual_traits.csv",
        "species": output_dir / "species.csv",
    }
    write_table(result.environment, files["environment"], index=False)
    write_table(result.abundance, files["abundance"], index=False)
    write_table(result.individuals, files["individuals"], index=False)
    write_table(result.species, files["species"], index=False)
    return files
