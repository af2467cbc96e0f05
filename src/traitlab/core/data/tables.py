"""
Container for the tables of one analysis run.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

import pandas as pd

from traitlab.common.exceptions import DataLoadError

from .alignment import align_species, check_plot_alignment
from .config_models import DataConfig
from .readers import (
    aggregate_species_traits,
    read_abundance,
    read_environment,
    read_individual_traits,
    read_species_traits,
)

logger = logging.getLogger(__name__)


@dataclass
class CommunityTables:
    """R, L and Q for one run, plus the individual measurements Q came from."""

    environment: pd.DataFrame
    abundance: pd.DataFrame
    traits: pd.DataFrame
    individuals: Optional[pd.DataFrame] = None
    plot_column: str = "plot_id"
    species_column: str = "species_id"
    plots_aligned: bool = field(default=True)

    @property
    def species(self) -> list:
        return list(self.abundance.columns)

    @property
    def plots(self) -> list:
        return list(self.abundance.index)


def load_community_tables(
    data_config: DataConfig, resolve: Callable[[str], str] = str
) -> CommunityTables:
    """
    Read R, L and Q as described by the data section of config.yml.

    Q is read directly when ``species_traits`` is set, otherwise averaged from
    the individual table. Species are intersected between L and Q and the
    environment is reordered on L's plots when both hold the same plots.

    Args:
        data_config: Validated data configuration
        resolve: Maps configured (possibly relative) paths to real paths
    """
    cfg = data_config
    environment = read_environment(
        resolve(cfg.environment), cfg.plot_column, cfg.environment_variables
    )
    abundance = read_abundance(
        resolve(cfg.abundance),
        cfg.plot_column,
        cfg.species_column,
        cfg.abundance_column,
        relative=cfg.relative_abundance,
    )

    individuals = None
    if cfg.species_traits:
        traits = read_species_traits(
            resolve(cfg.species_traits), cfg.species_column, cfg.traits
        )
    else:
        individuals = read_individual_traits(
            resolve(cfg.individuals), cfg.species_column, cfg.plot_column, cfg.traits
        )
        traits = aggregate_species_traits(
            individuals,
            species_column=cfg.species_column,
            traits=cfg.traits,
            log10_traits=cfg.log10_traits,
        )

    traits, abundance = align_species(traits, abundance)
    if abundance.shape[1] == 0:
        raise DataLoadError(
            "No species shared between the abundance and trait tables",
            details={
                "abundance": cfg.abundance,
                "traits": cfg.species_traits or cfg.individuals,
                "help": f"Check that both tables use the same {cfg.species_column} values",
            },
        )

    aligned = check_plot_alignment(
        environment, abundance, "environment", "abundance"
    )
    if not aligned and set(environment.index) == set(abundance.index):
        environment = environment.loc[abundance.index]
        aligned = True

    logger.info(
        f"Loaded {abundance.shape[0]} plots, {abundance.shape[1]} species, "
        f"{traits.shape[1]} traits, {environment.shape[1]} environmental variables"
    )
    return CommunityTables(
        environment=environment,
        abundance=abundance,
        traits=traits,
        individuals=individuals,
        plot_column=cfg.plot_column,
        species_column=cfg.species_column,
        plots_aligned=aligned,
    )
