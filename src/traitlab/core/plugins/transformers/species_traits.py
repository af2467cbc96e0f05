"""
Plugin aggregating individual measurements into species trait values.
"""

from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import Field

from traitlab.common.exceptions import DataTransformError
from traitlab.core.data.readers import aggregate_species_traits
from traitlab.core.plugins.base import PluginType, TransformerPlugin, register
from traitlab.core.plugins.models import BasePluginParams, PluginConfig


class SpeciesTraitsParams(BasePluginParams):
    """Parameters for the species trait aggregation."""

    traits: Optional[List[str]] = Field(
        default=None, description="Trait columns to aggregate (all numeric when empty)"
    )
    log10_traits: List[str] = Field(
        default_factory=list, description="Traits averaged on the log10 scale"
    )
    by_plot: bool = Field(
        default=False, description="Aggregate per plot and species instead of per species"
    )


class SpeciesTraitsConfig(PluginConfig):
    """Configuration for the species_traits plugin."""

    plugin: str = "species_traits"


@register("species_traits", PluginType.TRANSFORMER)
class SpeciesTraits(TransformerPlugin):
    """Mean trait value of each species (or plot x species) from individuals."""

    config_model = SpeciesTraitsConfig
    param_model = SpeciesTraitsParams

    def transform(self, data, config: Dict[str, Any]) -> pd.DataFrame:
        params = self.validate_config(config)
        tables = data.tables
        if tables.individuals is None:
            raise DataTransformError(
                "species_traits needs an individual trait table",
                details={"help": "Set data.individuals in config.yml"},
            )
        return aggregate_species_traits(
            tables.individuals,
            species_column=tables.species_column,
            traits=params.traits or [],
            log10_traits=params.log10_traits,
            plot_column=tables.plot_column if params.by_plot else None,
        )
