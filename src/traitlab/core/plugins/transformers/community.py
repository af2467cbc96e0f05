"""
Plugins computing community-level trait aggregates per plot.
"""

from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import Field

from traitlab.core.analysis.cwm import (
    community_weighted_mean,
    community_weighted_variance,
)
from traitlab.core.analysis.functional_diversity import functional_diversity_table
from traitlab.core.data.alignment import align_species
from traitlab.core.plugins.base import PluginType, TransformerPlugin, register
from traitlab.core.plugins.models import BasePluginParams, PluginConfig

from ._selection import select_columns


class CommunityWeightedMeanParams(BasePluginParams):
    """Parameters for the community-weighted mean."""

    traits: Optional[List[str]] = Field(
        default=None, description="Traits to aggregate (all traits when empty)"
    )
    variance: bool = Field(
        default=False,
        description="Also report the abundance-weighted variance (columns suffixed _cwv)",
    )


class CommunityWeightedMeanConfig(PluginConfig):
    """Configuration for the community_weighted_mean plugin."""

    plugin: str = "community_weighted_mean"


@register("community_weighted_mean", PluginType.TRANSFORMER)
class CommunityWeightedMean(TransformerPlugin):
    """Abundance-weighted mean of each trait in each plot."""

    config_model = CommunityWeightedMeanConfig
    param_model = CommunityWeightedMeanParams

    def transform(self, data, config: Dict[str, Any]) -> pd.DataFrame:
        params = self.validate_config(config)
        # A species-level trait table from an earlier step may replace Q
        traits = data.get_frame(config.get("source") or "traits")
        traits = select_columns(traits, params.traits, "traits")
        traits, abundance = align_species(traits, data.abundance)

        cwm = community_weighted_mean(traits, abundance)
        if not params.variance:
            return cwm
        cwv = community_weighted_variance(traits, abundance).add_suffix("_cwv")
        return pd.concat([cwm, cwv], axis=1)


class FunctionalDiversityParams(BasePluginParams):
    """Parameters for the functional diversity indices."""

    traits: Optional[List[str]] = Field(
        default=None, description="Traits used for the distances (all traits when empty)"
    )


class FunctionalDiversityConfig(PluginConfig):
    """Configuration for the functional_diversity plugin."""

    plugin: str = "functional_diversity"


@register("functional_diversity", PluginType.TRANSFORMER)
class FunctionalDiversity(TransformerPlugin):
    """Species richness, functional dispersion and Rao's Q per plot."""

    config_model = FunctionalDiversityConfig
    param_model = FunctionalDiversityParams

    def transform(self, data, config: Dict[str, Any]) -> pd.DataFrame:
        params = self.validate_config(config)
        traits = data.get_frame(config.get("source") or "traits")
        traits = select_columns(traits, params.traits, "traits")
        traits, abundance = align_species(traits, data.abundance)
        return functional_diversity_table(traits, abundance)
