"""
Plugins linking traits to the environment through abundances (RLQ, fourth-corner).
"""

from typing import Any, Dict, List, Literal, Optional

import pandas as pd
from pydantic import Field

from traitlab.core.analysis.trait_environment import (
    RlqResult,
    fourth_corner,
    rlq,
    rlq_test,
)
from traitlab.core.plugins.base import PluginType, TransformerPlugin, register
from traitlab.core.plugins.models import BasePluginParams, PluginConfig

from ._selection import select_columns


class TraitEnvironmentParams(BasePluginParams):
    """Variables shared by RLQ and fourth-corner."""

    environment: Optional[List[str]] = Field(
        default=None, description="Environmental variables (all when empty)"
    )
    traits: Optional[List[str]] = Field(default=None, description="Traits (all when empty)")
    permutations: int = Field(default=999, ge=0, description="Permutations per model")
    seed: Optional[int] = Field(default=None, description="Permutation seed")


class RlqParams(TraitEnvironmentParams):
    """Parameters for the RLQ plugin."""

    n_axes: int = Field(default=2, ge=1, description="Co-inertia axes kept")


class RlqConfig(PluginConfig):
    """Configuration for the rlq plugin."""

    plugin: str = "rlq"


def _inputs(data, config: Dict[str, Any], params: TraitEnvironmentParams):
    environment = select_columns(data.environment, params.environment, "environmental variables")
    traits = data.get_frame(config.get("source") or "traits")
    traits = select_columns(traits, params.traits, "traits")
    return environment, data.abundance, traits


@register("rlq", PluginType.TRANSFORMER)
class RlqTransformer(TransformerPlugin):
    """RLQ co-inertia of environment and traits, with its permutation test."""

    config_model = RlqConfig
    param_model = RlqParams

    def transform(self, data, config: Dict[str, Any]) -> RlqResult:
        params = self.validate_config(config)
        environment, abundance, traits = _inputs(data, config, params)
        result = rlq(environment, abundance, traits, n_axes=params.n_axes)
        if params.permutations > 0:
            result.test = rlq_test(
                environment,
                abundance,
                traits,
                permutations=params.permutations,
                seed=params.seed if params.seed is not None else data.seed,
            )
        return result


class FourthCornerParams(TraitEnvironmentParams):
    """Parameters for the fourth-corner plugin."""

    model: Literal[2, 4, 6] = Field(
        default=6, description="2 permutes plots, 4 permutes species, 6 keeps the larger p"
    )
    p_adjust: Literal["none", "fdr_bh", "holm", "bonferroni"] = Field(
        default="none", description="Multiple-testing correction"
    )
    alpha: float = Field(default=0.05, gt=0, lt=1, description="Significance level")


class FourthCornerConfig(PluginConfig):
    """Configuration for the fourth_corner plugin."""

    plugin: str = "fourth_corner"


@register("fourth_corner", PluginType.TRANSFORMER)
class FourthCornerTransformer(TransformerPlugin):
    """Fourth-corner correlation of every environment x trait pair."""

    config_model = FourthCornerConfig
    param_model = FourthCornerParams

    def transform(self, data, config: Dict[str, Any]) -> pd.DataFrame:
        params = self.validate_config(config)
        environment, abundance, traits = _inputs(data, config, params)
        return fourth_corner(
            environment,
            abundance,
            traits,
            permutations=params.permutations,
            model=params.model,
            p_adjust=params.p_adjust,
            alpha=params.alpha,
            seed=params.seed if params.seed is not None else data.seed,
        )
