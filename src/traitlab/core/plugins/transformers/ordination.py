"""
Ordination plugins: PCA of any table, RDA of a plot table on the environment.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field

from traitlab.core.analysis.ordination import OrdinationResult, RdaResult, pca, rda
from traitlab.core.plugins.base import PluginType, TransformerPlugin, register
from traitlab.core.plugins.models import BasePluginParams, PluginConfig

from ._selection import select_columns


class PcaParams(BasePluginParams):
    """Parameters for the PCA plugin."""

    table: str = Field(
        default="traits",
        description="Table or step result to ordinate (overridden by the step source)",
    )
    columns: Optional[List[str]] = Field(
        default=None, description="Variables to include (all numeric when empty)"
    )
    n_components: Optional[int] = Field(default=None, ge=1, description="Axes kept")
    scale: bool = Field(default=True, description="Standardise variables first")


class PcaConfig(PluginConfig):
    """Configuration for the pca plugin."""

    plugin: str = "pca"


@register("pca", PluginType.TRANSFORMER)
class PcaTransformer(TransformerPlugin):
    """Principal component analysis of a species or plot table."""

    config_model = PcaConfig
    param_model = PcaParams

    def transform(self, data, config: Dict[str, Any]) -> OrdinationResult:
        params = self.validate_config(config)
        table = data.get_frame(config.get("source") or params.table)
        table = select_columns(table, params.columns, "columns")
        return pca(table, n_components=params.n_components, scale=params.scale)


class RdaParams(BasePluginParams):
    """Parameters for the RDA plugin."""

    explanatory: Optional[List[str]] = Field(
        default=None,
        description="Environmental variables used as constraints (all when empty)",
    )
    response: Optional[List[str]] = Field(
        default=None, description="Response columns of the source (all when empty)"
    )
    n_components: int = Field(default=2, ge=1, description="Constrained axes reported")
    permutations: int = Field(default=999, ge=0, description="Permutations of the test")
    seed: Optional[int] = Field(default=None, description="Permutation seed")


class RdaConfig(PluginConfig):
    """Configuration for the rda plugin."""

    plugin: str = "rda"
    source: Optional[str] = "cwm"


@register("rda", PluginType.TRANSFORMER)
class RdaTransformer(TransformerPlugin):
    """Redundancy analysis of a plot table (CWM by default) on the environment."""

    config_model = RdaConfig
    param_model = RdaParams

    def transform(self, data, config: Dict[str, Any]) -> RdaResult:
        params = self.validate_config(config)
        response = data.get_frame(config.get("source") or "cwm")
        response = select_columns(response, params.response, "response columns")
        explanatory = select_columns(
            data.environment, params.explanatory, "environmental variables"
        )
        return rda(
            response,
            explanatory,
            n_components=params.n_components,
            permutations=params.permutations,
            seed=params.seed if params.seed is not None else data.seed,
        )
