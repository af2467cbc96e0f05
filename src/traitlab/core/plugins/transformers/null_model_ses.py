"""
Plugin testing community-weighted means against a null model.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import Field

from traitlab.common.exceptions import DataTransformError
from traitlab.core.analysis.cwm import community_weighted_mean
from traitlab.core.analysis.ses import (
    SES_THRESHOLD,
    NullModelResult,
    run_null_model,
    ses_table,
    standardized_effect_size,
    summarize_ses,
)
from traitlab.core.data.alignment import align_species, check_plot_alignment
from traitlab.core.data.writers import load_null_snapshot, save_null_snapshot
from traitlab.core.plugins.base import PluginType, TransformerPlugin, register
from traitlab.core.plugins.exceptions import PluginNotFoundError
from traitlab.core.plugins.models import BasePluginParams, PluginConfig
from traitlab.core.plugins.registry import PluginRegistry

from ._selection import select_columns

logger = logging.getLogger(__name__)


class NullModelSesParams(BasePluginParams):
    """Parameters for the null-model test."""

    null_model: str = Field(
        default="independent_swap", description="Registered null model plugin"
    )
    null_model_params: Dict[str, Any] = Field(
        default_factory=dict, description="Parameters passed to the null model"
    )
    iterations: int = Field(default=999, ge=2, description="Randomised communities")
    threshold: float = Field(
        default=SES_THRESHOLD, gt=0, description="|SES| above which a cell is flagged"
    )
    seed: Optional[int] = Field(
        default=None, description="Random seed (the project random_seed when empty)"
    )
    traits: Optional[List[str]] = Field(default=None, description="Traits to test")
    reuse_snapshot: bool = Field(
        default=False,
        description="Load the null distribution saved by a previous run instead of recomputing it",
    )


class NullModelSesConfig(PluginConfig):
    """Configuration for the null_model_ses plugin."""

    plugin: str = "null_model_ses"


@dataclass
class SesResult:
    """Null distribution of the CWM and the effect sizes derived from it."""

    null: NullModelResult
    effect_sizes: pd.DataFrame

    def frame(self) -> pd.DataFrame:
        return ses_table(self.null)

    def tables(self) -> Dict[str, pd.DataFrame]:
        return {
            "ses": self.effect_sizes,
            "summary": summarize_ses(self.effect_sizes),
        }


@register("null_model_ses", PluginType.TRANSFORMER)
class NullModelSes(TransformerPlugin):
    """Standardized effect size of each plot CWM under a null model."""

    config_model = NullModelSesConfig
    param_model = NullModelSesParams

    def _null_model(self, params: NullModelSesParams):
        try:
            plugin_class = PluginRegistry.get_plugin(
                params.null_model, PluginType.NULL_MODEL
            )
        except PluginNotFoundError as e:
            raise DataTransformError(
                f"Unknown null model '{params.null_model}'",
                details={"available": e.details.get("available", [])},
            )
        return plugin_class(self.context, params.null_model_params)

    def _load_snapshot(
        self,
        path,
        observed: pd.DataFrame,
        params: NullModelSesParams,
        seed: Optional[int],
    ) -> Optional[NullModelResult]:
        """
        Null distribution saved by an earlier run of this step, if it is still valid.

        The snapshot must cover the current plots and traits and come from the
        same null model, parameters, iteration count and seed; otherwise None is returned
        and the caller recomputes.
        """
        if path is None or not path.exists():
            logger.info("No snapshot to reuse, running the null model")
            return None
        result = load_null_snapshot(path)
        if not check_plot_alignment(result.plots, observed, "snapshot", "current tables"):
            logger.warning(f"Snapshot {path} covers other plots, ignoring it")
            return None
        if result.traits != [str(t) for t in observed.columns]:
            logger.warning(f"Snapshot {path} covers other traits, ignoring it")
            return None
        saved = (result.model, result.iterations, result.seed, result.params)
        wanted = (params.null_model, params.iterations, seed, params.null_model_params)
        if saved != wanted:
            logger.warning(
                f"Snapshot {path} was computed with model, iterations, seed, params = {saved}, "
                f"the step asks for {wanted}; ignoring it"
            )
            return None
        logger.info(f"Reusing null distribution from {path}")
        # Keep the labels of the current tables
        result.observed = observed
        return result

    def transform(self, data, config: Dict[str, Any]) -> SesResult:
        params = self.validate_config(config)
        traits = data.get_frame(config.get("source") or "traits")
        traits = select_columns(traits, params.traits, "traits")
        traits, abundance = align_species(traits, data.abundance)
        seed = params.seed if params.seed is not None else data.seed
        snapshot = data.snapshot_path()

        result = None
        if params.reuse_snapshot:
            result = self._load_snapshot(
                snapshot, community_weighted_mean(traits, abundance), params, seed
            )

        if result is None:
            null_model = self._null_model(params)
            result = run_null_model(
                traits,
                abundance,
                model=null_model.randomize,
                iterations=params.iterations,
                seed=seed,
                progress=data.progress,
                model_name=params.null_model,
            )
            result.params = dict(params.null_model_params)
            if snapshot is not None:
                save_null_snapshot(snapshot, result)

        return SesResult(
            null=result,
            effect_sizes=standardized_effect_size(result, params.threshold),
        )
