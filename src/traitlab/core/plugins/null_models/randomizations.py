"""
Null model plugins wrapping the community randomisation algorithms.
"""

from typing import Tuple

import numpy as np
from pydantic import Field

from traitlab.core.analysis import null_models
from traitlab.core.plugins.base import NullModelPlugin, PluginType, register
from traitlab.core.plugins.models import BasePluginParams


class IndependentSwapParams(BasePluginParams):
    """Parameters for the independent swap null model."""

    n_swaps: int = Field(
        default=1000,
        ge=1,
        description="Number of attempted 2x2 swaps per randomised community",
    )


@register("independent_swap", PluginType.NULL_MODEL)
class IndependentSwapModel(NullModelPlugin):
    """Checkerboard swaps keeping plot totals and species totals."""

    param_model = IndependentSwapParams

    def randomize(
        self, abundance: np.ndarray, traits: np.ndarray, rng: np.random.Generator
    ) -> Tuple[np.ndarray, np.ndarray]:
        return null_models.independent_swap(
            abundance, traits, rng, n_swaps=self.params.n_swaps
        )


@register("richness", PluginType.NULL_MODEL)
class RichnessModel(NullModelPlugin):
    """Shuffles abundances among species within each plot."""

    param_model = BasePluginParams

    def randomize(self, abundance, traits, rng):
        return null_models.richness(abundance, traits, rng)


@register("frequency", PluginType.NULL_MODEL)
class FrequencyModel(NullModelPlugin):
    """Shuffles abundances among plots within each species."""

    param_model = BasePluginParams

    def randomize(self, abundance, traits, rng):
        return null_models.frequency(abundance, traits, rng)


@register("taxa_labels", PluginType.NULL_MODEL)
class TaxaLabelsModel(NullModelPlugin):
    """Shuffles trait values among species, abundances untouched."""

    param_model = BasePluginParams

    def randomize(self, abundance, traits, rng):
        return null_models.taxa_labels(abundance, traits, rng)
