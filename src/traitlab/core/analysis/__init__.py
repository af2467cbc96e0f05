"""
Numerical core: trait aggregates, null models, ordination and
trait-environment association.
"""

from .cwm import community_weighted_mean, community_weighted_variance
from .functional_diversity import (
    functional_diversity_table,
    functional_dispersion,
    gower_distance,
    rao_quadratic_entropy,
    species_richness,
)
from .null_models import NULL_MODELS
from .ordination import OrdinationResult, RdaResult, pca, rda
from .ses import (
    NullModelResult,
    run_null_model,
    ses_table,
    standardized_effect_size,
    summarize_ses,
)
from .trait_environment import RlqResult, fourth_corner, rlq, rlq_test

__all__ = [
    "community_weighted_mean",
    "community_weighted_variance",
    "functional_diversity_table",
    "functional_dispersion",
    "gower_distance",
    "rao_quadratic_entropy",
    "species_richness",
    "NULL_MODELS",
    "OrdinationResult",
    "RdaResult",
    "pca",
    "rda",
    "NullModelResult",
    "run_null_model",
    "ses_table",
    "standardized_effect_size",
    "summarize_ses",
    "RlqResult",
    "fourth_corner",
    "rlq",
    "rlq_test",
]
