"""
Null-model test for environmental filtering on community-weighted means.

The abundance matrix (or the trait table, depending on the null model) is
randomised ``iterations`` times, the CWM is recomputed for each randomised
community, and the observed CWM is compared with that null distribution::

    SES(p, t) = (CWM_obs(p, t) - mean_null(p, t)) / sd_null(p, t)

A plot/trait pair is flagged when ``|SES| >= 1.96``.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd

from traitlab.common.exceptions import NullModelError
from traitlab.common.progress import ProgressTracker
from .cwm import community_weighted_mean, weighted_mean_matrix
from .null_models import NULL_MODELS, NullModel

logger = logging.getLogger(__name__)

SES_THRESHOLD = 1.96
# Null SDs within this many float epsilons of the null mean scale are rounding noise
ZERO_VARIANCE_ULPS = 64


@dataclass
class NullModelResult:
    """Observed CWM and its null distribution (iterations x plots x traits)."""

    observed: pd.DataFrame
    null: np.ndarray
    model: str
    seed: Optional[int] = None
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def plots(self) -> list:
        return list(self.observed.index)

    @property
    def traits(self) -> list:
        return list(self.observed.columns)

    @property
    def iterations(self) -> int:
        return int(self.null.shape[0])

    def null_mean(self) -> pd.DataFrame:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", category=RuntimeWarning)
            values = np.nanmean(self.null, axis=0)
        return pd.DataFrame(values, index=self.observed.index, columns=self.observed.columns)

    def null_sd(self) -> pd.DataFrame:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", category=RuntimeWarning)
            values = np.nanstd(self.null, axis=0, ddof=1)
        return pd.DataFrame(values, index=self.observed.index, columns=self.observed.columns)


def _resolve_model(
    model: Union[str, NullModel], name: Optional[str] = None
) -> tuple[str, NullModel]:
    if callable(model):
        return name or getattr(model, "__name__", "custom"), model
    try:
        return model, NULL_MODELS[model]
    except KeyError:
        raise NullModelError(
            f"Unknown null model '{model}'",
            details={"available": sorted(NULL_MODELS)},
        )


def run_null_model(
    traits: pd.DataFrame,
    abundance: pd.DataFrame,
    model: Union[str, NullModel] = "independent_swap",
    iterations: int = 999,
    seed: Optional[int] = None,
    progress: Optional[ProgressTracker] = None,
    model_name: Optional[str] = None,
    **model_params,
) -> NullModelResult:
    """
    Build the null distribution of community-weighted means.

    Args:
        traits: Species x trait table (Q), aligned with ``abundance``
        abundance: Plot x species table (L)
        model: Null model name (see ``NULL_MODELS``) or callable
        iterations: Number of randomised communities
        seed: Seed of the random generator
        progress: Optional progress tracker, one tick per iteration
        model_name: Name recorded for a callable model
        **model_params: Extra keyword arguments for the null model

    Returns:
        NullModelResult holding observed CWM and the null array
    """
    if iterations < 2:
        raise NullModelError(
            "At least two iterations are needed to estimate a null variance",
            details={"iterations": iterations},
        )
    name, randomize = _resolve_model(model, model_name)
    observed = community_weighted_mean(traits, abundance)

    q = traits.to_numpy(dtype=float)
    l_mat = abundance.to_numpy(dtype=float)
    rng = np.random.default_rng(seed)
    null = np.empty((iterations, l_mat.shape[0], q.shape[1]), dtype=float)

    loop = (
        progress.iterations(f"Null model {name}", iterations)
        if progress is not None
        else range(iterations)
    )
    for i in loop:
        random_l, random_q = randomize(l_mat, q, rng, **model_params)
        null[i] = weighted_mean_matrix(random_q, random_l)

    logger.info(
        f"Null model '{name}' finished: {iterations} iterations, "
        f"{l_mat.shape[0]} plots x {q.shape[1]} traits"
    )
    return NullModelResult(
        observed=observed, null=null, model=name, seed=seed, params=dict(model_params)
    )


def _observed_rank_p(observed: np.ndarray, null: np.ndarray) -> np.ndarray:
    # Rank of the observed value among observed + null values, ties averaged
    below = np.sum(null < observed, axis=0)
    ties = np.sum(null == observed, axis=0)
    rank = 1.0 + below + 0.5 * ties
    p = rank / (null.shape[0] + 1.0)
    p[np.isnan(observed)] = np.nan
    return p


def null_is_flat(mean: np.ndarray, sd: np.ndarray) -> np.ndarray:
    """
    Cells whose null SD is zero up to floating-point rounding, or undefined.

    Relative abundances give SDs around 1e-17 for a null that is constant in
    theory; those count as zero variance.
    """
    scale = np.maximum(np.abs(np.nan_to_num(mean, nan=0.0)), 1.0)
    tolerance = np.finfo(float).eps * ZERO_VARIANCE_ULPS * scale
    with np.errstate(invalid="ignore"):
        return np.isnan(sd) | (sd <= tolerance)


def standardized_effect_size(
    result: NullModelResult, threshold: float = SES_THRESHOLD
) -> pd.DataFrame:
    """
    Per plot and trait standardized effect size of the observed CWM.

    Returns:
        Long table with columns plot, trait, observed, null_mean, null_sd,
        ses, p_rank, significant and direction. SES is NaN where the null
        variance is zero or undefined; such cells are never significant.
    """
    obs = result.observed.to_numpy(dtype=float)
    mean = result.null_mean().to_numpy(dtype=float)
    sd = result.null_sd().to_numpy(dtype=float)
    flat = null_is_flat(mean, sd)
    with np.errstate(divide="ignore", invalid="ignore"):
        ses = np.where(flat, np.nan, (obs - mean) / sd)

    zero_variance = int(np.sum(flat & ~np.isnan(sd)))
    if zero_variance:
        logger.warning(
            f"{zero_variance} plot/trait cell(s) have zero null variance; SES left undefined"
        )

    p_rank = _observed_rank_p(obs, result.null)
    significant = np.abs(np.nan_to_num(ses, nan=0.0)) >= threshold
    direction = np.where(significant, np.where(ses > 0, "higher", "lower"), "ns")

    plots = np.repeat(np.asarray(result.observed.index, dtype=object), obs.shape[1])
    traits = np.tile(np.asarray(result.observed.columns, dtype=object), obs.shape[0])
    return pd.DataFrame(
        {
            "plot": plots,
            "trait": traits,
            "observed": obs.ravel(),
            "null_mean": mean.ravel(),
            "null_sd": sd.ravel(),
            "ses": ses.ravel(),
            "p_rank": p_rank.ravel(),
            "significant": significant.ravel(),
            "direction": direction.ravel(),
        }
    )


def ses_table(result: NullModelResult, threshold: float = SES_THRESHOLD) -> pd.DataFrame:
    """Wide plots x traits table of SES values."""
    long = standardized_effect_size(result, threshold)
    wide = long.pivot(index="plot", columns="trait", values="ses")
    wide = wide.reindex(index=result.observed.index, columns=result.observed.columns)
    wide.index.name = result.observed.index.name
    wide.columns.name = None
    return wide


def summarize_ses(ses: pd.DataFrame) -> pd.DataFrame:
    """Per-trait count of plots with significantly higher or lower CWM."""
    counts = (
        ses.groupby(["trait", "direction"]).size().unstack(fill_value=0)
        if len(ses)
        else pd.DataFrame()
    )
    for column in ("higher", "lower", "ns"):
        if column not in counts.columns:
            counts[column] = 0
    counts = counts[["higher", "lower", "ns"]]
    counts["mean_ses"] = ses.groupby("trait")["ses"].mean()
    return counts
