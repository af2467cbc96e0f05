"""
Dissimilarity-based functional diversity indices per plot.
"""

import logging
import warnings

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from .cwm import _check_species

logger = logging.getLogger(__name__)


def gower_distance(traits: pd.DataFrame) -> pd.DataFrame:
    """
    Gower distance between species on continuous traits.

    Each trait contributes ``|x_i - x_j| / range``; the distance is the mean
    over the traits both species have a value for. Traits with zero range
    contribute 0.
    """
    values = traits.to_numpy(dtype=float)
    n_species, n_traits = values.shape
    if n_species < 2:
        return pd.DataFrame(
            np.zeros((n_species, n_species)), index=traits.index, columns=traits.index
        )

    ranges = np.nanmax(values, axis=0) - np.nanmin(values, axis=0)
    ranges[~np.isfinite(ranges) | (ranges == 0)] = 1.0

    per_trait = np.vstack(
        [pdist(values[:, [t]] / ranges[t], metric="cityblock") for t in range(n_traits)]
    )
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        condensed = np.nanmean(per_trait, axis=0)

    distance = squareform(np.nan_to_num(condensed, nan=0.0), checks=False)
    return pd.DataFrame(distance, index=traits.index, columns=traits.index)


def _relative(abundance: pd.DataFrame) -> np.ndarray:
    l_mat = abundance.to_numpy(dtype=float)
    totals = l_mat.sum(axis=1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        return l_mat / totals


def rao_quadratic_entropy(traits: pd.DataFrame, abundance: pd.DataFrame) -> pd.Series:
    """Rao's Q: expected Gower distance between two individuals drawn from a plot."""
    _check_species(traits, abundance)
    distance = gower_distance(traits).to_numpy()
    p = _relative(abundance)
    values = np.einsum("ij,jk,ik->i", p, distance, p)
    return pd.Series(values, index=abundance.index, name="rao_q")


def functional_dispersion(
    traits: pd.DataFrame, abundance: pd.DataFrame, standardize: bool = True
) -> pd.Series:
    """
    FDis: abundance-weighted mean distance of species to the plot centroid.

    Args:
        traits: Species x trait table; species with missing traits are ignored
        abundance: Plot x species table
        standardize: Z-score traits first so every trait weighs the same
    """
    _check_species(traits, abundance)
    complete = traits.notna().all(axis=1).to_numpy()
    if not complete.all():
        logger.warning(
            f"{int((~complete).sum())} species with missing traits ignored for FDis"
        )
    values = traits.to_numpy(dtype=float)[complete]
    if standardize and len(values) > 1:
        sd = values.std(axis=0, ddof=1)
        sd[sd == 0] = 1.0
        values = (values - values.mean(axis=0)) / sd

    l_mat = abundance.to_numpy(dtype=float)[:, complete]
    totals = l_mat.sum(axis=1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        p = l_mat / totals
        centroids = p @ values
    result = np.full(l_mat.shape[0], np.nan)
    for i, row in enumerate(p):
        if not np.isfinite(centroids[i]).all():
            continue
        spread = np.sqrt(((values - centroids[i]) ** 2).sum(axis=1))
        result[i] = float((row * spread).sum())
    return pd.Series(result, index=abundance.index, name="fdis")


def species_richness(abundance: pd.DataFrame) -> pd.Series:
    """Number of species with positive abundance in each plot."""
    return (abundance > 0).sum(axis=1).rename("richness")


def functional_diversity_table(
    traits: pd.DataFrame, abundance: pd.DataFrame
) -> pd.DataFrame:
    """Richness, FDis and Rao's Q side by side, one row per plot."""
    table = pd.concat(
        [
            species_richness(abundance),
            functional_dispersion(traits, abundance),
            rao_quadratic_entropy(traits, abundance),
        ],
        axis=1,
    )
    empty = abundance.index[abundance.sum(axis=1) == 0]
    if len(empty):
        logger.warning(
            f"{len(empty)} empty plot(s) have undefined functional diversity"
        )
    return table
