"""
Community-weighted trait moments.

For plot p and trait t::

    CWM(p, t) = sum_s L(p, s) * Q(s, t) / sum_s L(p, s)

The functions work on aligned tables: the columns of L and the rows of Q
must name the same species in the same order. A plot whose total abundance
is zero has no defined weighted mean; its row is NaN.
"""

import logging

import numpy as np
import pandas as pd

from traitlab.common.exceptions import DataValidationError

logger = logging.getLogger(__name__)


def _check_species(traits: pd.DataFrame, abundance: pd.DataFrame) -> None:
    if list(abundance.columns) != list(traits.index):
        only_l = [s for s in abundance.columns if s not in traits.index]
        only_q = [s for s in traits.index if s not in abundance.columns]
        raise DataValidationError(
            "Species in the abundance columns and trait rows do not match",
            [
                {"table": "abundance", "species": list(map(str, only_l))},
                {"table": "traits", "species": list(map(str, only_q))},
            ],
        )


def weighted_mean_matrix(traits: np.ndarray, abundance: np.ndarray) -> np.ndarray:
    """
    Array form of the CWM, used inside randomisation loops.

    Args:
        traits: species x traits
        abundance: plots x species

    Returns:
        plots x traits; rows of empty plots are NaN
    """
    totals = abundance.sum(axis=1, keepdims=True)
    missing = np.isnan(traits)
    if missing.any():
        # A missing trait only poisons the plots where that species occurs
        contaminated = ((abundance > 0).astype(float) @ missing.astype(float)) > 0
        traits = np.where(missing, 0.0, traits)
    else:
        contaminated = None
    with np.errstate(divide="ignore", invalid="ignore"):
        values = (abundance @ traits) / totals
    if contaminated is not None:
        values[contaminated] = np.nan
    return values


def community_weighted_mean(
    traits: pd.DataFrame, abundance: pd.DataFrame
) -> pd.DataFrame:
    """
    Abundance-weighted mean of every trait in every plot.

    Args:
        traits: Species x trait table (Q)
        abundance: Plot x species table (L), same species as ``traits``

    Returns:
        Plot x trait table

    Raises:
        DataValidationError: If the species of L and Q differ
    """
    _check_species(traits, abundance)
    values = weighted_mean_matrix(
        traits.to_numpy(dtype=float), abundance.to_numpy(dtype=float)
    )
    cwm = pd.DataFrame(values, index=abundance.index, columns=traits.columns)

    empty = abundance.index[abundance.sum(axis=1) == 0]
    if len(empty):
        logger.warning(
            f"{len(empty)} plot(s) with zero total abundance have undefined CWM: "
            f"{', '.join(map(str, empty[:10]))}"
        )
    return cwm


def community_weighted_variance(
    traits: pd.DataFrame, abundance: pd.DataFrame
) -> pd.DataFrame:
    """Abundance-weighted variance of each trait around the plot CWM."""
    _check_species(traits, abundance)
    q = traits.to_numpy(dtype=float)
    l_mat = abundance.to_numpy(dtype=float)
    cwm = weighted_mean_matrix(q, l_mat)
    # E[x^2] - E[x]^2, clipped against rounding below zero
    second = weighted_mean_matrix(q**2, l_mat)
    values = np.clip(second - cwm**2, 0.0, None)
    return pd.DataFrame(values, index=abundance.index, columns=traits.columns)
