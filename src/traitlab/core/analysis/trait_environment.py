"""
Trait-environment association through the L table: RLQ and fourth-corner.

Both methods weight plots and species by the margins of the relative
abundance table ``P = L / sum(L)``: plot weights ``r = P.sum(axis=1)``,
species weights ``c = P.sum(axis=0)``. R is standardised with the plot
weights and Q with the species weights, so the cross table

    Z = Rz' P Qz

holds the fourth-corner correlations, and its SVD gives the RLQ axes.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests

from traitlab.common.exceptions import DataValidationError
from traitlab.core.data.alignment import align_species, check_plot_alignment

logger = logging.getLogger(__name__)

P_ADJUST_METHODS = ("none", "fdr_bh", "holm", "bonferroni")
PERMUTATION_MODELS = (2, 4, 6)


@dataclass
class _Tables:
    environment: np.ndarray
    traits: np.ndarray
    p: np.ndarray
    plot_weights: np.ndarray
    species_weights: np.ndarray
    plots: pd.Index
    species: pd.Index
    variables: pd.Index
    trait_names: pd.Index


def _prepare(
    environment: pd.DataFrame, abundance: pd.DataFrame, traits: pd.DataFrame
) -> _Tables:
    traits, abundance = align_species(traits, abundance)
    check_plot_alignment(environment, abundance, "environment", "abundance")

    plots = abundance.index.intersection(environment.index, sort=False)
    abundance = abundance.loc[plots]
    environment = environment.loc[plots].select_dtypes(include="number")

    # Empty plots and absent species carry no weight
    abundance = abundance.loc[abundance.sum(axis=1) > 0]
    abundance = abundance.loc[:, abundance.sum(axis=0) > 0]
    traits = traits.loc[abundance.columns]
    environment = environment.loc[abundance.index]

    missing_env = environment.isna().any(axis=1)
    missing_traits = traits.isna().any(axis=1)
    if missing_env.any() or missing_traits.any():
        logger.warning(
            f"Dropping {int(missing_env.sum())} plot(s) and "
            f"{int(missing_traits.sum())} species with missing values"
        )
        environment = environment.loc[~missing_env]
        traits = traits.loc[~missing_traits]
        abundance = abundance.loc[environment.index, traits.index]
        abundance = abundance.loc[abundance.sum(axis=1) > 0]
        abundance = abundance.loc[:, abundance.sum(axis=0) > 0]
        environment = environment.loc[abundance.index]
        traits = traits.loc[abundance.columns]

    if abundance.shape[0] < 3 or abundance.shape[1] < 3:
        raise DataValidationError(
            "RLQ and fourth-corner need at least three occupied plots and species",
            [{"plots": abundance.shape[0], "species": abundance.shape[1]}],
        )
    if environment.shape[1] == 0 or traits.shape[1] == 0:
        raise DataValidationError(
            "No numeric environmental variables or traits to relate",
            [{"variables": environment.shape[1], "traits": traits.shape[1]}],
        )

    l_mat = abundance.to_numpy(dtype=float)
    p = l_mat / l_mat.sum()
    return _Tables(
        environment=environment.to_numpy(dtype=float),
        traits=traits.to_numpy(dtype=float),
        p=p,
        plot_weights=p.sum(axis=1),
        species_weights=p.sum(axis=0),
        plots=abundance.index,
        species=abundance.columns,
        variables=environment.columns,
        trait_names=traits.columns,
    )


def weighted_standardize(values: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Centre and scale columns to weighted mean 0 and weighted variance 1."""
    mean = weights @ values
    centred = values - mean
    sd = np.sqrt(weights @ centred**2)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(sd > 0, centred / sd, np.nan)


def _cross_table(
    environment: np.ndarray,
    traits: np.ndarray,
    p: np.ndarray,
    plot_weights: np.ndarray,
    species_weights: np.ndarray,
) -> np.ndarray:
    rz = weighted_standardize(environment, plot_weights)
    qz = weighted_standardize(traits, species_weights)
    return rz.T @ p @ qz


def _permutation_p(observed: np.ndarray, null: np.ndarray) -> np.ndarray:
    """Two-sided permutation p-value per cell of ``observed``; NaN without permutations."""
    if null.shape[0] == 0:
        return np.full(observed.shape, np.nan)
    exceed = np.sum(np.abs(null) >= np.abs(observed) - 1e-12, axis=0)
    p = (exceed + 1.0) / (null.shape[0] + 1.0)
    return np.where(np.isnan(observed), np.nan, p)


@dataclass
class RlqResult:
    """Axes of the RLQ co-inertia analysis."""

    eigenvalues: pd.Series
    environment_coefficients: pd.DataFrame
    trait_coefficients: pd.DataFrame
    plot_scores: pd.DataFrame
    species_scores: pd.DataFrame
    total_inertia: float
    test: Optional[Dict[str, float]] = None

    @property
    def explained_ratio(self) -> pd.Series:
        return (self.eigenvalues / self.total_inertia).rename("explained_ratio")

    def frame(self) -> pd.DataFrame:
        return self.plot_scores

    def tables(self) -> Dict[str, pd.DataFrame]:
        tables = {
            "axes": pd.concat([self.eigenvalues, self.explained_ratio], axis=1),
            "environment": self.environment_coefficients,
            "traits": self.trait_coefficients,
            "plots": self.plot_scores,
            "species": self.species_scores,
        }
        if self.test is not None:
            tables["test"] = pd.DataFrame([self.test])
        return tables


def rlq(
    environment: pd.DataFrame,
    abundance: pd.DataFrame,
    traits: pd.DataFrame,
    n_axes: int = 2,
) -> RlqResult:
    """
    RLQ analysis of environment (R), abundance (L) and traits (Q).

    Args:
        environment: Plots x environmental variables
        abundance: Plots x species
        traits: Species x traits
        n_axes: Number of co-inertia axes kept

    Returns:
        RlqResult with eigenvalues, variable coefficients and scores
    """
    t = _prepare(environment, abundance, traits)
    rz = weighted_standardize(t.environment, t.plot_weights)
    qz = weighted_standardize(t.traits, t.species_weights)
    cross = np.nan_to_num(rz.T @ t.p @ qz, nan=0.0)

    u, s, vt = np.linalg.svd(cross, full_matrices=False)
    eigenvalues = s**2
    total = float(eigenvalues.sum())
    k = max(1, min(int(n_axes), len(s)))
    axes = [f"RLQ{i + 1}" for i in range(k)]

    env_coef = u[:, :k]
    trait_coef = vt[:k].T
    plot_scores = np.nan_to_num(rz, nan=0.0) @ env_coef
    species_scores = np.nan_to_num(qz, nan=0.0) @ trait_coef

    first = eigenvalues[0] / total if total > 0 else 0.0
    logger.info(
        f"RLQ on {len(t.plots)} plots and {len(t.species)} species: "
        f"total inertia {total:.4f}, first axis {first:.1%}"
    )
    return RlqResult(
        eigenvalues=pd.Series(eigenvalues[:k], index=axes, name="eigenvalue"),
        environment_coefficients=pd.DataFrame(env_coef, index=t.variables, columns=axes),
        trait_coefficients=pd.DataFrame(trait_coef, index=t.trait_names, columns=axes),
        plot_scores=pd.DataFrame(plot_scores, index=t.plots, columns=axes),
        species_scores=pd.DataFrame(species_scores, index=t.species, columns=axes),
        total_inertia=total,
    )


def _permuted_cross_tables(
    t: _Tables, model: int, permutations: int, rng: np.random.Generator
) -> np.ndarray:
    """Cross tables after permuting plots (model 2) or species (model 4)."""
    null = np.empty((permutations, t.environment.shape[1], t.traits.shape[1]))
    n_plots, n_species = t.p.shape
    for i in range(permutations):
        if model == 2:
            env = t.environment[rng.permutation(n_plots)]
            null[i] = _cross_table(env, t.traits, t.p, t.plot_weights, t.species_weights)
        else:
            trt = t.traits[rng.permutation(n_species)]
            null[i] = _cross_table(t.environment, trt, t.p, t.plot_weights, t.species_weights)
    return null


def rlq_test(
    environment: pd.DataFrame,
    abundance: pd.DataFrame,
    traits: pd.DataFrame,
    permutations: int = 999,
    seed: Optional[int] = None,
) -> Dict[str, float]:
    """
    Permutation test of the RLQ total inertia.

    Model 2 permutes plots, model 4 permutes species; the combined p-value
    is the larger of the two.
    With no permutations every p-value is NaN.
    """
    t = _prepare(environment, abundance, traits)
    observed = float(
        np.nansum(_cross_table(t.environment, t.traits, t.p, t.plot_weights, t.species_weights) ** 2)
    )
    rng = np.random.default_rng(seed)
    result: Dict[str, float] = {"total_inertia": observed, "permutations": permutations}
    for model in (2, 4):
        null = _permuted_cross_tables(t, model, permutations, rng)
        inertia = np.nansum(null**2, axis=(1, 2))
        result[f"p_model{model}"] = (
            (float(np.sum(inertia >= observed - 1e-12)) + 1.0) / (permutations + 1.0)
            if permutations
            else np.nan
        )
    result["p_combined"] = float(np.fmax(result["p_model2"], result["p_model4"]))
    return result


def _adjust(p_values: np.ndarray, method: str) -> np.ndarray:
    adjusted = p_values.astype(float).copy()
    if method == "none":
        return adjusted
    finite = np.isfinite(p_values)
    if finite.any():
        adjusted[finite] = multipletests(p_values[finite], method=method)[1]
    return adjusted


def fourth_corner(
    environment: pd.DataFrame,
    abundance: pd.DataFrame,
    traits: pd.DataFrame,
    permutations: int = 999,
    model: int = 6,
    p_adjust: str = "none",
    alpha: float = 0.05,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """
    Fourth-corner correlations between every environmental variable and trait.

    The statistic is the correlation of R and Q values over all
    (plot, species) pairs weighted by P. Significance is tested by
    permuting plots (model 2), species (model 4) or both, keeping the
    larger p-value (model 6).
    Without permutations the p columns are NaN and no pair is significant.

    Args:
        environment: Plots x environmental variables
        abundance: Plots x species
        traits: Species x traits
        permutations: Number of permutations per model
        model: 2, 4 or 6
        p_adjust: Multiple-testing correction, one of none, fdr_bh, holm, bonferroni
        alpha: Significance level applied to the adjusted p-values
        seed: Seed of the permutation generator

    Returns:
        Long table with one row per (environment, trait) pair
    """
    if model not in PERMUTATION_MODELS:
        raise ValueError(f"model must be one of {PERMUTATION_MODELS}, got {model}")
    if p_adjust not in P_ADJUST_METHODS:
        raise ValueError(f"p_adjust must be one of {P_ADJUST_METHODS}, got '{p_adjust}'")

    t = _prepare(environment, abundance, traits)
    observed = _cross_table(t.environment, t.traits, t.p, t.plot_weights, t.species_weights)
    rng = np.random.default_rng(seed)

    p_model = {2: np.full(observed.shape, np.nan), 4: np.full(observed.shape, np.nan)}
    for m in (2, 4):
        if model in (m, 6):
            p_model[m] = _permutation_p(
                observed, _permuted_cross_tables(t, m, permutations, rng)
            )
    combined = np.fmax(p_model[2], p_model[4]) if model == 6 else np.full(observed.shape, np.nan)
    chosen = {2: p_model[2], 4: p_model[4], 6: combined}[model]

    flat_p = chosen.ravel()
    adjusted = _adjust(flat_p, p_adjust)
    n_env, n_traits = observed.shape
    table = pd.DataFrame(
        {
            "environment": np.repeat(np.asarray(t.variables, dtype=object), n_traits),
            "trait": np.tile(np.asarray(t.trait_names, dtype=object), n_env),
            "r": observed.ravel(),
            "p_model2": p_model[2].ravel(),
            "p_model4": p_model[4].ravel(),
            "p_combined": combined.ravel(),
            "p_value": flat_p,
            "p_adjusted": adjusted,
        }
    )
    table["significant"] = table["p_adjusted"] < alpha
    logger.info(
        f"Fourth-corner (model {model}, {permutations} permutations): "
        f"{int(table['significant'].sum())} of {len(table)} pairs significant"
    )
    return table


def fourth_corner_matrix(result: pd.DataFrame, value: str = "r") -> pd.DataFrame:
    """Environment x trait view of one column of a fourth-corner table."""
    return result.pivot(index="environment", columns="trait", values=value)
