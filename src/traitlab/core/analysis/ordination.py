"""
Unconstrained (PCA) and constrained (RDA) ordination of plot tables.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from traitlab.common.exceptions import DataValidationError
from traitlab.core.data.alignment import check_plot_alignment

logger = logging.getLogger(__name__)


def _axis_names(k: int, prefix: str) -> list:
    return [f"{prefix}{i + 1}" for i in range(k)]


def _complete_rows(table: pd.DataFrame, label: str) -> pd.DataFrame:
    numeric = table.select_dtypes(include="number")
    complete = numeric.dropna()
    dropped = len(numeric) - len(complete)
    if dropped:
        logger.warning(f"{dropped} row(s) with missing values dropped from {label}")
    if complete.shape[0] < 2 or complete.shape[1] < 1:
        raise DataValidationError(
            f"Not enough complete data for ordination of {label}",
            [{"rows": complete.shape[0], "columns": complete.shape[1]}],
        )
    return complete


@dataclass
class OrdinationResult:
    """Scores, loadings and eigenvalues of a PCA."""

    scores: pd.DataFrame
    loadings: pd.DataFrame
    eigenvalues: pd.Series
    explained_ratio: pd.Series

    def frame(self) -> pd.DataFrame:
        return self.scores

    def tables(self) -> Dict[str, pd.DataFrame]:
        summary = pd.DataFrame(
            {"eigenvalue": self.eigenvalues, "explained_ratio": self.explained_ratio}
        )
        return {"scores": self.scores, "loadings": self.loadings, "axes": summary}


def pca(
    table: pd.DataFrame, n_components: Optional[int] = None, scale: bool = True
) -> OrdinationResult:
    """
    Principal component analysis of a samples x variables table.

    Args:
        table: Rows are observations (species or plots), columns variables
        n_components: Number of axes to keep (all when None)
        scale: Standardise variables to unit variance before the PCA

    Returns:
        OrdinationResult with row scores and variable loadings
    """
    data = _complete_rows(table, "PCA input")
    values = StandardScaler(with_std=scale).fit_transform(data.to_numpy(dtype=float))

    k_max = min(values.shape)
    k = k_max if n_components is None else max(1, min(int(n_components), k_max))
    model = PCA(n_components=k)
    scores = model.fit_transform(values)

    axes = _axis_names(k, "PC")
    return OrdinationResult(
        scores=pd.DataFrame(scores, index=data.index, columns=axes),
        loadings=pd.DataFrame(model.components_.T, index=data.columns, columns=axes),
        eigenvalues=pd.Series(model.explained_variance_, index=axes, name="eigenvalue"),
        explained_ratio=pd.Series(
            model.explained_variance_ratio_, index=axes, name="explained_ratio"
        ),
    )


@dataclass
class RdaResult:
    """Redundancy analysis of a response table on explanatory variables."""

    site_scores: pd.DataFrame
    response_loadings: pd.DataFrame
    biplot: pd.DataFrame
    eigenvalues: pd.Series
    r2: float
    r2_adjusted: float
    f_statistic: float
    p_value: float
    permutations: int
    statistics: Dict[str, float] = field(default_factory=dict)

    def frame(self) -> pd.DataFrame:
        return self.site_scores

    def tables(self) -> Dict[str, pd.DataFrame]:
        test = pd.DataFrame(
            [
                {
                    "r2": self.r2,
                    "r2_adjusted": self.r2_adjusted,
                    "f": self.f_statistic,
                    "p_value": self.p_value,
                    "permutations": self.permutations,
                }
            ]
        )
        return {
            "sites": self.site_scores,
            "loadings": self.response_loadings,
            "biplot": self.biplot,
            "axes": self.eigenvalues.to_frame(),
            "test": test,
        }


def _fitted(y: np.ndarray, x: np.ndarray, x_pinv: np.ndarray) -> np.ndarray:
    return x @ (x_pinv @ y)


def _f_statistic(constrained: float, total: float, df1: int, df2: int) -> float:
    residual = total - constrained
    if df2 <= 0 or residual <= 0:
        return np.nan
    return (constrained / df1) / (residual / df2)


def rda(
    response: pd.DataFrame,
    explanatory: pd.DataFrame,
    n_components: int = 2,
    permutations: int = 999,
    seed: Optional[int] = None,
) -> RdaResult:
    """
    Redundancy analysis with a global permutation test.

    Both tables are standardised. Fitted values of the multivariate
    regression of the response on the explanatory variables are ordinated
    by PCA. The F statistic of the constrained inertia is compared with
    the statistics obtained after permuting the response rows::

        p = (#{F_perm >= F_obs} + 1) / (permutations + 1)

    Args:
        response: Plots x response variables (e.g. CWM)
        explanatory: Plots x environmental variables
        n_components: Number of constrained axes reported
        permutations: Number of permutations (0 disables the test)
        seed: Seed of the permutation generator
    """
    check_plot_alignment(response, explanatory, "response", "explanatory")
    y_df = _complete_rows(response, "RDA response")
    x_df = _complete_rows(explanatory, "RDA explanatory")
    plots = y_df.index.intersection(x_df.index, sort=False)
    if len(plots) < 3:
        raise DataValidationError(
            "RDA needs at least three plots shared by both tables",
            [{"shared_plots": len(plots)}],
        )
    y_df = y_df.loc[plots]
    x_df = x_df.loc[plots]

    y = StandardScaler().fit_transform(y_df.to_numpy(dtype=float))
    x = StandardScaler().fit_transform(x_df.to_numpy(dtype=float))
    n, p_y = y.shape
    p_x = x.shape[1]

    x_pinv = np.linalg.pinv(x)
    fitted = _fitted(y, x, x_pinv)
    total = float(np.var(y, axis=0, ddof=1).sum())

    k_all = max(1, min(p_x, p_y, n - 1))
    model = PCA(n_components=k_all).fit(fitted)
    eigenvalues = model.explained_variance_
    constrained = float(eigenvalues.sum())

    r2 = constrained / total if total > 0 else np.nan
    df2 = n - p_x - 1
    r2_adjusted = 1 - (1 - r2) * (n - 1) / df2 if df2 > 0 else np.nan
    f_obs = _f_statistic(constrained, total, p_x, df2)

    p_value = np.nan
    if permutations > 0 and np.isfinite(f_obs):
        rng = np.random.default_rng(seed)
        exceed = 0
        for _ in range(permutations):
            y_perm = y[rng.permutation(n)]
            fitted_perm = _fitted(y_perm, x, x_pinv)
            constrained_perm = float(np.var(fitted_perm, axis=0, ddof=1).sum())
            if _f_statistic(constrained_perm, total, p_x, df2) >= f_obs:
                exceed += 1
        p_value = (exceed + 1) / (permutations + 1)
    elif not np.isfinite(f_obs):
        logger.warning(
            f"RDA F statistic undefined ({n} plots, {p_x} explanatory variables)"
        )

    k = max(1, min(int(n_components), k_all))
    axes = _axis_names(k, "RDA")
    scores = model.transform(fitted)[:, :k]
    site_scores = pd.DataFrame(scores, index=plots, columns=axes)

    biplot = np.empty((p_x, k))
    for j in range(p_x):
        for a in range(k):
            biplot[j, a] = (
                np.corrcoef(x[:, j], scores[:, a])[0, 1] if scores[:, a].std() > 0 else np.nan
            )

    logger.info(f"RDA: R2={r2:.3f}, adj R2={r2_adjusted:.3f}, F={f_obs:.3f}, p={p_value}")
    return RdaResult(
        site_scores=site_scores,
        response_loadings=pd.DataFrame(
            model.components_[:k].T, index=y_df.columns, columns=axes
        ),
        biplot=pd.DataFrame(biplot, index=x_df.columns, columns=axes),
        eigenvalues=pd.Series(eigenvalues[:k], index=axes, name="eigenvalue"),
        r2=r2,
        r2_adjusted=r2_adjusted,
        f_statistic=f_obs,
        p_value=p_value,
        permutations=permutations,
        statistics={"total_inertia": total, "constrained_inertia": constrained},
    )
