"""Tests for RLQ and the fourth-corner analysis."""

import numpy as np
import pandas as pd
import pytest

from traitlab.common.exceptions import DataValidationError
from traitlab.core.analysis.trait_environment import (
    fourth_corner,
    fourth_corner_matrix,
    rlq,
    rlq_test,
    weighted_standardize,
)


def test_weighted_standardize():
    values = np.array([[1.0], [2.0], [4.0]])
    weights = np.array([0.2, 0.3, 0.5])
    z = weighted_standardize(values, weights)

    assert weights @ z[:, 0] == pytest.approx(0.0, abs=1e-12)
    assert weights @ z[:, 0] ** 2 == pytest.approx(1.0)


def test_weighted_standardize_constant_column_is_nan():
    z = weighted_standardize(np.array([[3.0], [3.0]]), np.array([0.5, 0.5]))
    assert np.isnan(z).all()


def test_rlq_axes(community):
    result = rlq(community.environment, community.abundance, community.traits, n_axes=2)

    assert list(result.eigenvalues.index) == ["RLQ1", "RLQ2"]
    eigenvalues = result.eigenvalues.to_numpy()
    assert (eigenvalues >= 0).all()
    assert eigenvalues[0] >= eigenvalues[1]
    assert eigenvalues.sum() <= result.total_inertia + 1e-12
    assert result.environment_coefficients.shape == (2, 2)
    assert result.trait_coefficients.shape == (3, 2)
    assert set(result.plot_scores.index) <= set(community.abundance.index)
    assert set(result.species_scores.index) <= set(community.abundance.columns)
    assert result.explained_ratio.iloc[0] <= 1.0


def test_rlq_tables(community):
    result = rlq(community.environment, community.abundance, community.traits)
    assert set(result.tables()) == {"axes", "environment", "traits", "plots", "species"}
    result.test = {"total_inertia": 1.0, "p_combined": 0.5}
    assert "test" in result.tables()
    pd.testing.assert_frame_equal(result.frame(), result.plot_scores)


def test_rlq_total_inertia_matches_fourth_corner(community):
    result = rlq(community.environment, community.abundance, community.traits)
    table = fourth_corner(
        community.environment, community.abundance, community.traits, permutations=0
    )
    assert (table["r"] ** 2).sum() == pytest.approx(result.total_inertia)


def test_rlq_test(community):
    result = rlq_test(
        community.environment,
        community.abundance,
        community.traits,
        permutations=19,
        seed=2,
    )
    assert set(result) == {
        "total_inertia",
        "permutations",
        "p_model2",
        "p_model4",
        "p_combined",
    }
    assert 0.05 <= result["p_model2"] <= 1.0
    assert result["p_combined"] == max(result["p_model2"], result["p_model4"])


def test_fourth_corner_table(community):
    table = fourth_corner(
        community.environment,
        community.abundance,
        community.traits,
        permutations=19,
        seed=0,
    )
    assert len(table) == 2 * 3
    assert list(table.columns) == [
        "environment",
        "trait",
        "r",
        "p_model2",
        "p_model4",
        "p_combined",
        "p_value",
        "p_adjusted",
        "significant",
    ]
    assert table["r"].abs().max() <= 1.0 + 1e-9
    np.testing.assert_allclose(
        table["p_combined"], np.maximum(table["p_model2"], table["p_model4"])
    )
    np.testing.assert_allclose(table["p_value"], table["p_combined"])
    assert ((table["p_value"] > 0) & (table["p_value"] <= 1)).all()


def test_fourth_corner_single_model(community):
    table = fourth_corner(
        community.environment,
        community.abundance,
        community.traits,
        permutations=9,
        model=2,
        seed=0,
    )
    assert table["p_model4"].isna().all()
    assert table["p_combined"].isna().all()
    np.testing.assert_allclose(table["p_value"], table["p_model2"])


def test_fourth_corner_adjustment_is_conservative(community):
    args = (community.environment, community.abundance, community.traits)
    table = fourth_corner(*args, permutations=19, seed=0, p_adjust="bonferroni")
    assert (table["p_adjusted"] >= table["p_value"] - 1e-12).all()
    assert (table["p_adjusted"] <= 1.0).all()


def test_fourth_corner_matrix(community):
    table = fourth_corner(
        community.environment, community.abundance, community.traits, permutations=0
    )
    matrix = fourth_corner_matrix(table)
    assert matrix.shape == (2, 3)
    assert set(matrix.index) == {"temperature", "rainfall_seasonality"}


@pytest.mark.parametrize("model", [2, 4, 6])
def test_fourth_corner_without_permutations_has_no_p_values(community, model):
    table = fourth_corner(
        community.environment,
        community.abundance,
        community.traits,
        permutations=0,
        model=model,
        p_adjust="fdr_bh",
    )
    assert table["r"].notna().all()
    assert table[["p_model2", "p_model4", "p_combined", "p_value", "p_adjusted"]].isna().all().all()
    assert not table["significant"].any()


def test_rlq_test_without_permutations(community):
    result = rlq_test(
        community.environment, community.abundance, community.traits, permutations=0
    )
    assert result["total_inertia"] > 0
    assert np.isnan(result["p_model2"])
    assert np.isnan(result["p_combined"])


def test_fourth_corner_rejects_bad_options(community):
    args = (community.environment, community.abundance, community.traits)
    with pytest.raises(ValueError):
        fourth_corner(*args, permutations=0, model=3)
    with pytest.raises(ValueError):
        fourth_corner(*args, permutations=0, p_adjust="magic")


def test_fourth_corner_detects_planted_association():
    rng = np.random.default_rng(0)
    n_plots, n_species = 40, 30
    gradient = np.linspace(0.0, 1.0, n_plots)
    optimum = np.linspace(0.0, 1.0, n_species)
    expected = 20 * np.exp(-((gradient[:, None] - optimum[None, :]) ** 2) / (2 * 0.1**2))
    abundance = pd.DataFrame(
        rng.poisson(expected).astype(float),
        index=[f"p{i}" for i in range(n_plots)],
        columns=[f"s{j}" for j in range(n_species)],
    )
    environment = pd.DataFrame({"gradient": gradient}, index=abundance.index)
    traits = pd.DataFrame(
        {"trait": optimum + rng.normal(0, 0.02, n_species)}, index=abundance.columns
    )
    table = fourth_corner(environment, abundance, traits, permutations=99, seed=1)

    assert table.loc[0, "r"] > 0.5
    assert table.loc[0, "p_value"] == pytest.approx(0.01)


def test_too_few_species_raise():
    environment = pd.DataFrame({"x": [1.0, 2.0, 3.0]}, index=["a", "b", "c"])
    abundance = pd.DataFrame(
        [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]], index=["a", "b", "c"], columns=["s1", "s2"]
    )
    traits = pd.DataFrame({"t": [1.0, 2.0]}, index=["s1", "s2"])
    with pytest.raises(DataValidationError):
        rlq(environment, abundance, traits)
