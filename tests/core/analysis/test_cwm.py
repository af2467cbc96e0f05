"""Tests for community-weighted trait moments."""

import numpy as np
import pandas as pd
import pytest

from traitlab.common.exceptions import DataValidationError
from traitlab.core.analysis.cwm import (
    community_weighted_mean,
    community_weighted_variance,
    weighted_mean_matrix,
)


def test_worked_example(two_species):
    traits, abundance = two_species
    cwm = community_weighted_mean(traits, abundance)

    assert cwm.loc["X", "height"] == pytest.approx(2.5)
    assert cwm.loc["Y", "height"] == pytest.approx(4.0)
    assert cwm.loc["X", "sla"] == pytest.approx(12.5)
    assert list(cwm.index) == ["X", "Y"]
    assert list(cwm.columns) == ["height", "sla"]


def test_single_species_plot_equals_its_trait(two_species):
    traits, abundance = two_species
    cwm = community_weighted_mean(traits, abundance)
    pd.testing.assert_series_equal(
        cwm.loc["Y"], traits.loc["sp2"], check_names=False
    )


def test_cwm_within_trait_range_of_present_species(integer_community):
    traits, abundance = integer_community
    cwm = community_weighted_mean(traits, abundance)
    for plot in abundance.index:
        present = abundance.columns[abundance.loc[plot] > 0]
        for trait in traits.columns:
            values = traits.loc[present, trait]
            assert values.min() - 1e-12 <= cwm.loc[plot, trait] <= values.max() + 1e-12


def test_scaling_abundances_leaves_cwm_unchanged(integer_community):
    traits, abundance = integer_community
    pd.testing.assert_frame_equal(
        community_weighted_mean(traits, abundance),
        community_weighted_mean(traits, abundance * 7.5),
    )


def test_empty_plot_is_nan(two_species, caplog):
    traits, abundance = two_species
    abundance = pd.concat(
        [abundance, pd.DataFrame([[0.0, 0.0]], index=["Z"], columns=abundance.columns)]
    )
    cwm = community_weighted_mean(traits, abundance)
    assert cwm.loc["Z"].isna().all()
    assert cwm.loc["X"].notna().all()
    assert "zero total abundance" in caplog.text


def test_missing_trait_only_affects_plots_holding_the_species():
    traits = pd.DataFrame({"height": [2.0, np.nan, 6.0]}, index=["a", "b", "c"])
    abundance = pd.DataFrame(
        [[1.0, 0.0, 1.0], [1.0, 1.0, 0.0]], index=["p1", "p2"], columns=["a", "b", "c"]
    )
    cwm = community_weighted_mean(traits, abundance)
    assert cwm.loc["p1", "height"] == pytest.approx(4.0)
    assert np.isnan(cwm.loc["p2", "height"])


def test_mismatched_species_raise(two_species):
    traits, abundance = two_species
    with pytest.raises(DataValidationError) as exc_info:
        community_weighted_mean(traits.iloc[::-1], abundance)
    assert "validation_errors" in exc_info.value.details


def test_array_form_matches_table_form(integer_community):
    traits, abundance = integer_community
    values = weighted_mean_matrix(
        traits.to_numpy(dtype=float), abundance.to_numpy(dtype=float)
    )
    np.testing.assert_allclose(values, community_weighted_mean(traits, abundance).to_numpy())


def test_weighted_variance(two_species):
    traits, abundance = two_species
    cwv = community_weighted_variance(traits, abundance)
    # X: weights 0.75 / 0.25 on heights 2 and 4 around 2.5
    assert cwv.loc["X", "height"] == pytest.approx(0.75 * 0.25 + 0.25 * 2.25)
    assert cwv.loc["Y", "height"] == pytest.approx(0.0)
    assert (cwv.to_numpy() >= 0).all()
