"""Tests for the dissimilarity-based functional diversity indices."""

import numpy as np
import pandas as pd
import pytest

from traitlab.core.analysis.functional_diversity import (
    functional_dispersion,
    functional_diversity_table,
    gower_distance,
    rao_quadratic_entropy,
    species_richness,
)


@pytest.fixture
def three_species():
    traits = pd.DataFrame({"height": [0.0, 5.0, 10.0]}, index=["a", "b", "c"])
    abundance = pd.DataFrame(
        [[1.0, 0.0, 1.0], [0.0, 4.0, 0.0], [2.0, 1.0, 0.0]],
        index=["mixed", "single", "pair"],
        columns=["a", "b", "c"],
    )
    return traits, abundance


def test_gower_distance_on_one_trait(three_species):
    traits, _ = three_species
    d = gower_distance(traits)

    assert d.loc["a", "c"] == pytest.approx(1.0)
    assert d.loc["a", "b"] == pytest.approx(0.5)
    np.testing.assert_allclose(np.diag(d), 0.0)
    np.testing.assert_allclose(d.to_numpy(), d.to_numpy().T)


def test_gower_distance_bounds(integer_community):
    traits, _ = integer_community
    d = gower_distance(traits).to_numpy()
    assert d.min() >= 0.0
    assert d.max() <= 1.0 + 1e-12


def test_gower_distance_constant_trait_contributes_nothing():
    traits = pd.DataFrame({"x": [0.0, 1.0], "flat": [3.0, 3.0]}, index=["a", "b"])
    assert gower_distance(traits).loc["a", "b"] == pytest.approx(0.5)


def test_rao_q(three_species):
    traits, abundance = three_species
    rao = rao_quadratic_entropy(traits, abundance)

    assert rao.name == "rao_q"
    # Two equally abundant species at distance 1
    assert rao["mixed"] == pytest.approx(0.5)
    assert rao["single"] == pytest.approx(0.0)


def test_functional_dispersion(three_species):
    traits, abundance = three_species
    fdis = functional_dispersion(traits, abundance, standardize=False)

    assert fdis.name == "fdis"
    # Centroid at 5, both species 5 units away
    assert fdis["mixed"] == pytest.approx(5.0)
    assert fdis["single"] == pytest.approx(0.0)


def test_functional_dispersion_empty_plot_is_nan(three_species):
    traits, abundance = three_species
    abundance.loc["empty"] = 0.0
    fdis = functional_dispersion(traits, abundance)
    assert np.isnan(fdis["empty"])


def test_species_richness(three_species):
    _, abundance = three_species
    assert species_richness(abundance).to_dict() == {"mixed": 2, "single": 1, "pair": 2}


def test_functional_diversity_table(three_species):
    traits, abundance = three_species
    table = functional_diversity_table(traits, abundance)
    assert list(table.columns) == ["richness", "fdis", "rao_q"]
    assert list(table.index) == ["mixed", "single", "pair"]
