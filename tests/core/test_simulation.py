"""Tests for the synthetic community generator."""

import numpy as np
import pandas as pd
import pytest
from pydantic import ValidationError

from traitlab.core.analysis.cwm import community_weighted_mean
from traitlab.core.data.readers import aggregate_species_traits, pivot_abundance
from traitlab.core.simulation import (
    SimulationParams,
    simulate_community,
    write_simulated_community,
)


def test_same_seed_same_dataset():
    params = SimulationParams(n_plots=8, n_species=6, seed=5)
    first = simulate_community(params)
    second = simulate_community(params)

    pd.testing.assert_frame_equal(first.environment, second.environment)
    pd.testing.assert_frame_equal(first.abundance, second.abundance)
    pd.testing.assert_frame_equal(first.individuals, second.individuals)


def test_different_seeds_differ():
    first = simulate_community(SimulationParams(n_plots=8, n_species=6, seed=1))
    second = simulate_community(SimulationParams(n_plots=8, n_species=6, seed=2))
    assert not first.environment.equals(second.environment)


def test_table_shapes(simulated):
    params = simulated.params
    assert len(simulated.environment) == params.n_plots
    assert list(simulated.environment.columns) == [
        "plot_id",
        "temperature",
        "rainfall_seasonality",
    ]
    assert len(simulated.species) == params.n_species
    assert simulated.environment["plot_id"].iloc[0] == "plot01"
    assert simulated.species["species_id"].iloc[0] == "sp01"


def test_gradients_within_bounds(simulated):
    env = simulated.environment
    assert env["temperature"].between(5, 25).all()
    assert env["rainfall_seasonality"].between(20, 120).all()


def test_abundance_and_individuals_consistent(simulated):
    abundance = simulated.abundance
    assert (abundance["cover"] > 0).all()

    occurrences = set(zip(abundance["plot_id"], abundance["species_id"]))
    measured = set(zip(simulated.individuals["plot_id"], simulated.individuals["species_id"]))
    assert measured == occurrences

    per_occurrence = simulated.individuals.groupby(["plot_id", "species_id"]).size()
    assert per_occurrence.between(1, simulated.params.n_individuals).all()
    assert (simulated.individuals[["plant_height", "sla", "seed_mass"]] > 0).all().all()
    assert simulated.individuals["individual_id"].is_unique


def test_community_height_tracks_temperature():
    result = simulate_community(SimulationParams(n_plots=60, n_species=40, seed=7))
    abundance = pivot_abundance(result.abundance)
    traits = aggregate_species_traits(
        result.individuals, traits=["plant_height"], log10_traits=["plant_height"]
    ).loc[abundance.columns]
    cwm = community_weighted_mean(traits, abundance)
    temperature = result.environment.set_index("plot_id").loc[cwm.index, "temperature"]

    r = np.corrcoef(temperature, cwm["plant_height"])[0, 1]
    assert r > 0.5


def test_params_reject_unknown_keys():
    with pytest.raises(ValidationError):
        SimulationParams(n_plots=10, plots=10)


def test_params_bounds():
    with pytest.raises(ValidationError):
        SimulationParams(n_plots=1)


def test_write_simulated_community(tmp_path, simulated):
    files = write_simulated_community(simulated, tmp_path / "data")

    assert set(files) == {"environment", "abundance", "individuals", "species"}
    assert files["individuals"].name == "individual_traits.csv"
    for path in files.values():
        assert path.exists()
    reread = pd.read_csv(files["abundance"])
    assert list(reread.columns) == ["plot_id", "species_id", "cover"]
    assert len(reread) == len(simulated.abundance)
