import logging

import numpy as np
import pandas as pd
import pytest
import yaml

from traitlab.core.data.readers import aggregate_species_traits, pivot_abundance
from traitlab.core.data.tables import CommunityTables
from traitlab.core.plugins.plugin_loader import PluginLoader
from traitlab.core.plugins.registry import PluginRegistry
from traitlab.core.simulation import (
    SimulationParams,
    simulate_community,
    write_simulated_community,
)

TRAITS = ["plant_height", "sla", "seed_mass"]


@pytest.fixture(autouse=True)
def traitlab_test_mode(monkeypatch):
    """Keep Config from writing default files into the tree under test."""
    monkeypatch.setenv("TRAITLAB_TEST_MODE", "1")
    yield


@pytest.fixture
def traitlab_home(tmp_path, monkeypatch):
    monkeypatch.setenv("TRAITLAB_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def cli_runner():
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def two_species():
    """Two species, two plots: X holds 3 of sp1 and 1 of sp2, Y only 2 of sp2."""
    traits = pd.DataFrame(
        {"height": [2.0, 4.0], "sla": [10.0, 20.0]},
        index=pd.Index(["sp1", "sp2"], name="species_id"),
    )
    abundance = pd.DataFrame(
        [[3.0, 1.0], [0.0, 2.0]],
        index=pd.Index(["X", "Y"], name="plot_id"),
        columns=pd.Index(["sp1", "sp2"], name="species_id"),
    )
    return traits, abundance


@pytest.fixture
def integer_community():
    """Random integer abundances (6 plots x 5 species) and two traits."""
    rng = np.random.default_rng(3)
    values = rng.integers(0, 6, size=(6, 5)).astype(float)
    values[:, 0] += 1
    abundance = pd.DataFrame(
        values,
        index=pd.Index([f"p{i}" for i in range(6)], name="plot_id"),
        columns=pd.Index([f"s{j}" for j in range(5)], name="species_id"),
    )
    traits = pd.DataFrame(
        {"height": [1.0, 3.0, 5.0, 7.0, 9.0], "sla": [12.0, 8.0, 15.0, 20.0, 9.5]},
        index=abundance.columns,
    )
    return traits, abundance


@pytest.fixture(scope="session")
def simulated():
    return simulate_community(SimulationParams(n_plots=25, n_species=15, seed=11))


@pytest.fixture(scope="session")
def community(simulated):
    """R, L and Q of the simulated dataset, aligned as the service loads them."""
    environment = simulated.environment.set_index("plot_id")
    abundance = pivot_abundance(simulated.abundance)
    traits = aggregate_species_traits(
        simulated.individuals,
        traits=TRAITS,
        log10_traits=["plant_height", "seed_mass"],
    )
    traits = traits.loc[abundance.columns]
    environment = environment.loc[abundance.index]
    return CommunityTables(
        environment=environment,
        abundance=abundance,
        traits=traits,
        individuals=simulated.individuals,
    )


@pytest.fixture
def core_plugins():
    """Registry populated with the built-in plugins."""
    PluginLoader().load_core_plugins()
    return PluginRegistry


@pytest.fixture
def project(tmp_path, simulated):
    """A project directory with simulated data and a fast analysis.yml."""
    write_simulated_community(simulated, tmp_path / "data")
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    steps = [
        {"name": "cwm", "plugin": "community_weighted_mean", "params": {"variance": True}},
        {"name": "functional_diversity", "plugin": "functional_diversity"},
        {
            "name": "ses_cwm",
            "plugin": "null_model_ses",
            "params": {"null_model": "richness", "iterations": 19, "seed": 1},
        },
        {"name": "trait_pca", "plugin": "pca", "params": {"table": "traits"}},
        {
            "name": "cwm_rda",
            "plugin": "rda",
            "source": "cwm",
            "params": {"response": TRAITS, "permutations": 9, "seed": 1},
        },
        {"name": "rlq", "plugin": "rlq", "params": {"permutations": 9, "seed": 1}},
        {
            "name": "fourth_corner",
            "plugin": "fourth_corner",
            "params": {"permutations": 9, "seed": 1, "p_adjust": "fdr_bh"},
        },
    ]
    with open(config_dir / "analysis.yml", "w", encoding="utf-8") as f:
        yaml.dump(steps, f, sort_keys=False)
    return tmp_path


@pytest.fixture(autouse=True)
def reset_traitlab_logger():
    yield
    logging.getLogger("traitlab").setLevel(logging.NOTSET)
