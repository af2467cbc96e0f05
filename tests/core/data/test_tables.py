"""Tests for loading the tables of a run from config.yml settings."""

import pytest

from traitlab.core.data.config_models import DataConfig
from traitlab.core.data.tables import load_community_tables
from traitlab.core.simulation import write_simulated_community


@pytest.fixture
def data_dir(tmp_path, simulated):
    write_simulated_community(simulated, tmp_path / "data")
    return tmp_path


def test_load_from_individuals(data_dir, simulated):
    tables = load_community_tables(
        DataConfig(), resolve=lambda p: str(data_dir / p)
    )

    assert list(tables.traits.columns) == ["plant_height", "sla", "seed_mass"]
    assert list(tables.traits.index) == list(tables.abundance.columns)
    assert list(tables.environment.columns) == ["temperature", "rainfall_seasonality"]
    assert tables.individuals is not None
    assert set(tables.plots) <= set(simulated.environment["plot_id"])


def test_load_from_species_table(data_dir):
    config = DataConfig(
        individuals=None,
        species_traits="data/species.csv",
        traits=["plant_height", "sla"],
        log10_traits=[],
    )
    tables = load_community_tables(config, resolve=lambda p: str(data_dir / p))

    assert tables.individuals is None
    assert list(tables.traits.columns) == ["plant_height", "sla"]


def test_data_config_requires_a_trait_table():
    with pytest.raises(ValueError):
        DataConfig(individuals=None, species_traits=None)


def test_data_config_log10_traits_must_be_listed():
    with pytest.raises(ValueError):
        DataConfig(traits=["sla"], log10_traits=["plant_height"])


def test_no_shared_species(data_dir):
    import pandas as pd

    from traitlab.common.exceptions import DataLoadError

    species = pd.read_csv(data_dir / "data" / "species.csv")
    species["species_id"] = "other_" + species["species_id"]
    species.to_csv(data_dir / "data" / "renamed.csv", index=False)
    config = DataConfig(
        individuals=None,
        species_traits="data/renamed.csv",
        traits=["sla"],
        log10_traits=[],
    )
    with pytest.raises(DataLoadError):
        load_community_tables(config, resolve=lambda p: str(data_dir / p))
