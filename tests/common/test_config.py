import os

import pytest

from traitlab.common.config import Config
from traitlab.common.exceptions import ConfigurationError, EnvironmentSetupError


@pytest.fixture
def config_dir(tmp_path):
    path = tmp_path / "config"
    path.mkdir()
    return path


def test_defaults_without_files(config_dir):
    config = Config(str(config_dir))

    assert config.random_seed == 42
    assert config.outputs_path == os.path.join(str(config_dir.parent), "outputs")
    assert config.data_config.abundance_column == "cover"
    assert [step["name"] for step in config.get_analysis_config()][0] == "cwm"
    # Test mode keeps the tree untouched
    assert not (config_dir / "config.yml").exists()


def test_missing_files_without_defaults(config_dir):
    with pytest.raises(ConfigurationError):
        Config(str(config_dir), create_default=False)


def test_environment_substitution(config_dir, monkeypatch):
    monkeypatch.setenv("TRAITLAB_OUT", "/data/results")
    (config_dir / "config.yml").write_text(
        "outputs:\n"
        "  path: ${TRAITLAB_OUT}\n"
        "snapshots:\n"
        "  path: ${TRAITLAB_SNAPSHOTS:-cache}\n",
        encoding="utf-8",
    )
    config = Config(str(config_dir))
    assert config.outputs_path == "/data/results"
    assert config.snapshots_path == os.path.join(str(config_dir.parent), "cache")


def test_missing_environment_variable(config_dir, monkeypatch):
    monkeypatch.delenv("TRAITLAB_UNSET", raising=False)
    (config_dir / "config.yml").write_text(
        "outputs:\n  path: ${TRAITLAB_UNSET}\n", encoding="utf-8"
    )
    with pytest.raises(ConfigurationError) as exc_info:
        Config(str(config_dir))
    assert exc_info.value.config_key == "initialization"


def test_invalid_yaml(config_dir):
    (config_dir / "config.yml").write_text("outputs: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        Config(str(config_dir))


def test_empty_analysis(config_dir):
    (config_dir / "analysis.yml").write_text("[]\n", encoding="utf-8")
    config = Config(str(config_dir))
    with pytest.raises(ConfigurationError):
        config.get_analysis_config()


def test_analysis_must_be_a_list(config_dir):
    (config_dir / "analysis.yml").write_text("cwm:\n  plugin: pca\n", encoding="utf-8")
    config = Config(str(config_dir))
    with pytest.raises(ConfigurationError) as exc_info:
        config.get_analysis_config()
    assert exc_info.value.details["current_type"] == "dict"


def test_invalid_data_section(config_dir):
    (config_dir / "config.yml").write_text(
        "data:\n  abundance_col: cover\n", encoding="utf-8"
    )
    config = Config(str(config_dir))
    with pytest.raises(ConfigurationError) as exc_info:
        config.data_config
    assert exc_info.value.config_key == "data"


def test_absolute_paths_are_kept(config_dir):
    config = Config(str(config_dir))
    assert config.resolve_path("/srv/data.csv") == "/srv/data.csv"


def test_home_from_environment(traitlab_home):
    assert Config.get_traitlab_home() == str(traitlab_home)


def test_missing_home(tmp_path, monkeypatch):
    monkeypatch.setenv("TRAITLAB_HOME", str(tmp_path / "missing"))
    with pytest.raises(EnvironmentSetupError):
        Config.get_traitlab_home()
