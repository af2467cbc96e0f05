from pathlib import Path

import pandas as pd
import pytest

from traitlab.cli import create_cli
from traitlab.common.exceptions import ArgumentError, CommandError, ConfigurationError


@pytest.fixture
def cli():
    return create_cli()


def test_help_lists_commands(cli_runner, cli):
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("init", "simulate", "run", "plugins"):
        assert command in result.output


class TestInit:
    def test_named_project(self, cli_runner, cli, tmp_path):
        with cli_runner.isolated_filesystem(temp_dir=tmp_path):
            result = cli_runner.invoke(cli, ["init", "meadows"])
            assert result.exit_code == 0, result.output
            assert Path("meadows/config/config.yml").exists()
            assert Path("meadows/snapshots").is_dir()
            assert "cd meadows" in result.output

    def test_existing_directory(self, cli_runner, cli, tmp_path):
        with cli_runner.isolated_filesystem(temp_dir=tmp_path):
            Path("meadows").mkdir()
            result = cli_runner.invoke(cli, ["init", "meadows"])
            assert result.exit_code != 0
            assert isinstance(result.exception, CommandError)

    def test_home_project_and_reset(self, cli_runner, cli, traitlab_home):
        assert cli_runner.invoke(cli, ["init"]).exit_code == 0
        assert "already initialized" in cli_runner.invoke(cli, ["init"]).output

        (traitlab_home / "outputs" / "cwm.csv").write_text("plot_id\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["init", "--reset", "--force"])
        assert result.exit_code == 0, result.output
        assert list((traitlab_home / "outputs").iterdir()) == []

    def test_reset_cancelled(self, cli_runner, cli, traitlab_home):
        cli_runner.invoke(cli, ["init"])
        (traitlab_home / "outputs" / "cwm.csv").write_text("plot_id\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["init", "--reset"], input="n\n")
        assert "cancelled" in result.output
        assert (traitlab_home / "outputs" / "cwm.csv").exists()


class TestSimulate:
    def test_writes_dataset(self, cli_runner, cli, traitlab_home):
        output = traitlab_home / "sim"
        result = cli_runner.invoke(
            cli,
            ["simulate", "--plots", "6", "--species", "5", "--seed", "2", "--output", str(output)],
        )
        assert result.exit_code == 0, result.output
        environment = pd.read_csv(output / "environment.csv")
        assert len(environment) == 6
        assert (output / "abundance.csv").exists()
        assert (output / "individual_traits.csv").exists()

    def test_defaults_to_project_data(self, cli_runner, cli, traitlab_home):
        cli_runner.invoke(cli, ["init"])
        result = cli_runner.invoke(cli, ["simulate", "--plots", "4", "--species", "3"])
        assert result.exit_code == 0, result.output
        assert len(pd.read_csv(traitlab_home / "data" / "environment.csv")) == 4

    def test_invalid_settings(self, cli_runner, cli, traitlab_home):
        result = cli_runner.invoke(cli, ["simulate", "--plots", "1"])
        assert result.exit_code != 0
        assert isinstance(result.exception, ArgumentError)


class TestRun:
    def test_single_step(self, cli_runner, cli, project, monkeypatch):
        monkeypatch.setenv("TRAITLAB_HOME", str(project))
        result = cli_runner.invoke(cli, ["run", "--step", "cwm", "--no-progress"])
        assert result.exit_code == 0, result.output
        assert "1 step(s) completed" in result.output
        assert (project / "outputs" / "cwm.csv").exists()

    def test_unknown_step(self, cli_runner, cli, project, monkeypatch):
        monkeypatch.setenv("TRAITLAB_HOME", str(project))
        result = cli_runner.invoke(cli, ["run", "--step", "missing"])
        assert isinstance(result.exception, ConfigurationError)


class TestPlugins:
    def test_filter_by_type(self, cli_runner, cli, traitlab_home):
        result = cli_runner.invoke(cli, ["plugins", "--type", "null_model"])
        assert result.exit_code == 0, result.output
        assert "independent_swap" in result.output
        assert "fourth_corner" not in result.output

    def test_lists_all(self, cli_runner, cli, traitlab_home):
        result = cli_runner.invoke(cli, ["plugins"])
        assert result.exit_code == 0, result.output
        assert "Total:" in result.output
        assert "null_model_ses" in result.output
