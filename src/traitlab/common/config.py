"""
Project configuration: ``config.yml`` and ``analysis.yml`` under ``<project>/config``.

``${VAR}`` and ``${VAR:-default}`` placeholders are filled from the environment
before the YAML is parsed. Relative paths resolve against the project root,
the parent of the configuration directory.
"""

import os
import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from traitlab.common.exceptions import (
    ConfigurationError,
    EnvironmentSetupError,
    FileFormatError,
    FileReadError,
    FileWriteError,
)
from traitlab.common.utils import error_handler
from traitlab.core.data.config_models import DataConfig

ENV_PLACEHOLDER = re.compile(r"\$\{([A-Z0-9_]+)(?::-(.*?))?\}")

DEFAULT_ANALYSIS: List[Dict[str, Any]] = [
    {"name": "cwm", "plugin": "community_weighted_mean", "params": {}},
    {"name": "functional_diversity", "plugin": "functional_diversity", "params": {}},
    {
        "name": "ses_cwm",
        "plugin": "null_model_ses",
        "params": {"null_model": "independent_swap", "iterations": 999},
    },
    {"name": "trait_pca", "plugin": "pca", "params": {"table": "traits"}},
    {"name": "cwm_rda", "plugin": "rda", "source": "cwm", "params": {"permutations": 999}},
    {"name": "rlq", "plugin": "rlq", "params": {"permutations": 999}},
    {
        "name": "fourth_corner",
        "plugin": "fourth_corner",
        "params": {"permutations": 999, "p_adjust": "fdr_bh"},
    },
]

ANALYSIS_HEADER = """\
# traitlab analysis pipeline
#
# Steps run top to bottom. Each step names a registered plugin
# (see `traitlab plugins`) and stores its result under `name`.
# A later step can read an earlier result through `source`.
#
# Available transformers:
# - species_traits:          species x trait means from individual measurements
# - community_weighted_mean: CWM per plot and trait
# - functional_diversity:    richness, FDis and Rao's Q per plot
# - null_model_ses:          null-model randomisation of CWM and SES per plot/trait
# - pca:                     PCA of the trait (Q) or environment (R) table
# - rda:                     RDA of a result table (e.g. CWM) on the environment
# - rlq:                     RLQ analysis with permutation test
# - fourth_corner:           fourth-corner correlations with permutation tests
#
# Null models for null_model_ses: independent_swap, richness, frequency, taxa_labels

"""


def default_config(project_name: str = "Trait analysis") -> Dict[str, Any]:
    """Content of a new config.yml."""
    from traitlab import __version__

    return {
        "project": {
            "name": project_name,
            "created_at": datetime.now().isoformat(),
            "traitlab_version": __version__,
        },
        "data": DataConfig().model_dump(),
        "outputs": {"path": "outputs"},
        "snapshots": {"path": "snapshots"},
        "logs": {"path": "logs"},
        "plugins": {"path": "plugins"},
        "random_seed": 42,
        "simulation": {
            "n_plots": 30,
            "n_species": 20,
            "n_individuals": 5,
            "max_abundance": 50.0,
            "niche_breadth": 0.25,
            "intraspecific_cv": 0.15,
            "seed": 42,
        },
    }


def default_analysis() -> List[Dict[str, Any]]:
    return [dict(step, params=dict(step["params"])) for step in DEFAULT_ANALYSIS]


def write_config_file(file_path: str, data: Dict[str, Any]) -> None:
    with open(file_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def write_analysis_file(file_path: str) -> None:
    """Write the default pipeline, preceded by a commented list of the plugins."""
    with open(file_path, "w", encoding="utf-8") as f:
        f.write(ANALYSIS_HEADER)
        yaml.dump(default_analysis(), f, default_flow_style=False, sort_keys=False)


def substitute_env_variables(content: str, source: str) -> str:
    """
    Fill ``${VAR}`` and ``${VAR:-default}`` placeholders.

    Raises:
        EnvironmentSetupError: If a variable without default is not set
    """

    def replace(match: re.Match) -> str:
        name, default = match.group(1), match.group(2)
        value = os.environ.get(name, default)
        if value is None:
            raise EnvironmentSetupError(
                message="Missing environment variable",
                details={"variable": name, "file": source},
            )
        return value

    return ENV_PLACEHOLDER.sub(replace, content)


def _in_test_mode() -> bool:
    return bool(os.environ.get("PYTEST_CURRENT_TEST") or os.environ.get("TRAITLAB_TEST_MODE"))


class Config:
    """
    Configuration of one traitlab project.

    Attributes:
        config_dir: Directory holding config.yml and analysis.yml
        project_root: Parent of ``config_dir``; relative paths resolve against it
        config: Parsed config.yml
        analysis: Parsed analysis.yml (a list of steps when valid)
        plugins_dir: Directory of project plugins
    """

    @error_handler(log=True, raise_error=True)
    def __init__(self, config_dir: Optional[str] = None, create_default: bool = True) -> None:
        """
        Load the configuration files.

        Args:
            config_dir: Configuration directory (``<home>/config`` when None)
            create_default: Write the default files when they are missing.
                Test runs get the defaults without any file being written.

        Raises:
            ConfigurationError: If the files cannot be read or parsed
        """
        try:
            self.config_dir = config_dir or os.path.join(self.get_traitlab_home(), "config")
            self.project_root = os.path.dirname(os.path.abspath(self.config_dir))
            self._data_config: Optional[DataConfig] = None
            self.config: Dict[str, Any] = self._load("config.yml", default_config, create_default)
            self.analysis: Any = self._load("analysis.yml", default_analysis, create_default)
            self.plugins_dir = self.resolve_path(
                (self.config.get("plugins") or {}).get("path", "plugins")
            )
        except Exception as e:
            raise ConfigurationError(
                config_key="initialization",
                message="Failed to initialize configuration",
                details={"config_dir": config_dir, "error": str(e)},
            )

    @staticmethod
    @error_handler(log=True, raise_error=True)
    def get_traitlab_home() -> str:
        """
        Project home: ``TRAITLAB_HOME`` when set, the working directory otherwise.

        Raises:
            EnvironmentSetupError: If the directory does not exist
        """
        home = os.environ.get("TRAITLAB_HOME") or os.getcwd()
        if not os.path.exists(home):
            raise EnvironmentSetupError(
                message="TRAITLAB_HOME directory not found", details={"path": home}
            )
        return home

    def _load(self, filename: str, default: Callable[[], Any], create_default: bool) -> Any:
        file_path = os.path.join(self.config_dir, filename)
        if os.path.exists(file_path):
            data = self._read_yaml(file_path)
            # An empty file means "use the defaults"
            if data is None:
                return default() if filename == "analysis.yml" else {}
            return data
        if not create_default:
            raise FileReadError(file_path=file_path, message="Configuration file not found")
        data = default()
        if not _in_test_mode():
            self._create(file_path, data)
        return data

    @staticmethod
    def _read_yaml(file_path: str) -> Any:
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                content = substitute_env_variables(f.read(), source=file_path)
        except OSError as e:
            raise FileReadError(
                file_path=file_path,
                message="Failed to read config file",
                details={"error": str(e)},
            )
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise FileFormatError(
                file_path=file_path, message="Invalid YAML format", details={"error": str(e)}
            )

    @staticmethod
    def _create(file_path: str, data: Any) -> None:
        try:
            os.makedirs(os.path.dirname(file_path), exist_ok=True)
            if file_path.endswith("analysis.yml"):
                write_analysis_file(file_path)
            else:
                write_config_file(file_path, data)
        except OSError as e:
            raise FileWriteError(
                file_path=file_path,
                message="Failed to create config file",
                details={"error": str(e)},
            )

    def resolve_path(self, path: str) -> str:
        """Resolve a configured path against the project root."""
        if os.path.isabs(path):
            return path
        return os.path.join(self.project_root, path)

    @property
    @error_handler(log=True, raise_error=True)
    def data_config(self) -> DataConfig:
        """
        Typed ``data`` section of config.yml.

        Raises:
            ConfigurationError: If the section does not validate
        """
        if self._data_config is None:
            try:
                self._data_config = DataConfig(**(self.config.get("data") or {}))
            except PydanticValidationError as e:
                raise ConfigurationError(
                    config_key="data",
                    message="Invalid data configuration",
                    details={"errors": e.errors(include_url=False)},
                )
        return self._data_config

    def _section_path(self, section: str) -> str:
        settings = self.config.get(section) or {}
        if not settings.get("path"):
            raise ConfigurationError(
                config_key=f"{section}.path",
                message=f"{section.capitalize()} path not configured",
                details={"config": settings},
            )
        return self.resolve_path(settings["path"])

    @property
    def outputs_path(self) -> str:
        """Directory receiving result tables."""
        return self._section_path("outputs")

    @property
    def snapshots_path(self) -> str:
        """Directory receiving serialized randomisation results."""
        return self._section_path("snapshots")

    @property
    def logs_path(self) -> str:
        return self._section_path("logs")

    @property
    def random_seed(self) -> Optional[int]:
        return self.config.get("random_seed")

    @property
    def simulation_config(self) -> Dict[str, Any]:
        return self.config.get("simulation") or {}

    @error_handler(log=True, raise_error=True)
    def get_analysis_config(self) -> List[Dict[str, Any]]:
        """
        Steps of analysis.yml, in execution order.

        Raises:
            ConfigurationError: If there are no steps or the file is not a list
        """
        if not self.analysis:
            raise ConfigurationError(
                config_key="analysis",
                message="No analysis steps configured",
                details={"analysis_file": os.path.join(self.config_dir, "analysis.yml")},
            )
        if not isinstance(self.analysis, list):
            raise ConfigurationError(
                config_key="analysis",
                message="analysis.yml must contain a list of steps",
                details={"current_type": type(self.analysis).__name__},
            )
        return self.analysis
