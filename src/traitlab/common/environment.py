import os
import shutil
from typing import Optional

from traitlab.common.config import (
    Config,
    default_config,
    write_analysis_file,
    write_config_file,
)
from traitlab.common.exceptions import EnvironmentSetupError, FileWriteError
from traitlab.common.utils import error_handler


class Environment:
    """A class used to manage the directory layout of a traitlab project."""

    def __init__(self, config_dir: str, project_name: Optional[str] = None):
        """Initialize Environment with config directory.

        Args:
            config_dir: Path to the configuration directory
            project_name: Optional name for the project
        """
        self.config_dir = config_dir
        self.project_name = project_name

    @property
    def config_file(self) -> str:
        return os.path.join(self.config_dir, "config.yml")

    @property
    def analysis_file(self) -> str:
        return os.path.join(self.config_dir, "analysis.yml")

    def _write_default_files(self) -> None:
        """Write config.yml and analysis.yml unless they already exist."""
        try:
            os.makedirs(self.config_dir, exist_ok=True)
            if not os.path.exists(self.config_file):
                config_data = (
                    default_config(self.project_name) if self.project_name else default_config()
                )
                write_config_file(self.config_file, config_data)
            if not os.path.exists(self.analysis_file):
                write_analysis_file(self.analysis_file)
        except OSError as e:
            raise FileWriteError(
                file_path=self.config_dir,
                message="Failed to write default configuration",
                details={"error": str(e)},
            )

    @error_handler(log=True, raise_error=True)
    def initialize(self) -> Config:
        """Create the configuration files and the project directories."""
        self._write_default_files()
        config = Config(self.config_dir, create_default=False)
        directories = [
            config.resolve_path("data"),
            config.outputs_path,
            config.snapshots_path,
            config.logs_path,
            config.plugins_dir,
        ]
        for directory in directories:
            try:
                os.makedirs(directory, exist_ok=True)
            except OSError as e:
                raise EnvironmentSetupError(
                    message="Failed to create project directory",
                    details={"path": directory, "error": str(e)},
                )
        return config

    @error_handler(log=True, raise_error=True)
    def reset(self) -> Config:
        """
        Remove generated outputs, snapshots and logs, keeping data and configuration.
        """
        config = self.initialize()
        for directory in (config.outputs_path, config.snapshots_path, config.logs_path):
            try:
                if os.path.exists(directory):
                    shutil.rmtree(directory)
                os.makedirs(directory, exist_ok=True)
            except OSError as e:
                raise EnvironmentSetupError(
                    message="Failed to reset project directory",
                    details={"path": directory, "error": str(e)},
                )
        return config
