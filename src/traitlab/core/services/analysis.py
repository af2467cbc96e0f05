"""
Service running the analysis pipeline described in analysis.yml.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from traitlab.common.config import Config
from traitlab.common.exceptions import (
    ConfigurationError,
    DataTransformError,
    TraitlabError,
)
from traitlab.common.progress import ProgressTracker, get_progress_tracker
from traitlab.common.utils import error_handler
from traitlab.common.utils.logging_utils import log_error, step_logger
from traitlab.core.data.tables import CommunityTables, load_community_tables
from traitlab.core.data.writers import write_table
from traitlab.core.plugins.base import PluginType
from traitlab.core.plugins.exceptions import PluginNotFoundError
from traitlab.core.plugins.models import AnalysisConfig, StepConfig
from traitlab.core.plugins.plugin_loader import PluginLoader
from traitlab.core.plugins.registry import PluginRegistry

from .context import AnalysisContext

logger = logging.getLogger(__name__)


class AnalysisService:
    """Service running analysis steps on the tables of a project."""

    def __init__(
        self,
        config: Config,
        tables: Optional[CommunityTables] = None,
        progress: Optional[ProgressTracker] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Project configuration
            tables: Already loaded tables (read from config.yml when None)
            progress: Progress tracker for long loops (global tracker when None)
        """
        self.config = config
        self._tables = tables
        self.progress = progress or get_progress_tracker()
        self.plugin_loader = PluginLoader()
        self.plugin_loader.load_plugins(Path(config.plugins_dir))

    @property
    def tables(self) -> CommunityTables:
        if self._tables is None:
            self._tables = load_community_tables(
                self.config.data_config, resolve=self.config.resolve_path
            )
        return self._tables

    def get_steps(self) -> List[StepConfig]:
        """
        Validated steps of analysis.yml.

        Raises:
            ConfigurationError: If a step is malformed or names are not unique
        """
        try:
            return AnalysisConfig(steps=self.config.get_analysis_config()).steps
        except PydanticValidationError as e:
            raise ConfigurationError(
                config_key="analysis",
                message="Invalid analysis.yml",
                details={"errors": e.errors(include_url=False)},
            )

    def _select_steps(
        self, steps: List[StepConfig], step_name: Optional[str]
    ) -> List[StepConfig]:
        """The named step and the earlier steps it reads from, in file order."""
        if not step_name:
            return steps
        by_name = {s.name: s for s in steps}
        if step_name not in by_name:
            raise ConfigurationError(
                config_key="analysis",
                message=f"No step named '{step_name}'",
                details={"available": list(by_name), "requested": step_name},
            )
        needed = set()
        pending = [step_name]
        while pending:
            name = pending.pop()
            if name in needed:
                continue
            needed.add(name)
            source = by_name[name].source
            if source in by_name:
                pending.append(source)
        return [s for s in steps if s.name in needed]

    def _get_plugin(self, step: StepConfig, context: AnalysisContext):
        try:
            plugin_class = PluginRegistry.get_plugin(step.plugin, PluginType.TRANSFORMER)
        except PluginNotFoundError as e:
            raise ConfigurationError(
                config_key=f"analysis.{step.name}.plugin",
                message=f"Unknown plugin '{step.plugin}' in step '{step.name}'",
                details={
                    "available": e.details.get("available", []),
                    "requested": step.plugin,
                },
            )
        return plugin_class(context)

    def create_context(self) -> AnalysisContext:
        return AnalysisContext(
            tables=self.tables,
            seed=self.config.random_seed,
            snapshots_dir=Path(self.config.snapshots_path),
            progress=self.progress,
        )

    def run_step(self, step: StepConfig, context: AnalysisContext) -> Any:
        """
        Run one step and store its result in the context.

        Raises:
            ConfigurationError: If the plugin is unknown
            DataTransformError: If the plugin fails on its input
        """
        plugin = self._get_plugin(step, context)
        log = step_logger(logger, step.name, step.plugin)
        context.current_step = step.name
        start = time.perf_counter()
        log.debug(f"Running step '{step.name}' ({step.plugin})")
        try:
            result = plugin.transform(context, step.plugin_config())
        except TraitlabError:
            raise
        except (ValueError, KeyError, TypeError) as e:
            log_error(log, e)
            raise DataTransformError(
                f"Step '{step.name}' failed",
                details={"step": step.name, "plugin": step.plugin, "error": str(e)},
            ) from e
        finally:
            context.current_step = None
        context.results[step.name] = result
        log.info(
            f"Step '{step.name}' ({step.plugin}) done in {time.perf_counter() - start:.2f}s"
        )
        return result

    def write_result(self, name: str, result: Any) -> List[Path]:
        """Write a step result under the outputs directory."""
        outputs = Path(self.config.outputs_path)
        if isinstance(result, pd.DataFrame):
            tables = {name: result}
        elif hasattr(result, "tables"):
            tables = {f"{name}_{key}": table for key, table in result.tables().items()}
        else:
            logger.warning(f"Result of step '{name}' has no table form, not written")
            return []
        paths = []
        for file_stem, table in tables.items():
            keep_index = not isinstance(table.index, pd.RangeIndex)
            paths.append(write_table(table, outputs / f"{file_stem}.csv", index=keep_index))
        return paths

    @error_handler(log=True, raise_error=True)
    def run_analysis(
        self, step: Optional[str] = None, write_outputs: bool = True
    ) -> Dict[str, Any]:
        """
        Run the analysis pipeline.

        Args:
            step: Only run this step (and the steps it takes its source from)
            write_outputs: Write result tables under the outputs directory

        Returns:
            Step results keyed by step name
        """
        steps = self._select_steps(self.get_steps(), step)
        context = self.create_context()
        logger.info(f"Running {len(steps)} analysis step(s)")
        for step_config in steps:
            result = self.run_step(step_config, context)
            if write_outputs:
                self.write_result(step_config.name, result)
        return context.results
