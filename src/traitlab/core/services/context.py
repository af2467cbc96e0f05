"""
Shared state handed to every analysis step.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from traitlab.common.exceptions import ConfigurationError
from traitlab.common.progress import ProgressTracker
from traitlab.core.data.tables import CommunityTables

TABLE_SOURCES = ("environment", "abundance", "traits", "individuals")


def as_frame(value: Any) -> pd.DataFrame:
    """
    Plot- or species-indexed table view of a step result.

    DataFrames are returned as they are; result objects provide ``frame()``.
    """
    if isinstance(value, pd.DataFrame):
        return value
    if hasattr(value, "frame"):
        return value.frame()
    raise TypeError(f"{type(value).__name__} cannot be used as a table source")


@dataclass
class AnalysisContext:
    """Tables of the run, results of the steps run so far and run settings."""

    tables: CommunityTables
    results: Dict[str, Any] = field(default_factory=dict)
    seed: Optional[int] = None
    snapshots_dir: Optional[Path] = None
    progress: Optional[ProgressTracker] = None
    current_step: Optional[str] = None

    @property
    def environment(self) -> pd.DataFrame:
        return self.tables.environment

    @property
    def abundance(self) -> pd.DataFrame:
        return self.tables.abundance

    @property
    def traits(self) -> pd.DataFrame:
        return self.tables.traits

    def available_sources(self) -> list:
        sources = [name for name in TABLE_SOURCES if self.get_raw(name) is not None]
        return sources + list(self.results)

    def get_raw(self, name: str) -> Any:
        if name in self.results:
            return self.results[name]
        if name in TABLE_SOURCES:
            return getattr(self.tables, name)
        return None

    def get_frame(self, name: str) -> pd.DataFrame:
        """
        Resolve a source name to a table.

        Raises:
            ConfigurationError: If no table or earlier step has that name
        """
        value = self.get_raw(name)
        if value is None:
            raise ConfigurationError(
                "source",
                f"Unknown source '{name}'",
                details={"available": self.available_sources(), "requested": name},
            )
        return as_frame(value)

    def snapshot_path(self) -> Optional[Path]:
        """Snapshot file of the running step, None when snapshots are disabled."""
        if self.snapshots_dir is None or self.current_step is None:
            return None
        return Path(self.snapshots_dir) / f"{self.current_step}.npz"
