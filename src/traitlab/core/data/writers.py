"""
Writers for result tables and randomisation snapshots.
"""

import json
import logging
import os
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd

from traitlab.common.exceptions import FileWriteError, SnapshotError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

SNAPSHOT_FORMAT_VERSION = 1


def write_table(df: pd.DataFrame, path: PathLike, index: bool = True) -> Path:
    """Write a DataFrame as CSV, creating parent directories."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=index)
    except OSError as e:
        raise FileWriteError(str(path), "Failed to write table", {"error": str(e)})
    logger.debug(f"Wrote {path} ({len(df)} rows)")
    return path


def save_null_snapshot(path: PathLike, result) -> Path:
    """
    Persist a null-model result so another run can reuse it.

    The archive holds the observed CWM values, the null distribution
    (iterations x plots x traits) and a JSON metadata record.
    """
    path = Path(path)
    if path.suffix != ".npz":
        path = path.with_suffix(".npz")
    metadata = {
        "format_version": SNAPSHOT_FORMAT_VERSION,
        "model": result.model,
        "iterations": int(result.null.shape[0]),
        "seed": result.seed,
        "params": result.params,
        "plots": [str(p) for p in result.plots],
        "traits": [str(t) for t in result.traits],
    }
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(
            path,
            observed=result.observed.to_numpy(dtype=float),
            null=result.null,
            metadata=np.array(json.dumps(metadata)),
        )
    except OSError as e:
        raise SnapshotError(str(path), "Failed to save snapshot", {"error": str(e)})
    logger.info(f"Saved null-model snapshot to {path}")
    return path


def load_null_snapshot(path: PathLike):
    """Restore a null-model result written by :func:`save_null_snapshot`."""
    from traitlab.core.analysis.ses import NullModelResult

    path = Path(path)
    if not os.path.exists(path):
        raise SnapshotError(str(path), "Snapshot not found")
    try:
        with np.load(path, allow_pickle=False) as archive:
            metadata = json.loads(str(archive["metadata"]))
            observed = archive["observed"]
            null = archive["null"]
    except (OSError, KeyError, ValueError) as e:
        raise SnapshotError(str(path), "Unreadable snapshot", {"error": str(e)})

    if metadata.get("format_version") != SNAPSHOT_FORMAT_VERSION:
        raise SnapshotError(
            str(path),
            "Unsupported snapshot version",
            {"found": metadata.get("format_version")},
        )

    observed_df = pd.DataFrame(
        observed, index=metadata["plots"], columns=metadata["traits"]
    )
    return NullModelResult(
        observed=observed_df,
        null=null,
        model=metadata["model"],
        seed=metadata["seed"],
        params=metadata.get("params", {}),
    )
