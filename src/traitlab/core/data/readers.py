"""
Readers for the environment (R), abundance (L) and trait (Q) tables.

All readers return pandas DataFrames indexed by plot or species identifier.
Identifiers are always read as strings so that plot "01" and plot "1" stay
distinct across files.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from traitlab.common.exceptions import DataValidationError, FileReadError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _read_csv(path: PathLike, id_columns: Iterable[str] = ()) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileReadError(str(path), "Table not found")
    try:
        return pd.read_csv(path, dtype={col: str for col in id_columns})
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise FileReadError(str(path), "Unable to parse CSV table", {"error": str(e)})


def _require_columns(df: pd.DataFrame, columns: Sequence[str], table: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise DataValidationError(
            f"Missing columns in {table} table",
            [{"table": table, "column": c, "error": "missing"} for c in missing],
        )


def _numeric_columns(
    df: pd.DataFrame, wanted: Optional[Sequence[str]], table: str
) -> List[str]:
    if wanted:
        _require_columns(df, wanted, table)
        bad = [c for c in wanted if not pd.api.types.is_numeric_dtype(df[c])]
        if bad:
            raise DataValidationError(
                f"Non-numeric columns in {table} table",
                [{"table": table, "column": c, "error": "not numeric"} for c in bad],
            )
        return list(wanted)
    return [c for c in df.columns if pd.api.types.is_numeric_dtype(df[c])]


def read_environment(
    path: PathLike,
    plot_column: str = "plot_id",
    variables: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Read the plot x environment table.

    Args:
        path: CSV file, one row per plot
        plot_column: Column holding plot identifiers
        variables: Environmental columns to keep (every numeric column when empty)

    Returns:
        DataFrame indexed by plot id
    """
    df = _read_csv(path, id_columns=[plot_column])
    _require_columns(df, [plot_column], "environment")
    if df[plot_column].duplicated().any():
        dupes = df.loc[df[plot_column].duplicated(), plot_column].tolist()
        raise DataValidationError(
            "Duplicated plots in environment table",
            [{"table": "environment", "plot": p, "error": "duplicated"} for p in dupes],
        )
    env = df.set_index(plot_column)
    columns = _numeric_columns(env, variables, "environment")
    env = env[columns].astype(float)
    env.index.name = plot_column
    logger.debug(f"Read environment table {path}: {env.shape[0]} plots, {env.shape[1]} variables")
    return env


def pivot_abundance(
    long_df: pd.DataFrame,
    plot_column: str = "plot_id",
    species_column: str = "species_id",
    value_column: str = "cover",
) -> pd.DataFrame:
    """
    Reshape a long (plot, species, value) table into the plot x species matrix L.

    Duplicated plot/species pairs are summed and absent combinations become 0.
    """
    _require_columns(long_df, [plot_column, species_column, value_column], "abundance")
    values = pd.to_numeric(long_df[value_column], errors="coerce")
    if values.isna().any():
        rows = long_df.index[values.isna()].tolist()
        raise DataValidationError(
            "Non-numeric abundance values",
            [{"table": "abundance", "row": r, "error": "not numeric"} for r in rows],
        )
    if (values < 0).any():
        raise DataValidationError(
            "Negative abundance values",
            [{"table": "abundance", "error": "negative", "count": int((values < 0).sum())}],
        )
    frame = long_df.assign(**{value_column: values})
    wide = frame.pivot_table(
        index=plot_column,
        columns=species_column,
        values=value_column,
        aggfunc="sum",
        fill_value=0.0,
    )
    wide.columns.name = species_column
    wide.index.name = plot_column
    return wide.astype(float)


def to_relative_abundance(abundance: pd.DataFrame) -> pd.DataFrame:
    """Scale each plot to percent of its total; empty plots stay at 0."""
    totals = abundance.sum(axis=1)
    safe = totals.replace(0, np.nan)
    return abundance.div(safe, axis=0).fillna(0.0) * 100.0


def read_abundance(
    path: PathLike,
    plot_column: str = "plot_id",
    species_column: str = "species_id",
    value_column: str = "cover",
    relative: bool = False,
) -> pd.DataFrame:
    """
    Read the abundance table L.

    The file is treated as long format when it holds the plot, species and
    value columns; otherwise it must be wide, with plot ids in the first
    column and one column per species.
    """
    df = _read_csv(path, id_columns=[plot_column, species_column])
    if {plot_column, species_column, value_column}.issubset(df.columns):
        abundance = pivot_abundance(df, plot_column, species_column, value_column)
    else:
        first = df.columns[0]
        df[first] = df[first].astype(str)
        abundance = df.set_index(first)
        abundance = (
            abundance.apply(pd.to_numeric, errors="coerce").fillna(0.0).astype(float)
        )
        if (abundance < 0).any().any():
            raise DataValidationError(
                "Negative abundance values",
                [{"table": "abundance", "error": "negative"}],
            )
        abundance.index.name = plot_column
        abundance.columns.name = species_column

    if relative:
        abundance = to_relative_abundance(abundance)
    logger.debug(
        f"Read abundance table {path}: {abundance.shape[0]} plots, {abundance.shape[1]} species"
    )
    return abundance


def read_individual_traits(
    path: PathLike,
    species_column: str = "species_id",
    plot_column: Optional[str] = "plot_id",
    traits: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Read individual-level trait measurements (one row per organism)."""
    ids = [species_column] + ([plot_column] if plot_column else [])
    df = _read_csv(path, id_columns=ids)
    _require_columns(df, ids, "individuals")
    measured = df.drop(columns=[c for c in df.columns if c in ids or c.endswith("_id")])
    columns = _numeric_columns(measured, traits, "individuals")
    return df[ids + columns]


def read_species_traits(
    path: PathLike,
    species_column: str = "species_id",
    traits: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Read a ready-made species x trait table (Q)."""
    df = _read_csv(path, id_columns=[species_column])
    _require_columns(df, [species_column], "traits")
    q = df.set_index(species_column)
    columns = _numeric_columns(q, traits, "traits")
    q = q[columns].astype(float)
    q.index.name = species_column
    return q


def aggregate_species_traits(
    individuals: pd.DataFrame,
    species_column: str = "species_id",
    traits: Optional[Sequence[str]] = None,
    log10_traits: Sequence[str] = (),
    plot_column: Optional[str] = None,
) -> pd.DataFrame:
    """
    Average individual measurements into species-level trait values.

    Args:
        individuals: Individual-level table
        species_column: Species identifier column
        traits: Traits to aggregate (every numeric column when empty)
        log10_traits: Traits log10-transformed before averaging; values <= 0 become NaN
        plot_column: When given, aggregate per plot x species instead of per species

    Returns:
        Trait means indexed by species (or by plot and species)
    """
    keys = [plot_column, species_column] if plot_column else [species_column]
    _require_columns(individuals, keys, "individuals")
    if not traits:
        traits = [
            c
            for c in individuals.columns
            if c not in keys
            and not c.endswith("_id")
            and pd.api.types.is_numeric_dtype(individuals[c])
        ]
    _require_columns(individuals, traits, "individuals")

    values = individuals[keys + list(traits)].copy()
    for trait in log10_traits:
        if trait not in values.columns:
            continue
        column = values[trait].astype(float)
        non_positive = int((column <= 0).sum())
        if non_positive:
            logger.warning(
                f"{non_positive} non-positive values of '{trait}' dropped before log10"
            )
        values[trait] = np.log10(column.where(column > 0))

    means = values.groupby(keys, sort=True)[list(traits)].mean()
    return means.astype(float)
