"""
Consistency helpers between the R, L and Q tables.

Neither helper raises: species mismatches are resolved by intersection and
plot-order mismatches are reported as warnings, leaving the decision to the
caller.
"""

import logging
from typing import Sequence, Tuple, Union

import pandas as pd

logger = logging.getLogger(__name__)

Labels = Union[pd.Index, pd.DataFrame, pd.Series, Sequence]


def align_species(
    traits: pd.DataFrame, abundance: pd.DataFrame
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Restrict Q and L to the species present in both tables.

    Args:
        traits: Species x trait table (Q)
        abundance: Plot x species table (L)

    Returns:
        (Q, L) subset to the shared species, in L's column order
    """
    shared = [s for s in abundance.columns if s in traits.index]
    only_abundance = [s for s in abundance.columns if s not in traits.index]
    only_traits = [s for s in traits.index if s not in abundance.columns]

    if only_abundance:
        logger.warning(
            f"{len(only_abundance)} species without trait values dropped from the abundance table: "
            f"{', '.join(map(str, only_abundance[:10]))}"
            + (" ..." if len(only_abundance) > 10 else "")
        )
    if only_traits:
        logger.warning(
            f"{len(only_traits)} species absent from the abundance table dropped from the trait table: "
            f"{', '.join(map(str, only_traits[:10]))}"
            + (" ..." if len(only_traits) > 10 else "")
        )

    return traits.loc[shared], abundance.loc[:, shared]


def _labels(obj: Labels) -> list:
    if isinstance(obj, (pd.DataFrame, pd.Series)):
        return list(obj.index)
    return list(obj)


def check_plot_alignment(
    left: Labels,
    right: Labels,
    left_name: str = "left",
    right_name: str = "right",
) -> bool:
    """
    Check that two tables list the same plots in the same order.

    Returns:
        True when plot identifiers match element by element. A mismatch is
        logged as a warning and reported as False.
    """
    left_labels = [str(p) for p in _labels(left)]
    right_labels = [str(p) for p in _labels(right)]
    if left_labels == right_labels:
        return True

    if sorted(left_labels) == sorted(right_labels):
        logger.warning(
            f"Plot order differs between {left_name} and {right_name}; "
            "rows must be reordered before they are compared"
        )
    else:
        missing = sorted(set(left_labels) ^ set(right_labels))
        logger.warning(
            f"Plots differ between {left_name} and {right_name}: "
            f"{', '.join(missing[:10])}" + (" ..." if len(missing) > 10 else "")
        )
    return False
