"""
Column selection shared by the transformer plugins.
"""

from typing import List, Optional

import pandas as pd

from traitlab.common.exceptions import DataTransformError


def select_columns(
    table: pd.DataFrame, columns: Optional[List[str]], label: str
) -> pd.DataFrame:
    """Subset ``table`` to ``columns`` (all columns when None)."""
    if not columns:
        return table
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise DataTransformError(
            f"Unknown {label}: {', '.join(missing)}",
            details={"available": [str(c) for c in table.columns], "missing": missing},
        )
    return table[list(columns)]
