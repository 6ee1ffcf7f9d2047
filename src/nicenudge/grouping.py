"""Explicit grouping of observation tables.

Group-wise operations partition rows by the ``group`` column into a mapping
from group key to positional row indices, run on each slice, and put the
results back in the original row order.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable

import numpy as np
import pandas as pd

GROUP_COL = "group"
ALL_ROWS = "(all)"

# Scratch column used to restore row order after a group-wise pass
_ROW_POS = "_nicenudge_row_pos"


def group_indices(df: pd.DataFrame, obey_grouping: bool = True) -> dict[Hashable, np.ndarray]:
    """Map group key -> positional row indices, keys in order of first appearance.

    Rows with a missing group value form their own group (key None).
    When grouping is not obeyed, or df has no group column, a single key
    ALL_ROWS maps to every row.
    """
    n = len(df)
    if not obey_grouping or GROUP_COL not in df.columns:
        return {ALL_ROWS: np.arange(n)}

    codes, uniques = pd.factorize(df[GROUP_COL], use_na_sentinel=True)
    result: dict[Hashable, np.ndarray] = {}
    for code in pd.unique(codes):
        key = None if code < 0 else uniques[code]
        result[key] = np.flatnonzero(codes == code)
    return result


def apply_by_group(
    df: pd.DataFrame,
    func: Callable[[pd.DataFrame], pd.DataFrame],
    obey_grouping: bool = True,
) -> pd.DataFrame:
    """Run func on each group slice and concatenate in original row order.

    func may drop rows (filters) but must pass the other columns through.
    """
    groups = group_indices(df, obey_grouping)
    if len(groups) <= 1:
        return func(df)

    work = df.assign(**{_ROW_POS: np.arange(len(df))})
    parts = [func(work.iloc[idx]) for idx in groups.values()]
    out = pd.concat(parts).sort_values(_ROW_POS, kind="stable")
    return out.drop(columns=_ROW_POS)

