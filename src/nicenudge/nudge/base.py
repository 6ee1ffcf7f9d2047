"""Shared pieces of the nudge strategies.

Every strategy computes a per-row (x_nudge, y_nudge) displacement from a
basis position and keeps the original position in ``x_orig``/``y_orig`` so a
connector can be drawn back to it later. Axes with no requested nudge are
left untouched, which keeps non-numeric columns (dates, categories) intact.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

import numpy as np
import pandas as pd

from nicenudge.config import normalize_choice
from nicenudge.errors import InvalidParameterError
from nicenudge.frames import DataLike, from_pandas, require_columns, to_pandas
from nicenudge.scales import PanelScales

X_ORIG = "x_orig"
Y_ORIG = "y_orig"


class NudgeStrategy(Protocol):
    """Role shared by all nudges: turn a table into a displaced table."""

    def compute_panel(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> pd.DataFrame:
        ...

    def compute(self, data: DataLike, scales: Optional[PanelScales] = None) -> DataLike:
        ...


def run_strategy(strategy: NudgeStrategy, data: DataLike, scales: Optional[PanelScales]) -> DataLike:
    """Convert data, run strategy.compute_panel on a copy, convert back."""
    df, kind = to_pandas(data)
    require_columns(df, ["x", "y"])
    out = strategy.compute_panel(df.copy(), scales)
    return from_pandas(out, kind)


def check_choice(name: str, value: Any, choices: Sequence[str]) -> str:
    """Normalize a dotted choice and raise InvalidParameterError if not in choices."""
    v = normalize_choice(value)
    if v not in choices:
        raise InvalidParameterError(
            f"Invalid '{name}': {value!r}, expected one of {', '.join(repr(c) for c in choices)}"
        )
    return v


def recycle(values: Any, n: int) -> np.ndarray:
    """Repeat a scalar or vector to length n."""
    arr = np.atleast_1d(np.asarray(values, dtype=float))
    if len(arr) == 0:
        raise InvalidParameterError("Nudge values must not be empty")
    return np.resize(arr, n)


def is_active(values: Any) -> bool:
    """True if any requested nudge along an axis is non-zero."""
    return bool(np.any(np.atleast_1d(np.asarray(values, dtype=float)) != 0))


def as_float(series: pd.Series) -> np.ndarray:
    """Coordinate column as a float array (non-numeric values become NaN)."""
    return pd.to_numeric(series, errors="coerce").to_numpy(dtype=float)


def apply_nudge(
    df: pd.DataFrame,
    x_new: Optional[np.ndarray],
    y_new: Optional[np.ndarray],
) -> pd.DataFrame:
    """Write new coordinates into df in place; None leaves that axis alone."""
    if x_new is not None:
        df["x"] = x_new
    if y_new is not None:
        df["y"] = y_new
    return df


def add_origin(df: pd.DataFrame, x_orig: Any, y_orig: Any, kept_origin: str) -> pd.DataFrame:
    """Append x_orig/y_orig unless kept_origin is "none"."""
    if kept_origin != "none":
        df[X_ORIG] = np.asarray(x_orig)
        df[Y_ORIG] = np.asarray(y_orig)
    return df
