"""Observation table conversion.

Every public entry point works on a pandas DataFrame internally but accepts
a pandas DataFrame, a polars DataFrame or a list of row dicts. Results are
handed back in the container type the caller passed in.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TYPE_CHECKING, Union

import pandas as pd

from nicenudge.errors import InvalidParameterError

# Optional polars
try:  # pragma: no cover
    import polars as _pl  # type: ignore[import]
    HAS_POLARS = True
except Exception:  # pragma: no cover - polars optional
    _pl = None  # type: ignore[assignment]
    HAS_POLARS = False

if TYPE_CHECKING:
    import polars as pl
else:
    pl = _pl  # type: ignore[assignment]

RowDict = dict[str, Any]
RowsLike = list[RowDict]
DataLike = Union[RowsLike, pd.DataFrame, "pl.DataFrame"]  # type: ignore[name-defined]

# Container kinds returned by to_pandas()
KIND_PANDAS = "pandas"
KIND_POLARS = "polars"
KIND_ROWS = "rows"


def to_pandas(data: DataLike) -> tuple[pd.DataFrame, str]:
    """Convert an observation table to pandas.

    Args:
        data: pandas DataFrame, polars DataFrame or list of row mappings.

    Returns:
        (df, kind) where kind records the input container for from_pandas().
        A pandas input is returned as is (not copied).

    Raises:
        TypeError: If data is none of the supported containers.
    """
    if isinstance(data, pd.DataFrame):
        return data, KIND_PANDAS

    if HAS_POLARS and pl is not None and isinstance(data, pl.DataFrame):
        return data.to_pandas(), KIND_POLARS

    if isinstance(data, list):
        if all(isinstance(row, Mapping) for row in data):
            return pd.DataFrame([dict(row) for row in data]), KIND_ROWS
        raise TypeError("List input must contain mapping/dict-like rows.")

    raise TypeError("Unsupported data type: expected list[dict], pandas.DataFrame, or polars.DataFrame.")


def from_pandas(df: pd.DataFrame, kind: str) -> DataLike:
    """Convert a result frame back to the caller's container type."""
    if kind == KIND_PANDAS:
        return df
    if kind == KIND_POLARS:
        if not HAS_POLARS or pl is None:
            raise RuntimeError("Polars is not available. Install 'polars' to use polars tables.")
        return pl.from_pandas(df.reset_index(drop=True))
    if kind == KIND_ROWS:
        return df.to_dict(orient="records")
    raise ValueError(f"Unknown table kind {kind!r}")


def require_columns(df: pd.DataFrame, columns: Iterable[str]) -> None:
    """Raise InvalidParameterError if any of columns is missing from df."""
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise InvalidParameterError(f"data must contain required column(s) {missing!r}")
