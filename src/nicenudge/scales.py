"""Panel scale descriptions.

The density filters and nudges only need two facts about each axis of the
panel they work on: the displayed range and whether the axis is discrete
(categories mapped to integer positions). AxisScale and PanelScales carry
exactly that; the caller fills them in from whatever plotting layer it uses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from nicenudge.errors import InvalidParameterError

AXES = ("x", "y")


@dataclass(frozen=True)
class AxisScale:
    """One axis of a panel.

    Attributes:
        range: Displayed (min, max) of the axis. None means use the data range.
        discrete: True if the axis maps categories to integer positions.
    """
    range: Optional[tuple[float, float]] = None
    discrete: bool = False

    def __post_init__(self) -> None:
        if self.range is not None:
            lo, hi = (float(v) for v in self.range)
            if not (np.isfinite(lo) and np.isfinite(hi)) or lo > hi:
                raise InvalidParameterError(f"Axis range must be finite with min <= max, got {self.range!r}")
            object.__setattr__(self, "range", (lo, hi))


@dataclass(frozen=True)
class PanelScales:
    """The pair of axis scales shared by one panel."""
    x: AxisScale = field(default_factory=AxisScale)
    y: AxisScale = field(default_factory=AxisScale)

    def axis(self, name: str) -> AxisScale:
        """Return the scale for axis "x" or "y"."""
        if name not in AXES:
            raise InvalidParameterError(f"Axis must be 'x' or 'y', got {name!r}")
        return self.x if name == "x" else self.y

    @classmethod
    def from_data(
        cls,
        df: pd.DataFrame,
        *,
        x_discrete: bool = False,
        y_discrete: bool = False,
    ) -> "PanelScales":
        """Build scales whose ranges are the data ranges of df (None for absent columns)."""
        x_range = _data_range(df["x"]) if "x" in df.columns else None
        y_range = _data_range(df["y"]) if "y" in df.columns else None
        return cls(
            x=AxisScale(range=x_range, discrete=x_discrete),
            y=AxisScale(range=y_range, discrete=y_discrete),
        )


def _data_range(values: pd.Series) -> Optional[tuple[float, float]]:
    v = pd.to_numeric(values, errors="coerce").to_numpy(dtype=float)
    v = v[np.isfinite(v)]
    if len(v) == 0:
        return None
    return float(v.min()), float(v.max())


def axis_range(df: pd.DataFrame, axis: str, scales: Optional[PanelScales]) -> tuple[float, float]:
    """Displayed range of an axis: the scale range if known, else the data range.

    Raises:
        InvalidParameterError: If neither the scale nor the data give a range.
    """
    if scales is not None and scales.axis(axis).range is not None:
        return scales.axis(axis).range  # type: ignore[return-value]
    rng = _data_range(df[axis])
    if rng is None:
        raise InvalidParameterError(f"No finite values to derive a range for axis {axis!r}")
    return rng


def is_discrete_axis(df: pd.DataFrame, axis: str, scales: Optional[PanelScales]) -> bool:
    """True if the axis is declared discrete or its column is not numeric."""
    if scales is not None and scales.axis(axis).discrete:
        return True
    col = df[axis]
    return str(col.dtype) == "category" or getattr(col.dtype, "kind", None) in {"O", "b", "U", "S"}


def resolution(values, zero: bool = False, discrete: bool = False) -> float:
    """Smallest gap between distinct values, used to size default jitter.

    Integer-valued columns, discrete axes and zero-range input have a
    resolution of 1. With zero=True the value 0 is included among the
    distinct values.
    """
    if discrete:
        return 1.0
    arr = np.asarray(values)
    if arr.dtype.kind in {"i", "u", "b"}:
        return 1.0
    arr = arr.astype(float)
    arr = arr[np.isfinite(arr)]
    if len(arr) == 0 or arr.min() == arr.max():
        return 1.0
    if zero:
        arr = np.append(arr, 0.0)
    u = np.unique(arr)
    gaps = np.diff(u)
    return float(gaps.min())
