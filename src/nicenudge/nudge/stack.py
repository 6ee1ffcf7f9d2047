"""Stack then nudge, carrying ranges along (``position_stack_minmax``).

Observations sharing an x position are stacked on the ``var`` column
(positive and negative values in separate stacks, as for stacked columns).
The y position of each observation is placed at ``vjust`` within its slice
of the stack, and any ``ymin``/``ymax`` columns are shifted by the same
amount, so error bars and ranges follow the stacked point. With fill=True
every stack is rescaled to span one unit.

After stacking a plain or split nudge is applied. "split" signs the nudge by
the side of zero the stacked observation lies on, which suits stacks with
negative slices.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from nicenudge.config import options_from_dict, options_to_dict
from nicenudge.errors import InvalidParameterError
from nicenudge.frames import DataLike, require_columns
from nicenudge.nudge.base import add_origin, apply_nudge, as_float, check_choice, is_active, recycle, run_strategy
from nicenudge.scales import PanelScales
from nicenudge.utils.logging import get_logger

logger = get_logger(__name__)

NudgeLike = Union[float, Sequence[float]]

DIRECTIONS = ("none", "split", "split_x", "split_y")
KEPT_ORIGIN_CHOICES = ("stacked", "original", "none")
STACK_VARS = ("y", "ymax", "ymin")

# y-like columns moved together with the stacked position
RANGE_COLUMNS = ("y", "ymin", "ymax")


def stack_offsets(
    x: np.ndarray,
    heights: np.ndarray,
    *,
    vjust: float = 1.0,
    reverse: bool = False,
    fill: bool = False,
) -> tuple[np.ndarray, np.ndarray]:
    """Per-row (shift, scale) that place each row in its stack.

    A y-like value v of a row becomes (v + shift) * scale. For the stacked
    variable itself that lands at vjust within the row's slice: 0 at the
    bottom, 1 at the top.

    Rows are stacked in row order within each x position (reversed with
    reverse=True); non-finite heights are not stacked and do not add to the
    stack.
    """
    n = len(x)
    shift = np.zeros(n)
    scale = np.ones(n)
    h = np.where(np.isfinite(heights), heights, 0.0)
    codes, _ = pd.factorize(x, use_na_sentinel=True)
    for code in pd.unique(codes):
        idx = np.flatnonzero(codes == code)
        if reverse:
            idx = idx[::-1]
        hh = h[idx]
        negative = hh < 0
        base = np.zeros(len(idx))
        # positive and negative values stack away from zero separately
        for part in (~negative, negative):
            if part.any():
                base[part] = np.concatenate([[0.0], np.cumsum(hh[part])[:-1]])
        shift[idx] = base + (vjust - 1.0) * hh
        if fill:
            total = np.abs(hh).sum()
            if total > 0:
                scale[idx] = 1.0 / total
    return shift, scale


def split_signs(values: np.ndarray) -> np.ndarray:
    """+1 on the non-negative side of zero, -1 on the negative side."""
    return np.where(values < 0, -1.0, 1.0)


@dataclass(frozen=True)
class StackMinMax:
    """Stack observations, move their ranges along, then nudge.

    Attributes:
        vjust: Position within each stacked slice, 0 bottom to 1 top.
        reverse: Stack in reverse row order.
        var: Column whose values are stacked: "y", "ymax" or "ymin".
        fill: Rescale each stack to span one unit.
        x, y: Nudge magnitudes (scalar, or vector recycled over rows).
        direction: "none", "split", "split_x" or "split_y".
        kept_origin: Position stored in x_orig/y_orig: "stacked" (before
            nudging), "original" (before stacking) or "none".
    """
    vjust: float = 1.0
    reverse: bool = False
    var: str = "y"
    fill: bool = False
    x: NudgeLike = 0.0
    y: NudgeLike = 0.0
    direction: str = "none"
    kept_origin: str = "stacked"

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", check_choice("direction", self.direction, DIRECTIONS))
        object.__setattr__(self, "kept_origin", check_choice("kept_origin", self.kept_origin, KEPT_ORIGIN_CHOICES))
        object.__setattr__(self, "var", check_choice("var", self.var, STACK_VARS))
        if self.vjust is None or not np.isfinite(self.vjust):
            raise InvalidParameterError(f"'vjust' must be a finite number, got {self.vjust!r}")

    def stack(self, df: pd.DataFrame) -> pd.DataFrame:
        """Stacked copy of df; x is unchanged, y-like columns are moved."""
        require_columns(df, [self.var])
        shift, scale = stack_offsets(
            df["x"].to_numpy(),
            as_float(df[self.var]),
            vjust=float(self.vjust),
            reverse=bool(self.reverse),
            fill=bool(self.fill),
        )
        out = df.copy()
        for col in RANGE_COLUMNS:
            if col in out.columns:
                out[col] = (as_float(out[col]) + shift) * scale
        return out

    def compute_panel(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> pd.DataFrame:
        x_orig = df["x"].to_numpy(copy=True)
        y_orig = df["y"].to_numpy(copy=True)
        df = self.stack(df)
        n = len(df)
        x_stacked = df["x"].to_numpy(copy=True)
        y_stacked = as_float(df["y"])

        x_sign = np.ones(n)
        y_sign = np.ones(n)
        if self.direction in ("split", "split_x"):
            x_sign = split_signs(as_float(df["x"]))
        if self.direction in ("split", "split_y"):
            y_sign = split_signs(y_stacked)

        # nudge only the dimensions for which non-zero nudging is requested
        x_new = as_float(df["x"]) + recycle(self.x, n) * x_sign if is_active(self.x) else None
        y_new = y_stacked + recycle(self.y, n) * y_sign if is_active(self.y) else None
        df = apply_nudge(df, x_new, y_new)
        logger.debug(
            f"StackMinMax: rows={n}, var={self.var}, vjust={self.vjust}, fill={self.fill}, "
            f"direction={self.direction}"
        )

        if self.kept_origin == "stacked":
            return add_origin(df, x_stacked, y_stacked, "stacked")
        return add_origin(df, x_orig, y_orig, self.kept_origin)

    def compute(self, data: DataLike, scales: Optional[PanelScales] = None) -> DataLike:
        """Stack and nudge data; returns the same container type."""
        return run_strategy(self, data, scales)

    def to_dict(self) -> dict[str, Any]:
        return options_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StackMinMax":
        return options_from_dict(cls, data)


def fill_minmax(**options: Any) -> StackMinMax:
    """StackMinMax with every stack rescaled to one unit (``position_fill_minmax``)."""
    return StackMinMax(fill=True, **options)


def stack_minmax(data: DataLike, scales: Optional[PanelScales] = None, **options: Any) -> DataLike:
    """Stack and nudge data. Options as for StackMinMax."""
    return StackMinMax(**options).compute(data, scales)
