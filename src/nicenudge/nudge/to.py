"""Nudge to absolute target positions (``position_nudge_to``).

Targets whose length equals the number of rows are used positionally.
Shorter targets are recycled, sorted, and handed out by rank: the k-th
smallest target goes to the observation with the k-th smallest coordinate
along that axis. The "spread" action replaces targets by evenly spaced (or
proportionally spaced) positions over the target range, or over the data
range when no targets are given.

The output keeps the input row order; only the assignment uses ranks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from nicenudge.config import options_from_dict, options_to_dict
from nicenudge.errors import InvalidParameterError
from nicenudge.frames import DataLike
from nicenudge.nudge.base import add_origin, apply_nudge, as_float, check_choice, run_strategy
from nicenudge.scales import PanelScales
from nicenudge.utils.logging import get_logger

logger = get_logger(__name__)

TargetLike = Optional[Union[float, Sequence[float]]]
ExpansionLike = Union[float, Sequence[float]]

ACTIONS = ("none", "spread")
DISTANCES = ("equal", "proportional")
KEPT_ORIGIN_CHOICES = ("original", "none")


def _ranks(values: np.ndarray) -> np.ndarray:
    """0-based rank of each value, ties broken by row order."""
    return np.argsort(np.argsort(values, kind="stable"), kind="stable")


def _expand(lo: float, hi: float, expansion: ExpansionLike) -> tuple[float, float]:
    exp = np.resize(np.atleast_1d(np.asarray(expansion, dtype=float)), 2)
    span = hi - lo
    return lo - span * exp[0], hi + span * exp[1]


def axis_targets(
    values: np.ndarray,
    targets: TargetLike,
    action: str = "none",
    distance: str = "equal",
    expansion: ExpansionLike = 0.0,
) -> Optional[np.ndarray]:
    """New coordinates along one axis, or None if the axis is left alone.

    Args:
        values: Current coordinates (float).
        targets: Target positions, or None.
        action: "none" or "spread".
        distance: Spacing for "spread": "equal" or "proportional".
        expansion: Fraction of the range added at each end (negative contracts);
            scalar or (lower, upper).
    """
    n = len(values)
    t = None if targets is None else np.atleast_1d(np.asarray(targets, dtype=float))
    if t is not None and len(t) == 0:
        t = None

    if action == "none":
        if t is None:
            return None
        if len(t) == n:
            return t.copy()
        return np.sort(np.resize(t, n))[_ranks(values)]

    # spread
    if n == 0:
        return values.copy()
    if t is None:
        lo, hi = float(np.nanmin(values)), float(np.nanmax(values))
    else:
        lo, hi = float(t.min()), float(t.max())
    lo, hi = _expand(lo, hi, expansion)
    v_lo, v_hi = np.nanmin(values), np.nanmax(values)
    if distance == "proportional" and v_hi > v_lo:
        return lo + (values - v_lo) / (v_hi - v_lo) * (hi - lo)
    return np.linspace(lo, hi, n)[_ranks(values)]


@dataclass(frozen=True)
class NudgeTo:
    """Nudge to target positions, keeping the original position.

    Attributes:
        x, y: Target positions (scalar or vector), or None to leave the axis alone.
        x_action, y_action: "none" uses the targets, "spread" spaces positions out.
        x_distance, y_distance: "equal" or "proportional" spacing for "spread".
        x_expansion, y_expansion: Fraction of the range added to each end when spreading.
        kept_origin: "original" appends x_orig/y_orig, "none" does not.
    """
    x: TargetLike = None
    y: TargetLike = None
    x_action: str = "none"
    y_action: str = "none"
    x_distance: str = "equal"
    y_distance: str = "equal"
    x_expansion: ExpansionLike = 0.0
    y_expansion: ExpansionLike = 0.0
    kept_origin: str = "original"

    def __post_init__(self) -> None:
        for name, choices in (
            ("x_action", ACTIONS),
            ("y_action", ACTIONS),
            ("x_distance", DISTANCES),
            ("y_distance", DISTANCES),
            ("kept_origin", KEPT_ORIGIN_CHOICES),
        ):
            object.__setattr__(self, name, check_choice(name, getattr(self, name), choices))
        for name in ("x_expansion", "y_expansion"):
            exp = np.atleast_1d(np.asarray(getattr(self, name), dtype=float))
            if len(exp) not in (1, 2) or not np.all(np.isfinite(exp)):
                raise InvalidParameterError(f"'{name}' must be one or two finite numbers, got {getattr(self, name)!r}")

    def compute_panel(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> pd.DataFrame:
        x_orig = df["x"].to_numpy(copy=True)
        y_orig = df["y"].to_numpy(copy=True)
        x_new = None
        y_new = None
        if self.x is not None or self.x_action != "none":
            x_new = axis_targets(as_float(df["x"]), self.x, self.x_action, self.x_distance, self.x_expansion)
        if self.y is not None or self.y_action != "none":
            y_new = axis_targets(as_float(df["y"]), self.y, self.y_action, self.y_distance, self.y_expansion)
        logger.debug(
            f"NudgeTo: rows={len(df)}, x_action={self.x_action}, y_action={self.y_action}, "
            f"x_moved={x_new is not None}, y_moved={y_new is not None}"
        )
        df = apply_nudge(df, x_new, y_new)
        return add_origin(df, x_orig, y_orig, self.kept_origin)

    def compute(self, data: DataLike, scales: Optional[PanelScales] = None) -> DataLike:
        """Move data to its targets; returns the same container type."""
        return run_strategy(self, data, scales)

    def to_dict(self) -> dict[str, Any]:
        return options_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NudgeTo":
        return options_from_dict(cls, data)


def nudge_to(data: DataLike, scales: Optional[PanelScales] = None, **options: Any) -> DataLike:
    """Move data to target positions. Options as for NudgeTo."""
    return NudgeTo(**options).compute(data, scales)
