"""Nudge relative to a center point (``position_nudge_center``).

Directions:
- "none": fixed (x, y) offsets for every row.
- "radial": the (x, y) magnitudes are decomposed along the line from the
  center through each observation, pushing it away from the center
  (toward it for negative magnitudes).
- "split": each offset is signed by the side of the center the observation
  lies on. Observations exactly on a center line get the full segment length
  along the other axis so all connectors have the same length.

Centers are numbers or reducers (e.g. np.mean, np.median) applied to each
group's coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from nicenudge.config import options_from_dict, options_to_dict
from nicenudge.frames import DataLike
from nicenudge.grouping import group_indices
from nicenudge.nudge.base import (
    add_origin,
    apply_nudge,
    as_float,
    check_choice,
    is_active,
    recycle,
    run_strategy,
)
from nicenudge.scales import PanelScales, is_discrete_axis
from nicenudge.utils.logging import get_logger

logger = get_logger(__name__)

CenterLike = Union[None, float, Sequence[float], Callable[[np.ndarray], float]]
NudgeLike = Union[float, Sequence[float]]

DIRECTIONS = ("none", "radial", "split")
KEPT_ORIGIN_CHOICES = ("original", "none")


def infer_direction(center_x: CenterLike, center_y: CenterLike) -> str:
    """Default direction from which centers were given: none, one, or both."""
    if center_x is None and center_y is None:
        return "none"
    if (center_x is None) != (center_y is None):
        return "split"
    return "radial"


def resolve_center(center: CenterLike, values: np.ndarray) -> float:
    """Center of one group: reducer result, first number, or -inf for anything else."""
    if callable(center):
        return float(center(values))
    arr = np.atleast_1d(np.asarray(center, dtype=object))
    if len(arr) and isinstance(arr[0], (int, float, np.number)) and not isinstance(arr[0], bool):
        return float(arr[0])
    # no usable center: every observation counts as lying on the positive side
    return -np.inf


def radial_nudge(
    dx: np.ndarray,
    dy: np.ndarray,
    x: np.ndarray,
    y: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """Decompose magnitudes (x, y) along the direction center -> observation.

    Observations on the center have no direction; they get (x, y) unchanged.
    """
    angle = np.arctan2(dy, dx) + np.pi / 2
    angle = np.where((x == 0) & (np.cos(angle) == 0), 0.0, angle)
    angle = np.where((y == 0) & (np.sin(angle) == 0), np.pi / 2, angle)
    x_nudge = x * np.sin(angle)
    y_nudge = -y * np.cos(angle)
    at_center = (dx == 0) & (dy == 0)
    x_nudge = np.where(at_center, x, x_nudge)
    y_nudge = np.where(at_center, y, y_nudge)
    return x_nudge, y_nudge


def split_nudge(
    dx: np.ndarray,
    dy: np.ndarray,
    x: np.ndarray,
    y: np.ndarray,
    scalar: bool,
) -> tuple[np.ndarray, np.ndarray]:
    """Sign magnitudes (x, y) by the side of the center each observation is on."""
    xx, yy = x, y
    if scalar:
        segment_length = np.hypot(x, y)
        xx = np.where(dy == 0, segment_length * np.sign(x), x)
        yy = np.where(dx == 0, segment_length * np.sign(y), y)
    return xx * np.sign(dx), yy * np.sign(dy)


@dataclass(frozen=True)
class NudgeCenter:
    """Nudge away from (or toward) a center, keeping the original position.

    Attributes:
        x, y: Nudge magnitudes (scalar, or vector recycled over rows).
        center_x, center_y: Number or reducer. Missing centers default to
            np.mean when direction is not "none".
        direction: "none", "radial" or "split". None infers it from the centers:
            no centers -> "none", one -> "split", both -> "radial".
        obey_grouping: Compute centers per group. None infers it per call:
            False for discrete axes or direction "none", else True.
        kept_origin: "original" appends x_orig/y_orig, "none" does not.
    """
    x: NudgeLike = 0.0
    y: NudgeLike = 0.0
    center_x: CenterLike = None
    center_y: CenterLike = None
    direction: Optional[str] = None
    obey_grouping: Optional[bool] = None
    kept_origin: str = "original"

    def __post_init__(self) -> None:
        direction = self.direction
        if direction is None:
            direction = infer_direction(self.center_x, self.center_y)
        if direction != "none":
            if self.center_x is None:
                object.__setattr__(self, "center_x", np.mean)
            if self.center_y is None:
                object.__setattr__(self, "center_y", np.mean)
        object.__setattr__(self, "direction", direction)
        object.__setattr__(self, "kept_origin", check_choice("kept_origin", self.kept_origin, KEPT_ORIGIN_CHOICES))

    def resolve_obey_grouping(self, df: pd.DataFrame, scales: Optional[PanelScales]) -> bool:
        if self.obey_grouping is not None:
            return bool(self.obey_grouping)
        if is_discrete_axis(df, "x", scales) or is_discrete_axis(df, "y", scales) or self.direction == "none":
            return False
        return True

    def nudges(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> tuple[np.ndarray, np.ndarray]:
        """Per-row (x_nudge, y_nudge)."""
        n = len(df)
        xv = recycle(self.x, n)
        yv = recycle(self.y, n)
        direction = self.direction
        if direction not in DIRECTIONS:
            logger.warning(f'Ignoring unrecognized direction "{direction}".')
            return xv, yv
        if direction == "none":
            return xv, yv

        obey = self.resolve_obey_grouping(df, scales)
        scalar = np.size(self.x) == 1 and np.size(self.y) == 1
        xs = as_float(df["x"])
        ys = as_float(df["y"])
        x_nudge = np.zeros(n)
        y_nudge = np.zeros(n)
        for key, idx in group_indices(df, obey).items():
            x_ctr = resolve_center(self.center_x, xs[idx])
            y_ctr = resolve_center(self.center_y, ys[idx])
            logger.debug(f"NudgeCenter: group={key!r}, center=({x_ctr:.6g}, {y_ctr:.6g}), direction={direction}")
            dx = xs[idx] - x_ctr
            dy = ys[idx] - y_ctr
            if direction == "radial":
                x_nudge[idx], y_nudge[idx] = radial_nudge(dx, dy, xv[idx], yv[idx])
            else:
                x_nudge[idx], y_nudge[idx] = split_nudge(dx, dy, xv[idx], yv[idx], scalar)
        return x_nudge, y_nudge

    def compute_panel(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> pd.DataFrame:
        x_orig = df["x"].to_numpy(copy=True)
        y_orig = df["y"].to_numpy(copy=True)
        x_nudge, y_nudge = self.nudges(df, scales)
        # transform only the dimensions for which non-zero nudging is requested
        x_new = x_orig + x_nudge if is_active(self.x) else None
        y_new = y_orig + y_nudge if is_active(self.y) else None
        df = apply_nudge(df, x_new, y_new)
        return add_origin(df, x_orig, y_orig, self.kept_origin)

    def compute(self, data: DataLike, scales: Optional[PanelScales] = None) -> DataLike:
        """Nudge data; returns the same container type with x_orig/y_orig added."""
        return run_strategy(self, data, scales)

    def to_dict(self) -> dict[str, Any]:
        return options_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NudgeCenter":
        return options_from_dict(cls, data)


def nudge_keep(x: NudgeLike = 0.0, y: NudgeLike = 0.0) -> NudgeCenter:
    """Plain fixed nudge that keeps the original position."""
    return NudgeCenter(x=x, y=y)


def nudge_center(
    data: DataLike,
    scales: Optional[PanelScales] = None,
    **options: Any,
) -> DataLike:
    """Nudge data relative to a center. Options as for NudgeCenter."""
    return NudgeCenter(**options).compute(data, scales)
