"""Nudge perpendicular to a line or curve (``position_nudge_line``).

A reference curve is fitted to each group (or given as a fixed line) and
every observation is moved along the curve's normal at its x position. The
normal is computed in coordinates scaled by the data spans, so a nudge looks
perpendicular on a plot whose axes fill the panel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.interpolate import make_smoothing_spline

from nicenudge.config import normalize_choice, options_from_dict, options_to_dict
from nicenudge.errors import DegenerateInputError, InvalidParameterError
from nicenudge.frames import DataLike
from nicenudge.grouping import group_indices
from nicenudge.nudge.base import add_origin, apply_nudge, as_float, check_choice, run_strategy
from nicenudge.scales import PanelScales
from nicenudge.utils.logging import get_logger

logger = get_logger(__name__)

NudgeLike = Optional[Union[float, Sequence[float]]]

METHODS = ("spline", "lm")
DIRECTIONS = ("automatic", "split", "none")
KEPT_ORIGIN_CHOICES = ("original", "none")

# make_smoothing_spline needs this many distinct x values
MIN_SPLINE_POINTS = 5


def _span(values: np.ndarray) -> float:
    finite = values[np.isfinite(values)]
    if len(finite) == 0:
        return 0.0
    return float(finite.max() - finite.min())


def fit_curve(
    x: np.ndarray,
    y: np.ndarray,
    method: str = "spline",
    formula_degree: int = 1,
    abline: Optional[Sequence[float]] = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Curve value and slope at each x.

    Args:
        x, y: Coordinates of one group.
        method: "spline" (smoothing spline) or "lm" (polynomial least squares).
        formula_degree: Polynomial degree for "lm".
        abline: (intercept, slope) of a fixed line; overrides method.

    Raises:
        DegenerateInputError: Too few distinct x values to fit the curve.
    """
    if abline is not None:
        intercept, slope = float(abline[0]), float(abline[1])
        return intercept + slope * x, np.full(len(x), slope)

    ux, inverse, counts = np.unique(x, return_inverse=True, return_counts=True)
    if method == "lm":
        if len(ux) <= formula_degree:
            raise DegenerateInputError(
                f"Need more than {formula_degree} distinct x values for a degree {formula_degree} fit, got {len(ux)}"
            )
        coef = np.polyfit(x, y, formula_degree)
        return np.polyval(coef, x), np.polyval(np.polyder(coef), x)

    if len(ux) < MIN_SPLINE_POINTS:
        raise DegenerateInputError(
            f"Need at least {MIN_SPLINE_POINTS} distinct x values for a smoothing spline, got {len(ux)}"
        )
    # average y at tied x, weighting by the number of ties
    uy = np.bincount(inverse, weights=y) / counts
    spl = make_smoothing_spline(ux, uy, w=counts.astype(float))
    return spl(x), spl.derivative()(x)


@dataclass(frozen=True)
class NudgeLine:
    """Nudge away from a fitted curve or a fixed line, keeping the original position.

    Attributes:
        x, y: Nudge magnitudes along the normal. None uses xy_relative times the
            data span of that axis.
        xy_relative: Relative magnitudes (scalar or (x, y)) used when x or y is None.
        abline: (intercept, slope) of a fixed reference line.
        method: "spline" or "lm".
        formula_degree: Polynomial degree for "lm".
        direction: "automatic" or "split" move observations away from the curve
            on their own side; "none" moves all to the same side.
        line_nudge: Multiplier of each observation's distance from the curve.
        kept_origin: "original" appends x_orig/y_orig, "none" does not.
    """
    x: NudgeLike = None
    y: NudgeLike = None
    xy_relative: Union[float, Sequence[float]] = (0.03, 0.03)
    abline: Optional[Sequence[float]] = None
    method: str = "spline"
    formula_degree: int = 1
    direction: str = "automatic"
    line_nudge: float = 1.0
    kept_origin: str = "original"

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", check_choice("method", self.method, METHODS))
        object.__setattr__(self, "kept_origin", check_choice("kept_origin", self.kept_origin, KEPT_ORIGIN_CHOICES))
        object.__setattr__(self, "direction", normalize_choice(self.direction))
        if self.abline is not None and len(self.abline) != 2:
            raise InvalidParameterError(f"'abline' must be (intercept, slope), got {self.abline!r}")
        if int(self.formula_degree) < 1:
            raise InvalidParameterError(f"'formula_degree' must be at least 1, got {self.formula_degree!r}")
        if not np.isfinite(self.line_nudge):
            raise InvalidParameterError(f"'line_nudge' must be finite, got {self.line_nudge!r}")

    def magnitudes(self, xs: np.ndarray, ys: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Per-row (x, y) nudge magnitudes before projection onto the normal."""
        rel = np.resize(np.atleast_1d(np.asarray(self.xy_relative, dtype=float)), 2)
        n = len(xs)
        mx = rel[0] * _span(xs) if self.x is None else self.x
        my = rel[1] * _span(ys) if self.y is None else self.y
        return np.resize(np.atleast_1d(np.asarray(mx, dtype=float)), n), np.resize(np.atleast_1d(np.asarray(my, dtype=float)), n)

    def sides(self, ys: np.ndarray, curve: np.ndarray) -> np.ndarray:
        direction = self.direction
        if direction not in DIRECTIONS:
            logger.warning(f'Ignoring unrecognized direction "{direction}".')
            direction = "none"
        if direction == "none":
            return np.ones(len(ys))
        return np.where(ys >= curve, 1.0, -1.0)

    def compute_panel(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> pd.DataFrame:
        x_orig = df["x"].to_numpy(copy=True)
        y_orig = df["y"].to_numpy(copy=True)
        xs = as_float(df["x"])
        ys = as_float(df["y"])
        n = len(df)
        mag_x, mag_y = self.magnitudes(xs, ys)
        x_span = _span(xs) or 1.0
        y_span = _span(ys) or 1.0

        x_new = xs.copy()
        y_new = ys.copy()
        for key, idx in group_indices(df, True).items():
            curve, slope = fit_curve(xs[idx], ys[idx], self.method, int(self.formula_degree), self.abline)
            angle = np.arctan2(slope * x_span / y_span, 1.0)
            side = self.sides(ys[idx], curve)
            y_base = curve + (ys[idx] - curve) * self.line_nudge
            x_new[idx] = xs[idx] - mag_x[idx] * np.sin(angle) * side
            y_new[idx] = y_base + mag_y[idx] * np.cos(angle) * side
            logger.debug(f"NudgeLine: group={key!r}, rows={len(idx)}, method={'abline' if self.abline is not None else self.method}")

        logger.debug(f"NudgeLine: rows={n}, direction={self.direction}, line_nudge={self.line_nudge}")
        df = apply_nudge(df, x_new, y_new)
        return add_origin(df, x_orig, y_orig, self.kept_origin)

    def compute(self, data: DataLike, scales: Optional[PanelScales] = None) -> DataLike:
        """Nudge data away from the curve; returns the same container type."""
        return run_strategy(self, data, scales)

    def to_dict(self) -> dict[str, Any]:
        return options_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NudgeLine":
        return options_from_dict(cls, data)


def nudge_line(data: DataLike, scales: Optional[PanelScales] = None, **options: Any) -> DataLike:
    """Nudge data relative to a line or curve. Options as for NudgeLine."""
    return NudgeLine(**options).compute(data, scales)
