"""Density-based observation filtering.

Keeps a quota of observations from the sparse (or dense) regions of a panel,
judged by a 1D kernel density estimate along one axis (Dens1dFilter) or a 2D
estimate over both axes (Dens2dFilter).

Steps:
1. Validate keep_fraction / keep_number.
2. Effective fraction eff = min(keep_fraction, keep_number / n_rows).
3. eff == 1 keeps every row, eff == 0 keeps none (no density computed).
4. Otherwise estimate the density over the panel's displayed range and read
   it at each observation.
5. Sparse: keep density < quantile(density, eff).
   Dense: keep density >= quantile(density, 1 - eff).
6. invert_selection returns the complement.

With by_group=True steps 2-6 run independently for each group and the
results are put back in the original row order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence, Union

import numpy as np
import pandas as pd

from nicenudge.config import options_from_dict, options_to_dict
from nicenudge.density.kde import BandwidthLike, KERNELS, kde1d, kde2d
from nicenudge.errors import InvalidParameterError
from nicenudge.frames import DataLike, from_pandas, require_columns, to_pandas
from nicenudge.grouping import apply_by_group
from nicenudge.scales import PanelScales, axis_range
from nicenudge.utils.logging import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Selection quota
# -----------------------------------------------------------------------------


def effective_fraction(n_rows: int, keep_fraction: float, keep_number: float) -> float:
    """Fraction of rows to keep once keep_number caps keep_fraction."""
    if n_rows * keep_fraction > keep_number:
        return keep_number / n_rows
    return float(keep_fraction)


def validate_quota(keep_fraction: float, keep_number: float) -> None:
    """Raise InvalidParameterError for an out-of-range or missing quota."""
    if keep_fraction is None or np.isnan(keep_fraction) or keep_fraction < 0 or keep_fraction > 1:
        raise InvalidParameterError(f"Out of range or missing value for 'keep_fraction': {keep_fraction}")
    if keep_number is None or np.isnan(keep_number) or keep_number < 0:
        raise InvalidParameterError(f"Out of range or missing value for 'keep_number': {keep_number}")


def quantile_mask(density: np.ndarray, fraction: float, keep_sparse: bool) -> np.ndarray:
    """Rows in the sparse (below the fraction quantile) or dense (at or above
    the 1 - fraction quantile) tail of density."""
    if keep_sparse:
        return density < np.quantile(density, fraction)
    return density >= np.quantile(density, 1.0 - fraction)


def select_rows(
    n_rows: int,
    density: Callable[[], np.ndarray],
    *,
    keep_fraction: float,
    keep_number: float,
    keep_sparse: bool,
    invert_selection: bool,
) -> np.ndarray:
    """Boolean keep-mask of length n_rows.

    density is only called when the effective fraction is strictly between 0 and 1.
    """
    eff = effective_fraction(n_rows, keep_fraction, keep_number)
    if n_rows == 0:
        keep = np.zeros(0, dtype=bool)
    elif eff == 1:
        keep = np.ones(n_rows, dtype=bool)
    elif eff == 0:
        keep = np.zeros(n_rows, dtype=bool)
    else:
        keep = quantile_mask(np.asarray(density(), dtype=float), eff, keep_sparse)
    if invert_selection:
        keep = ~keep
    logger.debug(
        f"select_rows: n_rows={n_rows}, eff={eff:.4g}, keep_sparse={keep_sparse}, "
        f"invert={invert_selection}, kept={int(keep.sum())}"
    )
    return keep


def _drop_missing(df: pd.DataFrame, columns: Sequence[str], na_rm: bool) -> pd.DataFrame:
    finite = np.ones(len(df), dtype=bool)
    for col in columns:
        finite &= np.isfinite(pd.to_numeric(df[col], errors="coerce").to_numpy(dtype=float))
    n_missing = int((~finite).sum())
    if n_missing == 0:
        return df
    if not na_rm:
        logger.warning(f"Removed {n_missing} rows containing non-finite values ({', '.join(columns)})")
    return df[finite]


# -----------------------------------------------------------------------------
# Strategy protocol
# -----------------------------------------------------------------------------


class DensityFilter(Protocol):
    """Role shared by the density filters."""

    by_group: bool

    def select(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> np.ndarray:
        ...

    def compute(self, data: DataLike, scales: Optional[PanelScales] = None) -> DataLike:
        ...


def _run(flt: Any, columns: Sequence[str], data: DataLike, scales: Optional[PanelScales]) -> DataLike:
    df, kind = to_pandas(data)
    require_columns(df, columns)
    df = _drop_missing(df, columns, flt.na_rm)
    if scales is None:
        # group-wise filtering still estimates over the whole panel's range
        scales = PanelScales.from_data(df)
    if flt.by_group:
        out = apply_by_group(df, lambda part: flt.compute_panel(part, scales))
    else:
        out = flt.compute_panel(df, scales)
    logger.debug(f"{type(flt).__name__}: kept {len(out)} of {len(df)} rows (by_group={flt.by_group})")
    return from_pandas(out, kind)


# -----------------------------------------------------------------------------
# 1D filter
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Dens1dFilter:
    """Filter by the 1D density of the values mapped to one axis.

    Attributes:
        keep_fraction: Fraction of rows to keep, in [0, 1].
        keep_number: Maximum number of rows to keep.
        keep_sparse: Keep rows from the sparsest (True) or densest (False) regions.
        invert_selection: Return the complement of the selection.
        bw: Bandwidth, or rule name ("nrd0", "nrd", "SJ").
        kernel: Kernel name.
        adjust: Multiplier applied to the bandwidth.
        n: Grid points for the density estimate.
        orientation: Axis along which density is computed, "x" or "y".
        by_group: Filter each group independently.
        na_rm: Drop rows with missing coordinates silently (else with a warning).
    """
    keep_fraction: float = 0.10
    keep_number: float = math.inf
    keep_sparse: bool = True
    invert_selection: bool = False
    bw: BandwidthLike = "SJ"
    kernel: str = "gaussian"
    adjust: float = 1.0
    n: int = 512
    orientation: str = "x"
    by_group: bool = False
    na_rm: bool = True

    def __post_init__(self) -> None:
        validate_quota(self.keep_fraction, self.keep_number)
        if self.orientation not in ("x", "y"):
            raise InvalidParameterError(f"'orientation' must be 'x' or 'y', got {self.orientation!r}")
        if str(self.kernel).lower() not in KERNELS:
            raise InvalidParameterError(f"Unknown kernel {self.kernel!r}, expected one of {sorted(KERNELS)}")

    def density(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> np.ndarray:
        """Density at each row, estimated over the axis' displayed range."""
        values = df[self.orientation].to_numpy(dtype=float)
        lims = axis_range(df, self.orientation, scales)
        est = kde1d(values, bw=self.bw, kernel=self.kernel, adjust=self.adjust, n=self.n, lims=lims)
        return est.evaluate(values)

    def select(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> np.ndarray:
        """Keep-mask for the rows of one panel or group."""
        return select_rows(
            len(df),
            lambda: self.density(df, scales),
            keep_fraction=self.keep_fraction,
            keep_number=self.keep_number,
            keep_sparse=self.keep_sparse,
            invert_selection=self.invert_selection,
        )

    def compute_panel(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> pd.DataFrame:
        return df[self.select(df, scales)]

    compute_group = compute_panel

    def compute(self, data: DataLike, scales: Optional[PanelScales] = None) -> DataLike:
        """Filter data by panel, or by group when by_group is set."""
        return _run(self, [self.orientation], data, scales)

    def to_dict(self) -> dict[str, Any]:
        return options_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Dens1dFilter":
        return options_from_dict(cls, data)


# -----------------------------------------------------------------------------
# 2D filter
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Dens2dFilter:
    """Filter by the 2D density of the (x, y) observations.

    Attributes:
        keep_fraction: Fraction of rows to keep, in [0, 1].
        keep_number: Maximum number of rows to keep.
        keep_sparse: Keep rows from the sparsest (True) or densest (False) regions.
        invert_selection: Return the complement of the selection.
        h: Bandwidth per axis (scalar recycled). None uses the normal reference rule.
        n: Grid points per axis. None uses 8 * floor(sqrt(n_rows)).
        by_group: Filter each group independently.
        na_rm: Drop rows with missing coordinates silently (else with a warning).
    """
    keep_fraction: float = 0.10
    keep_number: float = math.inf
    keep_sparse: bool = True
    invert_selection: bool = False
    h: Optional[Union[float, Sequence[float]]] = None
    n: Optional[int] = None
    by_group: bool = False
    na_rm: bool = True

    def __post_init__(self) -> None:
        validate_quota(self.keep_fraction, self.keep_number)

    def grid_size(self, n_rows: int) -> int:
        """Grid points per axis for a panel or group of n_rows observations."""
        if self.n is not None:
            return int(self.n)
        return max(2, int(math.floor(math.sqrt(n_rows))) * 8)

    def density(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> np.ndarray:
        """Density of the grid cell each row falls in."""
        x = df["x"].to_numpy(dtype=float)
        y = df["y"].to_numpy(dtype=float)
        lims = (*axis_range(df, "x", scales), *axis_range(df, "y", scales))
        est = kde2d(x, y, h=self.h, n=self.grid_size(len(df)), lims=lims)
        return est.lookup(x, y)

    def select(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> np.ndarray:
        """Keep-mask for the rows of one panel or group."""
        return select_rows(
            len(df),
            lambda: self.density(df, scales),
            keep_fraction=self.keep_fraction,
            keep_number=self.keep_number,
            keep_sparse=self.keep_sparse,
            invert_selection=self.invert_selection,
        )

    def compute_panel(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> pd.DataFrame:
        return df[self.select(df, scales)]

    compute_group = compute_panel

    def compute(self, data: DataLike, scales: Optional[PanelScales] = None) -> DataLike:
        """Filter data by panel, or by group when by_group is set."""
        return _run(self, ["x", "y"], data, scales)

    def to_dict(self) -> dict[str, Any]:
        return options_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Dens2dFilter":
        return options_from_dict(cls, data)


# -----------------------------------------------------------------------------
# Functional entry points
# -----------------------------------------------------------------------------


def dens1d_filter(data: DataLike, scales: Optional[PanelScales] = None, **options: Any) -> DataLike:
    """Filter a panel by 1D density. Options as for Dens1dFilter."""
    return Dens1dFilter(**options).compute(data, scales)


def dens1d_filter_g(data: DataLike, scales: Optional[PanelScales] = None, **options: Any) -> DataLike:
    """Filter each group by its own 1D density. Options as for Dens1dFilter."""
    return Dens1dFilter(by_group=True, **options).compute(data, scales)


def dens2d_filter(data: DataLike, scales: Optional[PanelScales] = None, **options: Any) -> DataLike:
    """Filter a panel by 2D density. Options as for Dens2dFilter."""
    return Dens2dFilter(**options).compute(data, scales)


def dens2d_filter_g(data: DataLike, scales: Optional[PanelScales] = None, **options: Any) -> DataLike:
    """Filter each group by its own 2D density. Options as for Dens2dFilter."""
    return Dens2dFilter(by_group=True, **options).compute(data, scales)
