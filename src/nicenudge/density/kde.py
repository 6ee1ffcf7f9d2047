"""Kernel density estimation primitives.

One-dimensional estimates follow the conventions of R's ``density()``: the
bandwidth is the standard deviation of the kernel, whatever its shape, and
bandwidths can be given as a number or as the name of a selection rule.
Two-dimensional estimates follow ``MASS::kde2d()``: a product of normal
kernels whose standard deviation is a quarter of the per-axis bandwidth.

The estimates are evaluated directly on a regular grid (no FFT binning), so
for the same sample, bandwidth, kernel and grid they are deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

import numpy as np
from scipy import optimize
from scipy.interpolate import CubicSpline
from scipy.stats import norm

from nicenudge.errors import DegenerateInputError, InvalidParameterError
from nicenudge.utils.logging import get_logger

logger = get_logger(__name__)

BandwidthLike = Union[float, str]

# Number of sample values folded into one block of the grid x sample kernel matrix.
_CHUNK = 4096


# -----------------------------------------------------------------------------
# Kernels (bw is the kernel standard deviation)
# -----------------------------------------------------------------------------


def _gaussian(d: np.ndarray, bw: float) -> np.ndarray:
    return norm.pdf(d, scale=bw)


def _rectangular(d: np.ndarray, bw: float) -> np.ndarray:
    a = bw * np.sqrt(3.0)
    return np.where(np.abs(d) < a, 0.5 / a, 0.0)


def _triangular(d: np.ndarray, bw: float) -> np.ndarray:
    a = bw * np.sqrt(6.0)
    ax = np.abs(d)
    return np.where(ax < a, (1.0 - ax / a) / a, 0.0)


def _epanechnikov(d: np.ndarray, bw: float) -> np.ndarray:
    a = bw * np.sqrt(5.0)
    ax = np.abs(d)
    return np.where(ax < a, 0.75 * (1.0 - (ax / a) ** 2) / a, 0.0)


def _biweight(d: np.ndarray, bw: float) -> np.ndarray:
    a = bw * np.sqrt(7.0)
    ax = np.abs(d)
    return np.where(ax < a, 15.0 / 16.0 * (1.0 - (ax / a) ** 2) ** 2 / a, 0.0)


def _cosine(d: np.ndarray, bw: float) -> np.ndarray:
    a = bw / np.sqrt(1.0 / 3.0 - 2.0 / np.pi**2)
    return np.where(np.abs(d) < a, (1.0 + np.cos(np.pi * d / a)) / (2.0 * a), 0.0)


def _optcosine(d: np.ndarray, bw: float) -> np.ndarray:
    a = bw / np.sqrt(1.0 - 8.0 / np.pi**2)
    return np.where(np.abs(d) < a, np.pi / 4.0 * np.cos(np.pi * d / (2.0 * a)) / a, 0.0)


KERNELS: dict[str, Callable[[np.ndarray, float], np.ndarray]] = {
    "gaussian": _gaussian,
    "rectangular": _rectangular,
    "triangular": _triangular,
    "epanechnikov": _epanechnikov,
    "biweight": _biweight,
    "cosine": _cosine,
    "optcosine": _optcosine,
}


def get_kernel(name: str) -> Callable[[np.ndarray, float], np.ndarray]:
    """Look up a kernel by (case-insensitive) name."""
    try:
        return KERNELS[str(name).lower()]
    except KeyError:
        raise InvalidParameterError(
            f"Unknown kernel {name!r}, expected one of {sorted(KERNELS)}"
        ) from None


# -----------------------------------------------------------------------------
# Bandwidth selection
# -----------------------------------------------------------------------------


def _clean(values) -> np.ndarray:
    x = np.asarray(values, dtype=float).ravel()
    return x[np.isfinite(x)]


def _iqr(x: np.ndarray) -> float:
    q1, q3 = np.percentile(x, [25.0, 75.0])
    return float(q3 - q1)


def bw_nrd0(values) -> float:
    """Silverman's rule of thumb, 0.9 * min(sd, IQR/1.34) * n^-1/5.

    Falls back to sd, then |x[0]|, then 1 when the spread is zero.
    """
    x = _clean(values)
    if len(x) < 2:
        raise DegenerateInputError("need at least 2 data points to select a bandwidth")
    hi = float(np.std(x, ddof=1))
    lo = min(hi, _iqr(x) / 1.34)
    if not lo:
        lo = hi or abs(float(x[0])) or 1.0
    return 0.9 * lo * len(x) ** (-0.2)


def bw_nrd(values) -> float:
    """Scott's variation of the normal reference rule, 1.06 * min(sd, IQR/1.34) * n^-1/5."""
    x = _clean(values)
    if len(x) < 2:
        raise DegenerateInputError("need at least 2 data points to select a bandwidth")
    h = _iqr(x) / 1.34
    return 1.06 * min(float(np.std(x, ddof=1)), h) * len(x) ** (-0.2)


def bandwidth_nrd(values) -> float:
    """Normal reference bandwidth on the kde2d scale (four times bw_nrd)."""
    return 4.0 * bw_nrd(values)


def _pair_counts(x: np.ndarray, nb: int) -> tuple[float, np.ndarray]:
    """Bin width and counts of sample pairs by binned distance (lag)."""
    rang = (x.max() - x.min()) * 1.01
    dd = rang / nb
    # bins are truncated toward zero, not floored
    idx = np.trunc(x / dd).astype(np.int64)
    idx -= idx.min()
    c = np.bincount(idx).astype(float)
    full = np.correlate(c, c, mode="full")
    lags = full[len(c) - 1:]
    cnt = np.zeros(nb, dtype=float)
    m = min(nb, len(lags))
    cnt[:m] = lags[:m]
    cnt[0] = float(np.sum(c * (c - 1.0) / 2.0))
    return dd, cnt


_DELMAX = 1000.0


def _phi4(n: int, d: float, cnt: np.ndarray, h: float) -> float:
    delta = (np.arange(len(cnt)) * d / h) ** 2
    ok = delta < _DELMAX
    term = np.exp(-delta[ok] / 2.0) * (delta[ok] ** 2 - 6.0 * delta[ok] + 3.0)
    s = 2.0 * float(np.sum(term * cnt[ok])) + n * 3.0
    return s / (n * (n - 1) * h**5 * np.sqrt(2.0 * np.pi))


def _phi6(n: int, d: float, cnt: np.ndarray, h: float) -> float:
    delta = (np.arange(len(cnt)) * d / h) ** 2
    ok = delta < _DELMAX
    dl = delta[ok]
    term = np.exp(-dl / 2.0) * (dl**3 - 15.0 * dl**2 + 45.0 * dl - 15.0)
    s = 2.0 * float(np.sum(term * cnt[ok])) - 15.0 * n
    return s / (n * (n - 1) * h**7 * np.sqrt(2.0 * np.pi))


def bw_sj(values, nb: int = 1000) -> float:
    """Sheather & Jones (1991) solve-the-equation bandwidth.

    Pairwise distances are binned into nb bins as in R's ``bw.SJ``.

    Raises:
        DegenerateInputError: If the sample is too sparse or has no spread.
    """
    x = _clean(values)
    n = len(x)
    if n < 2:
        raise DegenerateInputError("need at least 2 data points to select a bandwidth")
    scale = min(float(np.std(x, ddof=1)), _iqr(x) / 1.349)
    if not scale > 0:
        raise DegenerateInputError("sample has zero spread, cannot select a Sheather-Jones bandwidth")

    d, cnt = _pair_counts(x, nb)
    a = 1.24 * scale * n ** (-1.0 / 7.0)
    b = 1.23 * scale * n ** (-1.0 / 9.0)
    c1 = 1.0 / (2.0 * np.sqrt(np.pi) * n)
    td = -_phi6(n, d, cnt, b)
    if not np.isfinite(td) or td <= 0:
        raise DegenerateInputError("sample is too sparse to find TD")
    alph2 = 1.357 * (_phi4(n, d, cnt, a) / td) ** (1.0 / 7.0)
    if not np.isfinite(alph2):
        raise DegenerateInputError("sample is too sparse to find alph2")

    def f_sd(h: float) -> float:
        return (c1 / _phi4(n, d, cnt, alph2 * h ** (5.0 / 7.0))) ** 0.2 - h

    hmax = 1.144 * scale * n ** (-0.2)
    lower, upper = 0.1 * hmax, hmax
    tol = 0.1 * lower
    itry = 1
    while f_sd(lower) * f_sd(upper) > 0:
        if itry > 99:
            raise DegenerateInputError("no solution in the specified range of bandwidths")
        if itry % 2:
            upper *= 1.2
        else:
            lower /= 1.2
        itry += 1
    return float(optimize.brentq(f_sd, lower, upper, xtol=tol))


BANDWIDTH_RULES: dict[str, Callable[[np.ndarray], float]] = {
    "nrd0": bw_nrd0,
    "nrd": bw_nrd,
    "sj": bw_sj,
    "sj-ste": bw_sj,
}


def select_bandwidth(values, bw: BandwidthLike = "SJ", adjust: float = 1.0) -> float:
    """Resolve a bandwidth given as a number or a rule name, times adjust.

    Raises:
        InvalidParameterError: For an unknown rule or a non-positive result from a number.
        DegenerateInputError: If the rule cannot be applied to the sample.
    """
    if isinstance(bw, str):
        rule = BANDWIDTH_RULES.get(bw.lower())
        if rule is None:
            raise InvalidParameterError(
                f"Unknown bandwidth rule {bw!r}, expected a number or one of {sorted(BANDWIDTH_RULES)}"
            )
        value = rule(values)
    else:
        value = float(bw)
        if not np.isfinite(value) or value <= 0:
            raise InvalidParameterError(f"Bandwidth must be a positive number, got {bw!r}")
    value *= float(adjust)
    if not np.isfinite(value) or value <= 0:
        raise DegenerateInputError(f"Selected bandwidth is not positive ({value!r})")
    return value


# -----------------------------------------------------------------------------
# Estimates
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Density1D:
    """A 1D density estimate evaluated on a regular grid.

    Attributes:
        x: Grid positions.
        y: Density at each grid position.
        bw: Bandwidth used (kernel standard deviation).
        kernel: Kernel name.
    """
    x: np.ndarray
    y: np.ndarray
    bw: float
    kernel: str

    def evaluate(self, values) -> np.ndarray:
        """Density at arbitrary positions by cubic spline interpolation over the grid."""
        spline = CubicSpline(self.x, self.y)
        return spline(np.asarray(values, dtype=float))


@dataclass(frozen=True)
class Density2D:
    """A 2D density estimate on an n_x by n_y grid.

    Attributes:
        x: Grid positions along x.
        y: Grid positions along y.
        z: Density, z[i, j] at (x[i], y[j]).
        h: Per-axis bandwidths as passed to kde2d.
    """
    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    h: tuple[float, float]

    def lookup(self, x, y) -> np.ndarray:
        """Density of the grid cell each observation falls in (no interpolation)."""
        ix = _cell_index(self.x, np.asarray(x, dtype=float))
        iy = _cell_index(self.y, np.asarray(y, dtype=float))
        return self.z[ix, iy]


def _cell_index(grid: np.ndarray, values: np.ndarray) -> np.ndarray:
    """Index of the right-closed grid interval holding each value (lowest included).

    The interval is identified by its lower grid node. Values outside the grid
    are clamped to the first or last interval.
    """
    j = np.searchsorted(grid, values, side="left")
    return np.clip(j - 1, 0, len(grid) - 2)


def _check_lims(lims: Sequence[float], what: str) -> tuple[float, float]:
    lo, hi = (float(v) for v in lims)
    if not (np.isfinite(lo) and np.isfinite(hi)):
        raise InvalidParameterError(f"{what} limits must be finite, got {lims!r}")
    if not lo < hi:
        raise DegenerateInputError(f"{what} limits span a zero-width range ({lo}, {hi})")
    return lo, hi


def kde1d(
    values,
    bw: BandwidthLike = "SJ",
    kernel: str = "gaussian",
    adjust: float = 1.0,
    n: int = 512,
    lims: Optional[Sequence[float]] = None,
) -> Density1D:
    """Estimate a 1D density on n grid points spanning lims.

    Args:
        values: Sample (non-finite values are dropped).
        bw: Bandwidth or rule name ("nrd0", "nrd", "SJ").
        kernel: Kernel name, see KERNELS.
        adjust: Multiplier applied to the bandwidth.
        n: Number of grid points.
        lims: (from, to) of the grid. Defaults to the sample range.

    Returns:
        Density1D.
    """
    kfun = get_kernel(kernel)
    x = _clean(values)
    if len(x) == 0:
        raise DegenerateInputError("cannot estimate a density from an empty sample")
    if int(n) < 2:
        raise InvalidParameterError(f"'n' must be at least 2, got {n!r}")
    if lims is None:
        lims = (x.min(), x.max())
    lo, hi = _check_lims(lims, "x")

    bandwidth = select_bandwidth(x, bw, adjust)
    grid = np.linspace(lo, hi, int(n))
    dens = np.zeros_like(grid)
    for start in range(0, len(x), _CHUNK):
        block = x[start:start + _CHUNK]
        dens += kfun(grid[:, None] - block[None, :], bandwidth).sum(axis=1)
    dens /= len(x)
    logger.debug(f"kde1d: n_obs={len(x)}, bw={bandwidth:.6g}, kernel={kernel}, grid={len(grid)} over [{lo:.6g}, {hi:.6g}]")
    return Density1D(x=grid, y=dens, bw=bandwidth, kernel=str(kernel).lower())


def kde2d(
    x,
    y,
    h: Optional[Union[float, Sequence[float]]] = None,
    n: Union[int, Sequence[int]] = 25,
    lims: Optional[Sequence[float]] = None,
) -> Density2D:
    """Estimate a 2D density with an axis-aligned bivariate normal kernel.

    Args:
        x, y: Paired sample coordinates.
        h: Bandwidth per axis (scalar recycled). Defaults to bandwidth_nrd of
            each axis. The kernel standard deviation is h / 4.
        n: Grid points per axis (scalar recycled).
        lims: (x_lo, x_hi, y_lo, y_hi). Defaults to the sample ranges.

    Returns:
        Density2D.
    """
    xv = np.asarray(x, dtype=float).ravel()
    yv = np.asarray(y, dtype=float).ravel()
    if len(xv) != len(yv):
        raise InvalidParameterError("x and y must have the same length")
    ok = np.isfinite(xv) & np.isfinite(yv)
    xv, yv = xv[ok], yv[ok]
    nx = len(xv)
    if nx == 0:
        raise DegenerateInputError("cannot estimate a density from an empty sample")

    if h is None:
        h = (bandwidth_nrd(xv), bandwidth_nrd(yv))
    hh = np.broadcast_to(np.asarray(h, dtype=float), (2,)).copy()
    if not np.all(np.isfinite(hh)) or np.any(hh <= 0):
        raise DegenerateInputError(f"bandwidths must be positive, got {tuple(hh)}")
    nn = np.broadcast_to(np.asarray(n, dtype=int), (2,))
    if np.any(nn < 2):
        raise InvalidParameterError(f"'n' must be at least 2, got {n!r}")
    if lims is None:
        lims = (xv.min(), xv.max(), yv.min(), yv.max())
    x_lo, x_hi = _check_lims(lims[0:2], "x")
    y_lo, y_hi = _check_lims(lims[2:4], "y")

    gx = np.linspace(x_lo, x_hi, int(nn[0]))
    gy = np.linspace(y_lo, y_hi, int(nn[1]))
    sd = hh / 4.0
    ax = norm.pdf((gx[:, None] - xv[None, :]) / sd[0])
    ay = norm.pdf((gy[:, None] - yv[None, :]) / sd[1])
    z = ax @ ay.T / (nx * sd[0] * sd[1])
    logger.debug(f"kde2d: n_obs={nx}, h=({hh[0]:.6g}, {hh[1]:.6g}), grid={nn[0]}x{nn[1]}")
    return Density2D(x=gx, y=gy, z=z, h=(float(hh[0]), float(hh[1])))
