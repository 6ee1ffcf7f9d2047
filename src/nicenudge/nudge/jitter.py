"""Jitter combined with nudge (``position_jitternudge``).

Each observation is first jittered by a uniform offset in +/- width and
+/- height, then nudged. The nudge magnitude is multiplied per row by a
direction function:

- fixed: 1 for every row.
- conditional: the sign of the jitter the row received, zero jitter broken by
  a random coin.
- alternate: +1, -1, +1, ... by row position.

Random numbers come from random_source(): an explicit seed gets a private
numpy Generator, so numpy's global state is never reseeded and unrelated
draws elsewhere in the process, other threads included, are not disturbed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from nicenudge.config import normalize_choice, options_from_dict, options_to_dict
from nicenudge.errors import InvalidParameterError
from nicenudge.frames import DataLike
from nicenudge.nudge.base import add_origin, apply_nudge, as_float, check_choice, is_active, recycle, run_strategy
from nicenudge.scales import PanelScales, is_discrete_axis, resolution
from nicenudge.utils.logging import get_logger

logger = get_logger(__name__)

# Default seed: draw a fresh seed from the global generator for each call
SEED_RANDOM = "random"

SeedLike = Union[int, None, str]
NudgeLike = Union[float, Sequence[float]]

NUDGE_FROM_CHOICES = ("original", "original_x", "original_y", "jittered", "jittered_x", "jittered_y")
KEPT_ORIGIN_CHOICES = ("original", "jittered", "none")


# -----------------------------------------------------------------------------
# Random source
# -----------------------------------------------------------------------------


def check_seed(seed: Any) -> SeedLike:
    """Validate a seed: non-negative int, None, SEED_RANDOM (NaN also means random)."""
    if seed is None:
        return None
    if isinstance(seed, str):
        if seed == SEED_RANDOM:
            return seed
    elif isinstance(seed, float) and np.isnan(seed):
        return SEED_RANDOM
    elif isinstance(seed, (int, np.integer)) and not isinstance(seed, bool):
        if 0 <= int(seed) < 2**32:
            return int(seed)
    raise InvalidParameterError(
        f"Invalid 'seed': {seed!r}, expected a non-negative integer, None or {SEED_RANDOM!r}"
    )


def random_source(seed: SeedLike) -> Any:
    """Random source for one jitter call.

    - int: a private np.random.default_rng(seed); global state is untouched.
    - SEED_RANDOM: draw a seed from the global generator first (so a user's
      np.random.seed() makes results reproducible), then as for int.
    - None: numpy's global random module itself, drawn from without reseeding.

    Both kinds of source provide uniform() and choice().
    """
    if seed is None:
        return np.random
    if seed == SEED_RANDOM:
        seed = int(np.random.randint(0, 2**31 - 1))
    return np.random.default_rng(seed)


# -----------------------------------------------------------------------------
# Direction functions
# -----------------------------------------------------------------------------


def fixed_direction(jitter: np.ndarray, rs: Any) -> np.ndarray:
    return np.ones(len(jitter))


def conditional_direction(jitter: np.ndarray, rs: Any) -> np.ndarray:
    """Sign of the jitter; zero jitter gives no direction so a coin decides."""
    s = np.sign(jitter)
    if np.any(s == 0):
        r = rs.choice([-1.0, 1.0], size=len(s))
        s = np.where(s == 0, r, s)
    return s


def alternate_direction(jitter: np.ndarray, rs: Any) -> np.ndarray:
    return np.resize([1.0, -1.0], len(jitter))


DirectionFun = Callable[[np.ndarray, Any], np.ndarray]

# direction -> (function for x, function for y)
DIRECTION_FUNS: dict[str, tuple[DirectionFun, DirectionFun]] = {
    "as_is": (fixed_direction, fixed_direction),
    "none": (fixed_direction, fixed_direction),
    "split": (conditional_direction, conditional_direction),
    "split_x": (conditional_direction, fixed_direction),
    "split_y": (fixed_direction, conditional_direction),
    "alternate": (alternate_direction, alternate_direction),
    "alternate_x": (alternate_direction, fixed_direction),
    "alternate_y": (fixed_direction, alternate_direction),
}


# -----------------------------------------------------------------------------
# Strategy
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class JitterNudge:
    """Jitter then nudge, keeping an origin position for connectors.

    Attributes:
        width, height: Jitter amounts (+/-). None uses 0.4 * axis resolution.
        seed: int for reproducible jitter, SEED_RANDOM for a fresh seed drawn
            from the global generator, None to draw from it without reseeding.
        x, y: Nudge magnitudes (scalar, or vector recycled over rows).
        direction: "as_is", "none", "split", "split_x", "split_y",
            "alternate", "alternate_x" or "alternate_y".
        nudge_from: Basis of the nudge: "original", "jittered", or the mixed
            "original_x"/"jittered_y" (x original, y jittered) and
            "original_y"/"jittered_x" (y original, x jittered).
        kept_origin: Position stored in x_orig/y_orig: "jittered",
            "original" or "none".
    """
    width: Optional[float] = None
    height: Optional[float] = None
    seed: SeedLike = SEED_RANDOM
    x: NudgeLike = 0.0
    y: NudgeLike = 0.0
    direction: str = "as_is"
    nudge_from: str = "original"
    kept_origin: str = "jittered"

    def __post_init__(self) -> None:
        # fail early, before any data is seen
        object.__setattr__(self, "nudge_from", check_choice("nudge_from", self.nudge_from, NUDGE_FROM_CHOICES))
        object.__setattr__(self, "kept_origin", check_choice("kept_origin", self.kept_origin, KEPT_ORIGIN_CHOICES))
        object.__setattr__(self, "direction", normalize_choice(self.direction))
        object.__setattr__(self, "seed", check_seed(self.seed))
        for name in ("width", "height"):
            v = getattr(self, name)
            if v is not None and (not np.isfinite(v) or v < 0):
                raise InvalidParameterError(f"'{name}' must be a non-negative number, got {v!r}")

    def direction_funs(self) -> tuple[DirectionFun, DirectionFun]:
        funs = DIRECTION_FUNS.get(self.direction)
        if funs is None:
            logger.warning(f'Ignoring unrecognized direction "{self.direction}".')
            return fixed_direction, fixed_direction
        return funs

    def jitter_amounts(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> tuple[float, float]:
        """(width, height), defaulting to 0.4 times each axis' resolution."""
        width = self.width
        if width is None:
            width = 0.4 * resolution(df["x"].to_numpy(), discrete=is_discrete_axis(df, "x", scales))
        height = self.height
        if height is None:
            height = 0.4 * resolution(df["y"].to_numpy(), discrete=is_discrete_axis(df, "y", scales))
        return float(width), float(height)

    def compute_panel(self, df: pd.DataFrame, scales: Optional[PanelScales] = None) -> pd.DataFrame:
        n = len(df)
        x_orig = as_float(df["x"])
        y_orig = as_float(df["y"])
        width, height = self.jitter_amounts(df, scales)
        fun_x, fun_y = self.direction_funs()

        rs = random_source(self.seed)
        x_jittered = x_orig + rs.uniform(-width, width, n) if width > 0 else x_orig.copy()
        y_jittered = y_orig + rs.uniform(-height, height, n) if height > 0 else y_orig.copy()
        dir_x = fun_x(x_jittered - x_orig, rs)
        dir_y = fun_y(y_jittered - y_orig, rs)
        logger.debug(f"JitterNudge: rows={n}, width={width:.6g}, height={height:.6g}, seed={self.seed!r}")

        x_base = x_orig if self.nudge_from in ("original", "original_x", "jittered_y") else x_jittered
        y_base = y_orig if self.nudge_from in ("original", "original_y", "jittered_x") else y_jittered
        # nudge only the dimensions for which non-zero nudging is requested
        x_new = x_base + recycle(self.x, n) * dir_x if is_active(self.x) else x_base
        y_new = y_base + recycle(self.y, n) * dir_y if is_active(self.y) else y_base
        df = apply_nudge(df, x_new, y_new)

        if self.kept_origin == "jittered":
            return add_origin(df, x_jittered, y_jittered, "jittered")
        return add_origin(df, x_orig, y_orig, self.kept_origin)

    def compute(self, data: DataLike, scales: Optional[PanelScales] = None) -> DataLike:
        """Jitter and nudge data; returns the same container type."""
        return run_strategy(self, data, scales)

    def to_dict(self) -> dict[str, Any]:
        return options_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JitterNudge":
        return options_from_dict(cls, data)


def jitter_keep(width: Optional[float] = None, height: Optional[float] = None, seed: SeedLike = SEED_RANDOM) -> JitterNudge:
    """Plain jitter that keeps the original position for connectors."""
    return JitterNudge(
        width=width,
        height=height,
        seed=seed,
        x=0.0,
        y=0.0,
        direction="as_is",
        nudge_from="jittered",
        kept_origin="original",
    )


def jitter_nudge(data: DataLike, scales: Optional[PanelScales] = None, **options: Any) -> DataLike:
    """Jitter and nudge data. Options as for JitterNudge."""
    return JitterNudge(**options).compute(data, scales)
