"""Connector segment shrinking.

A connector runs from the kept origin (x_orig, y_orig) to the displaced
position (x, y). The destination end is pulled back by point_padding so the
segment does not overlap the marker; the origin end is pulled forward by
box_padding only when the origin is drawn as a box (origin_box=True).
Segments that vanish under the paddings, or end up shorter than
min_segment_length, are flagged too_short and must not be drawn.

Paddings are in the units of the coordinates passed in; convert to device
units first if padding should be constant on screen.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from nicenudge.errors import InvalidParameterError
from nicenudge.frames import DataLike, require_columns, to_pandas
from nicenudge.nudge.base import X_ORIG, Y_ORIG, as_float
from nicenudge.utils.logging import get_logger

logger = get_logger(__name__)

SEGMENT_COLUMNS = [X_ORIG, Y_ORIG, "x", "y", "too_short"]


def shrink_segments(
    data: DataLike,
    point_padding: float = 1e-6,
    box_padding: float = 0.25,
    min_segment_length: float = 0.0,
    origin_box: bool = False,
) -> pd.DataFrame:
    """Clip connector endpoints by the paddings.

    Args:
        data: Table with x_orig, y_orig, x, y columns.
        point_padding: Distance removed at the (x, y) end.
        box_padding: Distance removed at the origin end when origin_box is set.
        min_segment_length: Shorter remaining segments are flagged too_short.
        origin_box: Treat the origin as a box rather than a zero-size point.

    Returns:
        DataFrame with columns x_orig, y_orig, x, y, too_short in input row
        order. too_short rows keep their unclipped coordinates.

    Raises:
        InvalidParameterError: Missing columns or negative/non-finite paddings.
    """
    for name, value in (
        ("point_padding", point_padding),
        ("box_padding", box_padding),
        ("min_segment_length", min_segment_length),
    ):
        if value is None or not np.isfinite(value) or value < 0:
            raise InvalidParameterError(f"'{name}' must be a non-negative number, got {value!r}")

    df, _ = to_pandas(data)
    require_columns(df, [X_ORIG, Y_ORIG, "x", "y"])
    x0 = as_float(df[X_ORIG])
    y0 = as_float(df[Y_ORIG])
    x1 = as_float(df["x"])
    y1 = as_float(df["y"])

    dx = x1 - x0
    dy = y1 - y0
    length = np.hypot(dx, dy)
    start_pad = float(box_padding) if origin_box else 0.0
    end_pad = float(point_padding)
    remaining = length - start_pad - end_pad

    with np.errstate(invalid="ignore"):
        too_short = (
            ~np.isfinite(length)
            | (length == 0)
            | (remaining <= 0)
            | (remaining < min_segment_length)
        )
    ok = ~too_short
    # unit vector along the segment, only where it is defined
    ux = np.zeros(len(df))
    uy = np.zeros(len(df))
    ux[ok] = dx[ok] / length[ok]
    uy[ok] = dy[ok] / length[ok]

    out = pd.DataFrame(
        {
            X_ORIG: np.where(ok, x0 + ux * start_pad, x0),
            Y_ORIG: np.where(ok, y0 + uy * start_pad, y0),
            "x": np.where(ok, x1 - ux * end_pad, x1),
            "y": np.where(ok, y1 - uy * end_pad, y1),
            "too_short": too_short,
        },
        index=df.index,
    )
    logger.debug(f"shrink_segments: rows={len(out)}, too_short={int(too_short.sum())}")
    return out
