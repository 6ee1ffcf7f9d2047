"""Plotly traces for displaced observations and their connectors.

Counterpart of a "points linked by a segment" layer: points are drawn at the
displaced (x, y) position and a connector goes back to (x_orig, y_orig).
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np
import plotly.graph_objects as go

from nicenudge.frames import DataLike, require_columns, to_pandas
from nicenudge.nudge.base import X_ORIG, Y_ORIG
from nicenudge.segments import shrink_segments
from nicenudge.utils.logging import get_logger

logger = get_logger(__name__)


def connector_trace(
    segments: DataLike,
    *,
    color: str = "gray",
    width: float = 1.0,
    arrow: bool = False,
    arrow_size: float = 8.0,
    name: str = "connectors",
) -> go.Scatter:
    """One line trace holding every drawable connector, separated by None.

    Args:
        segments: Output of shrink_segments (or any table with x_orig, y_orig, x, y).
            Rows flagged too_short are skipped.
        color: Line color.
        width: Line width in px.
        arrow: Put an arrow head at the displaced end of each connector.
        arrow_size: Arrow marker size in px.
        name: Trace name.
    """
    df, _ = to_pandas(segments)
    require_columns(df, [X_ORIG, Y_ORIG, "x", "y"])
    if "too_short" in df.columns:
        df = df[~df["too_short"].astype(bool)]

    xs: list[Optional[float]] = []
    ys: list[Optional[float]] = []
    for x0, y0, x1, y1 in zip(df[X_ORIG], df[Y_ORIG], df["x"], df["y"]):
        xs.extend([x0, x1, None])
        ys.extend([y0, y1, None])

    kwargs: dict[str, Any] = dict(
        x=xs,
        y=ys,
        mode="lines",
        name=name,
        line=dict(color=color, width=width),
        showlegend=False,
        hoverinfo="skip",
    )
    if arrow:
        kwargs["mode"] = "lines+markers"
        kwargs["marker"] = dict(
            symbol="arrow",
            angleref="previous",
            color=color,
            # marker only at the end of each segment
            size=[0, arrow_size, 0] * len(df),
        )
    logger.debug(f"connector_trace: {len(df)} connectors, arrow={arrow}")
    return go.Scatter(**kwargs)


def point_trace(
    data: DataLike,
    *,
    color: Optional[str] = None,
    size: float = 8.0,
    name: str = "points",
) -> go.Scatter:
    """Marker trace at the displaced positions."""
    df, _ = to_pandas(data)
    require_columns(df, ["x", "y"])
    marker: dict[str, Any] = dict(size=size)
    if color is not None:
        marker["color"] = color
    return go.Scatter(
        x=df["x"].tolist(),
        y=df["y"].tolist(),
        mode="markers",
        name=name,
        marker=marker,
    )


def linked_points_figure(
    data: DataLike,
    *,
    add_segments: bool = True,
    point_padding: float = 1e-6,
    box_padding: float = 0.25,
    min_segment_length: float = 0.0,
    arrow: bool = False,
    point_color: Optional[str] = None,
    segment_color: str = "gray",
    fig: Optional[go.Figure] = None,
) -> go.Figure:
    """Figure with points at the displaced positions linked to their origins.

    Connectors are added only when add_segments is set and the data carries
    x_orig/y_orig columns. Points are added after connectors so they are drawn
    on top.
    """
    df, _ = to_pandas(data)
    if fig is None:
        fig = go.Figure()
    if len(df) == 0:
        return fig

    if add_segments and {X_ORIG, Y_ORIG}.issubset(df.columns):
        segs = shrink_segments(
            df,
            point_padding=point_padding,
            box_padding=box_padding,
            min_segment_length=min_segment_length,
        )
        fig.add_trace(connector_trace(segs, color=segment_color, arrow=arrow))

    if "group" in df.columns and df["group"].nunique(dropna=False) > 1:
        for key, part in df.groupby("group", sort=False, dropna=False):
            label = "NA" if (isinstance(key, float) and np.isnan(key)) else str(key)
            fig.add_trace(point_trace(part, color=point_color, name=label))
    else:
        fig.add_trace(point_trace(df, color=point_color))
    return fig
