"""Tests for the Plotly hand-off."""

from __future__ import annotations

import pandas as pd
import plotly.graph_objects as go

from nicenudge.nudge.center import nudge_center
from nicenudge.segments import shrink_segments
from nicenudge.traces import connector_trace, linked_points_figure, point_trace


def _segments() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "x_orig": [0.0, 1.0, 2.0],
            "y_orig": [0.0, 1.0, 2.0],
            "x": [1.0, 1.0, 3.0],
            "y": [0.0, 1.0, 3.0],
            "too_short": [False, True, False],
        }
    )


def test_connector_trace_skips_too_short() -> None:
    trace = connector_trace(_segments())
    assert isinstance(trace, go.Scatter)
    assert trace.mode == "lines"
    assert list(trace.x) == [0.0, 1.0, None, 2.0, 3.0, None]
    assert list(trace.y) == [0.0, 0.0, None, 2.0, 3.0, None]


def test_connector_trace_arrow_markers_at_ends() -> None:
    trace = connector_trace(_segments(), arrow=True, arrow_size=6.0)
    assert trace.mode == "lines+markers"
    assert trace.marker.symbol == "arrow"
    assert list(trace.marker.size) == [0, 6.0, 0, 0, 6.0, 0]


def test_point_trace() -> None:
    trace = point_trace(pd.DataFrame({"x": [1.0, 2.0], "y": [3.0, 4.0]}), color="red")
    assert trace.mode == "markers"
    assert list(trace.x) == [1.0, 2.0]
    assert trace.marker.color == "red"


def test_linked_points_figure_with_origin() -> None:
    data = nudge_center(pd.DataFrame({"x": [0.0, 1.0], "y": [0.0, 1.0]}), x=0.5)
    fig = linked_points_figure(data)
    assert len(fig.data) == 2
    assert fig.data[0].mode == "lines"
    assert fig.data[1].mode == "markers"


def test_linked_points_figure_without_origin() -> None:
    fig = linked_points_figure(pd.DataFrame({"x": [0.0, 1.0], "y": [0.0, 1.0]}))
    assert len(fig.data) == 1


def test_linked_points_figure_one_trace_per_group() -> None:
    data = pd.DataFrame({"x": [0.0, 1.0, 2.0], "y": [0.0, 1.0, 2.0], "group": ["a", "b", "a"]})
    fig = linked_points_figure(data, add_segments=False)
    assert [t.name for t in fig.data] == ["a", "b"]


def test_linked_points_figure_empty() -> None:
    fig = linked_points_figure(pd.DataFrame({"x": [], "y": []}))
    assert len(fig.data) == 0


def test_connector_trace_accepts_shrunk_segments() -> None:
    segs = shrink_segments(_segments().drop(columns="too_short"), point_padding=0.0)
    trace = connector_trace(segs)
    # the coincident pair is dropped as too short
    assert list(trace.x) == [0.0, 1.0, None, 2.0, 3.0, None]
