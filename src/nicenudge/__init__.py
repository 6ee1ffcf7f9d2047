"""
nicenudge: density filtering and nudge geometry for plotted observations.

This package provides:
- Dens1dFilter / Dens2dFilter: keep observations from sparse or dense regions
  of a panel, judged by a kernel density estimate
- NudgeCenter, NudgeTo, JitterNudge, NudgeLine, StackMinMax: displace
  observations while keeping their original position in x_orig / y_orig
- shrink_segments and Plotly traces for the connectors back to the origin
- Logging utilities for library and application use

For logging configuration in standalone scripts/demos:
    ```python
    from nicenudge.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```

When used as a library, logging is handled by the parent application's
configuration.
"""

import logging

from nicenudge.utils.logging import configure_logging, get_logger

from nicenudge.density import (
    Dens1dFilter,
    Dens2dFilter,
    dens1d_filter,
    dens1d_filter_g,
    dens2d_filter,
    dens2d_filter_g,
)
from nicenudge.errors import DegenerateInputError, InvalidParameterError, NiceNudgeError
from nicenudge.nudge import (
    SEED_RANDOM,
    JitterNudge,
    NudgeCenter,
    NudgeLine,
    NudgeTo,
    StackMinMax,
    fill_minmax,
    jitter_keep,
    jitter_nudge,
    nudge_center,
    nudge_keep,
    nudge_line,
    nudge_to,
    stack_minmax,
)
from nicenudge.scales import AxisScale, PanelScales
from nicenudge.segments import shrink_segments
from nicenudge.traces import connector_trace, linked_points_figure, point_trace

# Ensure nicenudge logger has NullHandler so logs don't propagate to root
# when no application has configured logging.
_logger = logging.getLogger("nicenudge")
if not _logger.handlers:
    _logger.addHandler(logging.NullHandler())

__all__ = [
    "AxisScale",
    "DegenerateInputError",
    "Dens1dFilter",
    "Dens2dFilter",
    "InvalidParameterError",
    "JitterNudge",
    "NiceNudgeError",
    "NudgeCenter",
    "NudgeLine",
    "NudgeTo",
    "PanelScales",
    "SEED_RANDOM",
    "StackMinMax",
    "configure_logging",
    "connector_trace",
    "dens1d_filter",
    "dens1d_filter_g",
    "dens2d_filter",
    "dens2d_filter_g",
    "fill_minmax",
    "get_logger",
    "jitter_keep",
    "jitter_nudge",
    "linked_points_figure",
    "nudge_center",
    "nudge_keep",
    "nudge_line",
    "nudge_to",
    "point_trace",
    "shrink_segments",
    "stack_minmax",
]

__version__ = "0.1.0"
