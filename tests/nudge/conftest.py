"""Fixtures for nudge tests."""

from __future__ import annotations

import pandas as pd
import pytest


@pytest.fixture
def square_df() -> pd.DataFrame:
    """Four points around the origin, one per half-axis."""
    return pd.DataFrame(
        {
            "x": [1.0, 0.0, -1.0, 0.0],
            "y": [0.0, 1.0, 0.0, -1.0],
            "label": ["e", "n", "w", "s"],
        }
    )


@pytest.fixture
def quadrant_df() -> pd.DataFrame:
    """One point in each quadrant, none on an axis."""
    return pd.DataFrame(
        {
            "x": [-2.0, -1.0, 1.0, 2.0],
            "y": [-1.0, 1.0, -1.0, 1.0],
        }
    )
