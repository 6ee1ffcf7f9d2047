"""Fixtures for density filter tests."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def clustered_1d() -> pd.DataFrame:
    """90 rows packed in [-0.5, 0.5] followed by 10 isolated rows at 5..14."""
    x = np.concatenate([np.linspace(-0.5, 0.5, 90), np.arange(5.0, 15.0)])
    return pd.DataFrame({"x": x, "y": np.arange(len(x), dtype=float)})


@pytest.fixture
def clustered_2d() -> pd.DataFrame:
    """A 10 x 9 block of rows in the unit square followed by 10 isolated rows."""
    gx, gy = np.meshgrid(np.linspace(-0.5, 0.5, 10), np.linspace(-0.5, 0.5, 9))
    far = np.arange(5.0, 15.0)
    return pd.DataFrame(
        {
            "x": np.concatenate([gx.ravel(), far]),
            "y": np.concatenate([gy.ravel(), far]),
        }
    )
