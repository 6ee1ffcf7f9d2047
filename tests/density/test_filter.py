"""Tests for the density filters."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest

from nicenudge.density.filter import (
    Dens1dFilter,
    Dens2dFilter,
    dens1d_filter,
    dens1d_filter_g,
    dens2d_filter,
    dens2d_filter_g,
    effective_fraction,
    quantile_mask,
    select_rows,
)
from nicenudge.errors import InvalidParameterError
from nicenudge.frames import HAS_POLARS
from nicenudge.scales import AxisScale, PanelScales


def _never_called() -> np.ndarray:
    raise AssertionError("density must not be computed")


def _with_groups(df: pd.DataFrame) -> pd.DataFrame:
    """Two interleaved groups, the second shifted along x."""
    a = df.assign(group="a")
    b = df.assign(group="b", x=df["x"] + 100.0)
    out = pd.concat([a, b]).sort_index(kind="stable").reset_index(drop=True)
    return out


# -----------------------------------------------------------------------------
# Quota
# -----------------------------------------------------------------------------


def test_effective_fraction_uses_fraction_below_cap() -> None:
    assert effective_fraction(100, 0.1, math.inf) == 0.1


def test_effective_fraction_caps_by_number() -> None:
    assert effective_fraction(100, 0.5, 10) == pytest.approx(0.1)


def test_select_rows_all_and_none_skip_density() -> None:
    """eff == 1 keeps all rows, eff == 0 keeps none; density is not estimated."""
    keep = select_rows(5, _never_called, keep_fraction=1.0, keep_number=math.inf, keep_sparse=True, invert_selection=False)
    assert keep.tolist() == [True] * 5
    keep = select_rows(5, _never_called, keep_fraction=0.5, keep_number=0, keep_sparse=True, invert_selection=False)
    assert keep.tolist() == [False] * 5


def test_select_rows_invert_of_keep_none_is_all() -> None:
    keep = select_rows(3, _never_called, keep_fraction=0.0, keep_number=math.inf, keep_sparse=True, invert_selection=True)
    assert keep.tolist() == [True] * 3


def test_quantile_mask_sparse_is_strict_and_dense_inclusive() -> None:
    dens = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    # quantile(0.25) == 2.0
    assert quantile_mask(dens, 0.25, keep_sparse=True).tolist() == [True, False, False, False, False]
    # quantile(0.75) == 4.0
    assert quantile_mask(dens, 0.25, keep_sparse=False).tolist() == [False, False, False, True, True]


@pytest.mark.parametrize(
    "options",
    [
        {"keep_fraction": 1.5},
        {"keep_fraction": -0.1},
        {"keep_fraction": float("nan")},
        {"keep_number": -1},
        {"keep_number": float("nan")},
        {"orientation": "z"},
        {"kernel": "box"},
    ],
)
def test_dens1d_invalid_options_raise(options) -> None:
    with pytest.raises(InvalidParameterError):
        Dens1dFilter(**options)


def test_dens2d_invalid_fraction_raises() -> None:
    with pytest.raises(InvalidParameterError):
        Dens2dFilter(keep_fraction=2.0)


# -----------------------------------------------------------------------------
# 1D filter
# -----------------------------------------------------------------------------


def test_dens1d_sparse_keeps_isolated_rows(clustered_1d: pd.DataFrame) -> None:
    out = dens1d_filter(clustered_1d, keep_fraction=0.1, bw="nrd0")
    assert list(out.index) == list(range(90, 100))
    pd.testing.assert_frame_equal(out, clustered_1d.iloc[90:])


def test_dens1d_dense_keeps_cluster_rows(clustered_1d: pd.DataFrame) -> None:
    out = dens1d_filter(clustered_1d, keep_fraction=0.5, keep_sparse=False, bw="nrd0")
    assert len(out) >= 50
    assert out["x"].between(-0.5, 0.5).all()


def test_dens1d_invert_selection_is_complement(clustered_1d: pd.DataFrame) -> None:
    kept = dens1d_filter(clustered_1d, keep_fraction=0.1, bw="nrd0")
    dropped = dens1d_filter(clustered_1d, keep_fraction=0.1, bw="nrd0", invert_selection=True)
    assert set(kept.index).isdisjoint(dropped.index)
    assert set(kept.index) | set(dropped.index) == set(clustered_1d.index)


def test_dens1d_keep_number_caps_fraction(clustered_1d: pd.DataFrame) -> None:
    capped = dens1d_filter(clustered_1d, keep_fraction=0.5, keep_number=10, bw="nrd0")
    plain = dens1d_filter(clustered_1d, keep_fraction=0.1, bw="nrd0")
    pd.testing.assert_frame_equal(capped, plain)


def test_dens1d_keep_all_returns_input(clustered_1d: pd.DataFrame) -> None:
    out = dens1d_filter(clustered_1d, keep_fraction=1.0)
    pd.testing.assert_frame_equal(out, clustered_1d)


def test_dens1d_orientation_y(clustered_1d: pd.DataFrame) -> None:
    swapped = clustered_1d.rename(columns={"x": "y", "y": "x"})
    out = dens1d_filter(swapped, keep_fraction=0.1, bw="nrd0", orientation="y")
    assert list(out.index) == list(range(90, 100))


def test_dens1d_uses_scale_range(clustered_1d: pd.DataFrame) -> None:
    """Explicit scale ranges set the estimation grid; rows are still judged by density."""
    scales = PanelScales(x=AxisScale(range=(-20.0, 20.0)), y=AxisScale())
    out = Dens1dFilter(keep_fraction=0.1, bw="nrd0").compute(clustered_1d, scales)
    assert list(out.index) == list(range(90, 100))


def test_dens1d_default_bandwidth_keeps_tails() -> None:
    """With the default Sheather-Jones bandwidth the kept rows lie in the tails."""
    rng = np.random.default_rng(7)
    df = pd.DataFrame({"x": rng.normal(size=200), "y": rng.normal(size=200)})
    out = dens1d_filter(df, keep_fraction=0.2)
    assert 0 < len(out) <= 40
    assert out["x"].abs().mean() > df["x"].abs().mean()
    assert out.index.is_monotonic_increasing


def test_dens1d_empty_input_returns_empty() -> None:
    df = pd.DataFrame({"x": pd.Series([], dtype=float), "y": pd.Series([], dtype=float)})
    out = dens1d_filter(df)
    assert len(out) == 0
    assert list(out.columns) == ["x", "y"]


def test_dens1d_missing_column_raises() -> None:
    with pytest.raises(InvalidParameterError):
        dens1d_filter(pd.DataFrame({"y": [1.0, 2.0]}))


def test_dens1d_drops_missing_rows_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    df = pd.DataFrame({"x": [1.0, np.nan, 3.0], "y": [1.0, 2.0, 3.0]})
    out = dens1d_filter(df, keep_fraction=1.0, na_rm=False)
    assert list(out.index) == [0, 2]
    assert "Removed 1 rows" in caplog.text


def test_dens1d_drops_missing_rows_silently_by_default(caplog: pytest.LogCaptureFixture) -> None:
    df = pd.DataFrame({"x": [1.0, np.nan, 3.0], "y": [1.0, 2.0, 3.0]})
    out = dens1d_filter(df, keep_fraction=1.0)
    assert list(out.index) == [0, 2]
    assert "Removed" not in caplog.text


def test_dens1d_grouped_equals_per_group_filters(clustered_1d: pd.DataFrame) -> None:
    """Grouped filtering is per-group panel filtering, rows in original order."""
    df = _with_groups(clustered_1d)
    scales = PanelScales.from_data(df)
    flt = Dens1dFilter(keep_fraction=0.1, bw="nrd0", n=2048)
    grouped = Dens1dFilter(keep_fraction=0.1, bw="nrd0", n=2048, by_group=True).compute(df, scales)
    expected = pd.concat(
        [flt.compute(df[df["group"] == g], scales) for g in ("a", "b")]
    ).sort_index()
    pd.testing.assert_frame_equal(grouped, expected)
    assert grouped.index.is_monotonic_increasing
    assert (grouped["group"] == "a").sum() == 10


def test_dens1d_filter_g_wrapper_sets_by_group(clustered_1d: pd.DataFrame) -> None:
    df = _with_groups(clustered_1d)
    out = dens1d_filter_g(df, keep_fraction=0.1, bw="nrd0", n=2048)
    assert out["group"].value_counts().to_dict() == {"a": 10, "b": 10}


def test_dens1d_rows_input_returns_rows(clustered_1d: pd.DataFrame) -> None:
    rows = clustered_1d.to_dict(orient="records")
    out = dens1d_filter(rows, keep_fraction=0.1, bw="nrd0")
    assert isinstance(out, list)
    assert [r["x"] for r in out] == list(np.arange(5.0, 15.0))


@pytest.mark.skipif(not HAS_POLARS, reason="polars not installed")
def test_dens1d_polars_input_returns_polars(clustered_1d: pd.DataFrame) -> None:
    import polars as pl

    out = dens1d_filter(pl.from_pandas(clustered_1d), keep_fraction=0.1, bw="nrd0")
    assert isinstance(out, pl.DataFrame)
    assert out["x"].to_list() == list(np.arange(5.0, 15.0))


def test_dens1d_options_round_trip() -> None:
    flt = Dens1dFilter(keep_fraction=0.2, keep_sparse=False, bw=0.5)
    assert Dens1dFilter.from_dict(flt.to_dict()) == flt


def test_dens1d_from_dict_accepts_dotted_names() -> None:
    flt = Dens1dFilter.from_dict({"keep.fraction": 0.3, "invert.selection": True})
    assert flt.keep_fraction == 0.3
    assert flt.invert_selection is True


# -----------------------------------------------------------------------------
# 2D filter
# -----------------------------------------------------------------------------


def test_dens2d_grid_size_default() -> None:
    flt = Dens2dFilter()
    assert flt.grid_size(100) == 80
    assert flt.grid_size(1) == 8
    assert Dens2dFilter(n=3).grid_size(100) == 3


def test_dens2d_sparse_keeps_isolated_rows(clustered_2d: pd.DataFrame) -> None:
    out = dens2d_filter(clustered_2d, keep_fraction=0.1)
    assert list(out.index) == list(range(90, 100))


def test_dens2d_dense_keeps_block_rows(clustered_2d: pd.DataFrame) -> None:
    out = dens2d_filter(clustered_2d, keep_fraction=0.3, keep_sparse=False)
    assert len(out) > 0
    assert out["x"].between(-0.5, 0.5).all()
    assert out["y"].between(-0.5, 0.5).all()


def test_dens2d_invert_selection(clustered_2d: pd.DataFrame) -> None:
    out = dens2d_filter(clustered_2d, keep_fraction=0.1, invert_selection=True)
    assert list(out.index) == list(range(90))


def test_dens2d_keep_number_zero_keeps_nothing(clustered_2d: pd.DataFrame) -> None:
    out = dens2d_filter(clustered_2d, keep_number=0)
    assert len(out) == 0


def test_dens2d_grouped_equals_per_group_filters(clustered_2d: pd.DataFrame) -> None:
    """Each group is filtered on its own over the shared panel scales, rows in original order."""
    df = _with_groups(clustered_2d)
    scales = PanelScales.from_data(df)
    flt = Dens2dFilter(keep_fraction=0.1)
    grouped = Dens2dFilter(keep_fraction=0.1, by_group=True).compute(df, scales)
    expected = pd.concat(
        [flt.compute(df[df["group"] == g], scales) for g in ("a", "b")]
    ).sort_index()
    pd.testing.assert_frame_equal(grouped, expected)
    assert grouped.index.is_monotonic_increasing


def test_dens2d_filter_g_wrapper_matches_by_group(clustered_2d: pd.DataFrame) -> None:
    df = _with_groups(clustered_2d)
    pd.testing.assert_frame_equal(
        dens2d_filter_g(df, keep_fraction=0.1),
        Dens2dFilter(keep_fraction=0.1, by_group=True).compute(df),
    )


# -----------------------------------------------------------------------------
# Sparse and dense selections
# -----------------------------------------------------------------------------


@pytest.fixture
def normal_300() -> pd.DataFrame:
    rng = np.random.default_rng(42)
    return pd.DataFrame({"x": rng.normal(size=300), "y": rng.normal(size=300)})


def test_dens1d_sparse_and_dense_are_disjoint_and_balanced(normal_300: pd.DataFrame) -> None:
    sparse = dens1d_filter(normal_300, keep_fraction=0.3, bw="nrd0")
    dense = dens1d_filter(normal_300, keep_fraction=0.3, keep_sparse=False, bw="nrd0")
    assert set(sparse.index).isdisjoint(dense.index)
    assert abs(len(sparse) - 90) <= 3
    assert abs(len(dense) - 90) <= 3


def test_dens2d_sparse_and_dense_are_disjoint_and_balanced(normal_300: pd.DataFrame) -> None:
    sparse = dens2d_filter(normal_300, keep_fraction=0.3)
    dense = dens2d_filter(normal_300, keep_fraction=0.3, keep_sparse=False)
    assert set(sparse.index).isdisjoint(dense.index)
    # rows sharing a grid cell share a density, so quantile ties can shift counts
    assert 60 <= len(sparse) <= 95
    assert 60 <= len(dense) <= 120
