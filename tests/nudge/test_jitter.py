"""Tests for jitter combined with nudge."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from nicenudge.errors import InvalidParameterError
from nicenudge.nudge.jitter import (
    SEED_RANDOM,
    JitterNudge,
    alternate_direction,
    check_seed,
    conditional_direction,
    jitter_keep,
    jitter_nudge,
    random_source,
)


@pytest.fixture
def df() -> pd.DataFrame:
    return pd.DataFrame({"x": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0], "y": [0.0, 1.0, 0.0, 1.0, 0.0, 1.0]})


# -----------------------------------------------------------------------------
# Random source
# -----------------------------------------------------------------------------


def test_random_source_int_seed_is_private_generator() -> None:
    np.random.seed(5)
    expected = np.random.random()
    np.random.seed(5)
    rs = random_source(123)
    rs.uniform(size=10)
    assert isinstance(rs, np.random.Generator)
    assert np.random.random() == expected


def test_random_source_unaffected_by_interleaved_global_draws() -> None:
    """Global draws between seeded draws neither shift nor rewind either stream."""
    baseline = random_source(123).uniform(size=6)
    np.random.seed(5)
    global_baseline = np.random.random(3)

    np.random.seed(5)
    rs = random_source(123)
    first = rs.uniform(size=3)
    interleaved = np.random.random(3)
    second = rs.uniform(size=3)
    np.testing.assert_array_equal(np.concatenate([first, second]), baseline)
    np.testing.assert_array_equal(interleaved, global_baseline)


def test_random_source_none_uses_global_stream() -> None:
    np.random.seed(9)
    expected = np.random.uniform(size=3)
    np.random.seed(9)
    got = random_source(None).uniform(size=3)
    np.testing.assert_array_equal(got, expected)


def test_random_source_random_seed_follows_global_seed() -> None:
    np.random.seed(3)
    a = random_source(SEED_RANDOM).uniform(size=4)
    np.random.seed(3)
    b = random_source(SEED_RANDOM).uniform(size=4)
    np.testing.assert_array_equal(a, b)


def test_check_seed() -> None:
    assert check_seed(None) is None
    assert check_seed(42) == 42
    assert check_seed(np.int64(7)) == 7
    assert check_seed(SEED_RANDOM) == SEED_RANDOM
    assert check_seed(float("nan")) == SEED_RANDOM
    for bad in (-1, 1.5, "seed", True):
        with pytest.raises(InvalidParameterError):
            check_seed(bad)


# -----------------------------------------------------------------------------
# Direction functions
# -----------------------------------------------------------------------------


def test_conditional_direction_signs_jitter() -> None:
    got = conditional_direction(np.array([-0.2, 0.3, -0.1]), np.random)
    assert got.tolist() == [-1.0, 1.0, -1.0]


def test_conditional_direction_zero_jitter_flips_coin() -> None:
    got = conditional_direction(np.zeros(20), random_source(1))
    assert set(got.tolist()) <= {-1.0, 1.0}


def test_alternate_direction() -> None:
    assert alternate_direction(np.zeros(5), np.random).tolist() == [1.0, -1.0, 1.0, -1.0, 1.0]


# -----------------------------------------------------------------------------
# Strategy
# -----------------------------------------------------------------------------


def test_same_seed_same_result(df: pd.DataFrame) -> None:
    a = jitter_nudge(df, width=0.2, height=0.2, seed=42, x=0.1)
    b = jitter_nudge(df, width=0.2, height=0.2, seed=42, x=0.1)
    pd.testing.assert_frame_equal(a, b)


def test_explicit_seed_leaves_global_state(df: pd.DataFrame) -> None:
    np.random.seed(1)
    expected = np.random.random()
    np.random.seed(1)
    jitter_nudge(df, seed=42)
    assert np.random.random() == expected


def test_random_seed_reproducible_under_global_seed(df: pd.DataFrame) -> None:
    np.random.seed(7)
    a = jitter_nudge(df, width=0.3, seed=SEED_RANDOM)
    np.random.seed(7)
    b = jitter_nudge(df, width=0.3, seed=SEED_RANDOM)
    pd.testing.assert_frame_equal(a, b)


def test_seed_none_draws_from_global_generator(df: pd.DataFrame) -> None:
    np.random.seed(11)
    a = jitter_nudge(df, width=0.3, height=0.0, seed=None)
    np.random.seed(11)
    expected = df["x"].to_numpy() + np.random.uniform(-0.3, 0.3, len(df))
    np.testing.assert_allclose(a["x_orig"], expected)


def test_jitter_within_bounds(df: pd.DataFrame) -> None:
    out = jitter_keep(width=0.25, height=0.1, seed=3).compute(df)
    assert np.all(np.abs(out["x"] - out["x_orig"]) <= 0.25)
    assert np.all(np.abs(out["y"] - out["y_orig"]) <= 0.1)
    np.testing.assert_array_equal(out["x_orig"], df["x"])


def test_default_width_from_resolution() -> None:
    frame = pd.DataFrame({"x": [1, 2, 3, 4], "y": [0.0, 0.5, 1.0, 1.5]})
    out = jitter_keep(seed=1).compute(frame)
    assert np.all(np.abs(out["x"] - out["x_orig"]) <= 0.4)
    assert np.all(np.abs(out["y"] - out["y_orig"]) <= 0.2)
    assert np.any(out["x"] != out["x_orig"])


def test_zero_jitter_plain_nudge(df: pd.DataFrame) -> None:
    out = jitter_nudge(df, width=0.0, height=0.0, x=0.5, y=-0.5)
    np.testing.assert_allclose(out["x"], df["x"] + 0.5)
    np.testing.assert_allclose(out["y"], df["y"] - 0.5)
    np.testing.assert_array_equal(out["x_orig"], df["x"])


def test_kept_origin_jittered_holds_jittered_position(df: pd.DataFrame) -> None:
    out = jitter_nudge(df, width=0.2, height=0.0, seed=5, x=1.0)
    # nudged from the original position, connector starts at the jittered one
    np.testing.assert_allclose(out["x"], df["x"] + 1.0)
    assert np.all(np.abs(out["x_orig"] - df["x"]) <= 0.2)
    assert np.any(out["x_orig"] != df["x"])


def test_kept_origin_original(df: pd.DataFrame) -> None:
    out = jitter_nudge(df, width=0.2, seed=5, kept_origin="original")
    np.testing.assert_array_equal(out["x_orig"], df["x"])


def test_kept_origin_none(df: pd.DataFrame) -> None:
    out = jitter_nudge(df, width=0.2, seed=5, kept_origin="none")
    assert list(out.columns) == ["x", "y"]


def test_nudge_from_jittered(df: pd.DataFrame) -> None:
    out = jitter_nudge(df, width=0.2, height=0.0, seed=5, x=1.0, nudge_from="jittered")
    np.testing.assert_allclose(out["x"], out["x_orig"] + 1.0)


def test_nudge_from_mixed_axes(df: pd.DataFrame) -> None:
    """original_x: x from the original position, y from the jittered one."""
    out = jitter_nudge(df, width=0.2, height=0.2, seed=5, nudge_from="original.x")
    np.testing.assert_allclose(out["x"], df["x"])
    np.testing.assert_allclose(out["y"], out["y_orig"])
    out = jitter_nudge(df, width=0.2, height=0.2, seed=5, nudge_from="jittered_x")
    np.testing.assert_allclose(out["x"], out["x_orig"])
    np.testing.assert_allclose(out["y"], df["y"])


def test_split_direction_follows_jitter_side(df: pd.DataFrame) -> None:
    out = jitter_nudge(df, width=0.3, height=0.0, seed=8, x=1.0, direction="split_x")
    moved = np.sign(out["x"] - df["x"])
    jittered = np.sign(out["x_orig"] - df["x"])
    np.testing.assert_array_equal(moved, jittered)


def test_split_with_zero_jitter_moves_full_step(df: pd.DataFrame) -> None:
    out = jitter_nudge(df, width=0.0, height=0.0, seed=8, x=1.0, direction="split")
    np.testing.assert_allclose(np.abs(out["x"] - df["x"]), 1.0)


def test_alternate_direction_by_row(df: pd.DataFrame) -> None:
    out = jitter_nudge(df, width=0.0, height=0.0, y=1.0, direction="alternate_y")
    np.testing.assert_allclose(out["y"] - df["y"], [1.0, -1.0, 1.0, -1.0, 1.0, -1.0])


def test_unknown_direction_warns(df: pd.DataFrame, caplog: pytest.LogCaptureFixture) -> None:
    out = jitter_nudge(df, width=0.0, height=0.0, x=1.0, direction="zigzag")
    np.testing.assert_allclose(out["x"], df["x"] + 1.0)
    assert 'Ignoring unrecognized direction "zigzag"' in caplog.text


def test_dotted_direction_accepted() -> None:
    assert JitterNudge(direction="as.is").direction == "as_is"


@pytest.mark.parametrize(
    "options",
    [
        {"nudge_from": "center"},
        {"kept_origin": "both"},
        {"seed": -3},
        {"width": -0.1},
    ],
)
def test_invalid_options_raise(options) -> None:
    with pytest.raises(InvalidParameterError):
        JitterNudge(**options)


def test_jitter_keep_defaults() -> None:
    nudge = jitter_keep(width=0.1)
    assert nudge.nudge_from == "jittered"
    assert nudge.kept_origin == "original"
    assert nudge.seed == SEED_RANDOM
