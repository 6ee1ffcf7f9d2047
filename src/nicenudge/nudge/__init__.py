"""Nudge strategies that keep the original position of each observation."""

from nicenudge.nudge.base import X_ORIG, Y_ORIG, NudgeStrategy
from nicenudge.nudge.center import NudgeCenter, nudge_center, nudge_keep
from nicenudge.nudge.jitter import SEED_RANDOM, JitterNudge, jitter_keep, jitter_nudge, random_source
from nicenudge.nudge.line import NudgeLine, nudge_line
from nicenudge.nudge.stack import StackMinMax, fill_minmax, stack_minmax
from nicenudge.nudge.to import NudgeTo, nudge_to

__all__ = [
    "JitterNudge",
    "NudgeCenter",
    "NudgeLine",
    "NudgeStrategy",
    "NudgeTo",
    "SEED_RANDOM",
    "StackMinMax",
    "X_ORIG",
    "Y_ORIG",
    "fill_minmax",
    "jitter_keep",
    "jitter_nudge",
    "nudge_center",
    "nudge_keep",
    "nudge_line",
    "nudge_to",
    "random_source",
    "stack_minmax",
]
