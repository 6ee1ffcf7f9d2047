"""Exception types raised by nicenudge.

Validation problems raise InvalidParameterError before any data is touched.
Samples that cannot support a density estimate or a curve fit raise
DegenerateInputError. Both subclass ValueError so callers that already
catch ValueError keep working.

Unrecognized ``direction`` tags are not errors: the strategy objects log a
warning and fall back to plain offsets.
"""

from __future__ import annotations


class NiceNudgeError(Exception):
    """Base class for all nicenudge errors."""


class InvalidParameterError(NiceNudgeError, ValueError):
    """Out-of-range, missing or unrecognized option value."""


class DegenerateInputError(NiceNudgeError, ValueError):
    """Input data breaks the assumptions of a density or curve estimate."""
