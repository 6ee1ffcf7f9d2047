"""Option bundle (de)serialization.

Every filter and nudge is a dataclass of options. These helpers give them a
common to_dict()/from_dict() pair so option bundles can be stored alongside
plot state or built from user-facing configuration.

from_dict() is tolerant:
- accepts dotted spellings of option names ("keep.fraction", "nudge.from")
- ignores unknown keys with a warning
- leaves missing options at their defaults
"""

from __future__ import annotations

import dataclasses
from typing import Any, Mapping, Type, TypeVar

from nicenudge.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def normalize_key(key: str) -> str:
    """Map a dotted option name to its Python spelling ("keep.fraction" -> "keep_fraction")."""
    return str(key).replace(".", "_")


def normalize_choice(value: Any) -> Any:
    """Map a dotted choice value to its Python spelling ("as.is" -> "as_is")."""
    if isinstance(value, str):
        return value.replace(".", "_")
    return value


def options_to_dict(options: Any) -> dict[str, Any]:
    """Serialize an option dataclass to a flat dict of its init fields."""
    return {
        f.name: getattr(options, f.name)
        for f in dataclasses.fields(options)
        if f.init
    }


def options_from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
    """Build an option dataclass from a dict, tolerating dotted and unknown keys."""
    known = {f.name for f in dataclasses.fields(cls) if f.init}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        name = normalize_key(key)
        if name not in known:
            logger.warning(f"Unknown key '{key}' in {cls.__name__} options, ignoring")
            continue
        kwargs[name] = value
    return cls(**kwargs)
