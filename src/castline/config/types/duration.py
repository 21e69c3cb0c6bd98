"""Duration parsing shared by castline configuration models."""

from datetime import timedelta
from typing import Any, cast

import pytimeparse2  # pyright: ignore[reportMissingTypeStubs]


def parse_duration(v: Any, field_name: str) -> timedelta | None:
    """Parse a duration given as a string, number of seconds or timedelta.

    Args:
        v: Raw value, e.g. ``"30s"``, ``"6h"``, ``"1 day"``, ``90`` or a timedelta.
        field_name: Name of the field being validated, used in error messages.

    Returns:
        The parsed timedelta, or None when the value is empty.

    Raises:
        ValueError: If the string cannot be parsed or is negative.
        TypeError: If the value has an unsupported type.
    """
    match v:
        case None:
            return None
        case str() as s if not s.strip():
            return None
        case str() as s:
            seconds = cast(
                int | float | None,
                pytimeparse2.parse(s.strip()),  # pyright: ignore[reportUnknownMemberType]
            )
            if seconds is None:
                raise ValueError(
                    f"Invalid duration format for {field_name}: '{s}'. "
                    "Examples: '30s', '5m', '6h', '1 day'"
                )
            if seconds < 0:
                raise ValueError(f"{field_name} must be non-negative, got '{s}'")
            return timedelta(seconds=seconds)
        case bool():
            raise TypeError(f"{field_name} must be a duration, got bool")
        case int() | float() as n:
            if n < 0:
                raise ValueError(f"{field_name} must be non-negative, got {n}")
            return timedelta(seconds=n)
        case timedelta():
            return v
        case _:
            raise TypeError(
                f"{field_name} must be a duration string (e.g., '30s', '6h') "
                f"or a number of seconds, got {type(v).__name__}"
            )
