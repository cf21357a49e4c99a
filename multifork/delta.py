"""
Duration formatting utilities.

Converts durations to/from compact strings so per-fork time budgets can be
configured as "90s", "2m" or "1h30m" and logged the same way.

Example Usage:
    >>> delta_str(3661.5)
    '1h1m1s'

    >>> delta_to_secs('1h30m')
    5400.0
"""

import math
import re

SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60

_UNIT_SECONDS = {
    "d": SECONDS_PER_DAY,
    "h": SECONDS_PER_HOUR,
    "m": SECONDS_PER_MINUTE,
    "s": 1.0,
    "ms": 0.001,
}

# Longer units first so "ms" is not read as "m" followed by "s"
_COMPONENT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)(ms|d|h|m|s)")
_NUMBER_PATTERN = re.compile(r"^\d+(?:\.\d+)?$")


class InvalidDurationError(Exception):
    """Raised when an invalid duration value or string is provided."""

    pass


def delta_str(secs: float | None) -> str:
    """
    Format a duration in seconds as a compact string.

    Whole days, hours and minutes are shown as integers; seconds keep up to
    three decimals when no larger unit is present.

    Raises:
        InvalidDurationError: If secs is negative, NaN, or infinite

    Examples:
        >>> delta_str(0)
        '0s'
        >>> delta_str(90)
        '1m30s'
        >>> delta_str(1.25)
        '1.25s'
    """
    if secs is None:
        return ""
    if not isinstance(secs, (int, float)) or math.isnan(secs) or math.isinf(secs):
        raise InvalidDurationError(f"Duration must be a finite number, got {secs!r}")
    if secs < 0:
        raise InvalidDurationError(f"Duration cannot be negative, got {secs}")

    days, rest = divmod(secs, SECONDS_PER_DAY)
    hours, rest = divmod(rest, SECONDS_PER_HOUR)
    minutes, rest = divmod(rest, SECONDS_PER_MINUTE)

    parts = []
    if days:
        parts.append(f"{int(days)}d")
    if hours:
        parts.append(f"{int(hours)}h")
    if minutes:
        parts.append(f"{int(minutes)}m")

    if parts:
        if int(rest):
            parts.append(f"{int(rest)}s")
        return "".join(parts)

    return (f"{rest:.3f}".rstrip("0").rstrip(".") or "0") + "s"


def delta_to_secs(text: str) -> float:
    """
    Parse a duration string to seconds.

    A bare number is taken as seconds. Each unit may appear once.

    Raises:
        InvalidDurationError: If the string cannot be parsed

    Examples:
        >>> delta_to_secs('2m')
        120.0
        >>> delta_to_secs('45.5')
        45.5
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidDurationError("Duration string cannot be empty")

    text = text.strip().replace(" ", "")
    if _NUMBER_PATTERN.match(text):
        return float(text)

    matches = _COMPONENT_PATTERN.findall(text)
    if not matches or "".join(v + u for v, u in matches) != text:
        raise InvalidDurationError(f"Could not parse duration string: '{text}'")

    seen: set[str] = set()
    total = 0.0
    for value, unit in matches:
        if unit in seen:
            raise InvalidDurationError(f"Duplicate unit '{unit}' in duration string")
        seen.add(unit)
        total += float(value) * _UNIT_SECONDS[unit]
    return total


__all__ = ["delta_str", "delta_to_secs", "InvalidDurationError"]
