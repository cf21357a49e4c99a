"""
Memory sizes for thresholds and release reports.

Configuration accepts resident memory ceilings written as "512MB" or "1GiB",
and released children report their resident memory in the same compact form.
Units are binary throughout, so 1KB and 1KiB are both 1024 bytes.

    >>> size_str(1536)
    '1.5KB'
    >>> size_to_bytes('1.5MB')
    1572864
"""

import math
import re

KB = 1024
MB = KB * 1024
GB = MB * 1024
TB = GB * 1024

# Largest unit first so size_str picks the biggest that fits
_SUFFIXES = (("TB", TB), ("GB", GB), ("MB", MB), ("KB", KB))

_PARSE_RE = re.compile(r"^(?P<num>\d+(?:\.\d+)?)\s*(?P<unit>[KMGT]I?B|B)$", re.IGNORECASE)


class InvalidSizeError(Exception):
    """A byte count or size string that cannot be used."""


def size_str(size: float | int | None) -> str:
    """
    Render a byte count compactly, with at most one decimal.

    None renders as an empty string so missing readings can be logged as-is.

    Raises:
        InvalidSizeError: For negative, non-finite or non-numeric sizes
    """
    if size is None:
        return ""
    if isinstance(size, bool) or not isinstance(size, (int, float)):
        raise InvalidSizeError(f"expected a byte count, got {type(size).__name__}")
    if not math.isfinite(size) or size < 0:
        raise InvalidSizeError(f"invalid byte count: {size}")

    for suffix, unit in _SUFFIXES:
        if size >= unit:
            return _trim(size / unit) + suffix
    return _trim(size) + "B"


def size_to_bytes(text: str) -> int:
    """
    Parse "512MB", "2 GB", "1GiB" or a bare byte count.

    Raises:
        InvalidSizeError: If the text is not a size
    """
    if not isinstance(text, str):
        raise InvalidSizeError(f"expected a size string, got {type(text).__name__}")
    text = text.strip()
    if text.isdecimal():
        return int(text)

    match = _PARSE_RE.match(text)
    if match is None:
        raise InvalidSizeError(f"not a size: {text!r}")

    unit = match.group("unit").upper().replace("I", "")
    multiplier = dict(_SUFFIXES).get(unit, 1)
    return int(float(match.group("num")) * multiplier)


def _trim(value: float) -> str:
    text = f"{value:.1f}"
    return text[:-2] if text.endswith(".0") else text


__all__ = ["size_str", "size_to_bytes", "InvalidSizeError"]
