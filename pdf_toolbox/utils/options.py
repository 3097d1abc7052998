"""Helpers for reading string-typed operation options."""

import re
from typing import Dict

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+))")


def lenient_int(options: Dict[str, str], key: str, default: int) -> int:
    """
    Read an integer option the way a form field is usually read.

    Leading digits are used and trailing junk ignored ("12px" -> 12).
    Missing, non-numeric and zero values fall back to the default.
    """
    match = _LEADING_INT.match(options.get(key, "") or "")
    if not match:
        return default
    return int(match.group(1)) or default


def lenient_float(options: Dict[str, str], key: str, default: float) -> float:
    """Float counterpart of lenient_int."""
    match = _LEADING_FLOAT.match(options.get(key, "") or "")
    if not match:
        return default
    return float(match.group(1)) or default
