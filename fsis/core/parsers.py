"""
Lenient query-parameter parsing.

Display hints come straight from page markup, so malformed values are
treated as "not given" instead of failing the request.
"""

import re

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


def get_int(value: str | None, default: int = 0) -> int:
    """
    Parse a leading integer from a query value.

    Examples:
        "100" -> 100
        " 42px" -> 42
        "abc" -> 0
        None -> 0
        "-5" -> -5
    """
    if value is None:
        return default

    match = _INT_PREFIX.match(value)
    if not match:
        return default
    return int(match.group(1))


def get_text(value: str | None) -> str:
    """Return a trimmed text value, or "" when missing."""
    if value is None:
        return ""
    return value.strip()
