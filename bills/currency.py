"""
Currency Parsing for Bill Amounts
==================================
Bills print amounts with '.' as thousands separator and ',' as decimal
separator, often prefixed with '$' and padded with '*' fill characters
(e.g. "$***1.234,56").
"""

import math
import re

# Leading numeric prefix, the same way a lenient float parser reads "12.5kWh"
_NUMERIC_PREFIX = re.compile(r'^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


def parse_currency(value: str) -> float:
    """
    Convert a locale-formatted amount to a float.

    Strips '$' and '*', drops every '.', turns the first ',' into '.'.
    Returns NaN when no number can be read; callers must guard.
    """
    cleaned = value.replace("$", "").replace("*", "").replace(".", "").replace(",", ".", 1)
    match = _NUMERIC_PREFIX.match(cleaned)
    if not match:
        return math.nan
    return float(match.group(0))


def title_case(name: str) -> str:
    """'JUAN PEREZ' -> 'Juan Perez' (display helper for client names)."""
    return " ".join(w[:1].upper() + w[1:] for w in name.lower().split(" "))
