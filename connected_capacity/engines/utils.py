"""
Numeric Utilities - Connected Capacity Bundle Engine
connected_capacity/engines/utils.py

Precision-safe rounding and coercion helpers shared by the engines.
Rounding is half-away-from-zero so that 2.25 hours rounds to 2.3, matching
how intensities are published in the matrix tables.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional, Union

Number = Union[int, float]


def to_decimal(value: Number, places: int = 4) -> Decimal:
    """Convert a number to Decimal with explicit precision."""
    return Decimal(str(value)).quantize(
        Decimal(10) ** -places, rounding=ROUND_HALF_UP
    )


def round_half_up(value: Number, places: int = 0) -> float:
    """Round half away from zero and return a float."""
    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        return 0.0
    return float(to_decimal(value, places))


def clamp(value: Number, min_val: Number = 0, max_val: Number = 100) -> Number:
    """Clamp value to range [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def to_int(value: Any, default: int = 0) -> int:
    """
    Coerce an assessment item to int.

    Booleans become 1/0, numeric strings are parsed, anything else
    (None, empty string, free text) yields the default.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce a value to float, returning the default when impossible."""
    if value is None:
        return default
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def first_present(items: dict, *keys: str) -> Optional[Any]:
    """Return the value of the first key present and not None."""
    for key in keys:
        value = items.get(key)
        if value is not None:
            return value
    return None
