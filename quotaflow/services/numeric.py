"""
Numeric normalization for money and rate fields.

Values reach the commission engine as Decimal (Numeric columns), float,
int, strings (JSON payloads) or arbitrary wrappers. to_number is the only
place that looks at a value's runtime type.
"""

import math
from decimal import Decimal
from typing import Any


def to_number(value: Any) -> float:
    """
    Coerce a value to a finite float.

    Returns 0.0 for None, booleans, non-numeric strings, NaN/inf and
    anything whose conversion raises. Never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    try:
        if isinstance(value, (int, float, Decimal)):
            result = float(value)
        elif isinstance(value, str):
            text = value.strip()
            if not text:
                return 0.0
            result = float(text)
        else:
            converter = getattr(value, "to_number", None) or getattr(value, "toNumber", None)
            if callable(converter):
                result = float(converter())
            elif hasattr(value, "__float__"):
                result = float(value)
            else:
                return 0.0
    except Exception:
        # Wrapper conversion hooks can raise anything
        return 0.0

    if not math.isfinite(result):
        return 0.0
    return result
