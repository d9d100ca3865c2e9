"""
Threshold Evaluator

Exact-decimal rain threshold check. Amounts are never compared as binary
floats: 0.1 + 0.15 must equal 0.25, and 0.249999 must stay below it.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from raintrigger.config import EPA_RAIN_THRESHOLD_INCHES

from .exceptions import InvalidInput


def to_decimal(value: Any, field: str = "precipitation") -> Decimal:
    """
    Convert a precipitation value to Decimal.

    Floats go through their shortest repr so ``0.1 + 0.15`` becomes
    ``Decimal("0.25")`` rather than the full binary expansion.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"Invalid {field} value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        if isinstance(value, float):
            raw = repr(value)
        elif isinstance(value, str):
            raw = value.strip()
        else:
            raw = value
        try:
            result = Decimal(raw)
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise InvalidInput(f"Invalid {field} value: {value!r}") from exc

    if not result.is_finite():
        raise InvalidInput(f"Invalid {field} value: {value!r}")
    if result < 0:
        raise InvalidInput(f"Negative {field} value: {value!r}")
    return result


def evaluate(aggregated_amount: Any, threshold: Any = EPA_RAIN_THRESHOLD_INCHES) -> bool:
    """Return True when the 24h amount meets or exceeds the threshold."""
    amount = to_decimal(aggregated_amount)
    limit = to_decimal(threshold, field="threshold")
    return amount >= limit
