"""
Values -- numeric normalization for metric records.

Every monetary amount, rate and difference in the planner is a ``Decimal``.
Payloads arrive as JSON (ints, floats, strings); ``to_decimal`` is the one
sanctioned conversion so that ``0.05`` becomes ``Decimal("0.05")`` rather
than the binary float expansion.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

INFINITY = Decimal("Infinity")


def to_decimal(value: Any) -> Decimal:
    """Convert a number-like value to Decimal.

    Raises:
        TypeError: for booleans and non-numeric types.
        ValueError: for strings that are not numbers.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Booleans are not numeric amounts")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value)
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}") from None
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


def decimal_or_none(value: Any) -> Decimal | None:
    """Lenient conversion for free-form payloads: non-numbers become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        result = to_decimal(value)
        return None if result.is_nan() else result
    return None


def decimal_to_json(value: Decimal | None) -> str | None:
    """Serialize a Decimal for JSON storage (``"Infinity"`` survives)."""
    if value is None:
        return None
    return str(value)


def decimal_from_json(value: Any) -> Decimal | None:
    if value is None:
        return None
    return to_decimal(value)
