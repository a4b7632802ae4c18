"""
Money Utilities - Decimal handling for cart prices.

Prices travel as strings on the wire and in browser storage, as numbers in the
relational store, and as Decimal everywhere in between.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

# Default precision for money operations (2 decimal places)
MONEY_PRECISION = Decimal("0.01")

Numeric = Union[str, int, float, Decimal, None]


def to_decimal(value: Numeric) -> Decimal:
    """
    Convert any value to Decimal safely.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)

    Returns:
        Decimal representation of the value, or Decimal("0") if None/invalid
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        # Convert via string to avoid float precision issues
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def round_money(value: Numeric) -> Decimal:
    """Round monetary value to cents."""
    return to_decimal(value).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def multiply(value: Numeric, factor: Numeric) -> Decimal:
    """Safe multiplication of monetary value by a factor."""
    return to_decimal(value) * to_decimal(factor)


def to_float(value: Numeric) -> float:
    """
    Convert Decimal to float for JSON serialization or external APIs.

    Use only at API boundaries, not for internal calculations.
    """
    return float(to_decimal(value))
