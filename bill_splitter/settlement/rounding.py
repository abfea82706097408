"""
Rounding Policy

Every quantity and amount written into a session passes through this module.
There is exactly one rule: two decimal places, ROUND_HALF_UP, applied at
input time. Values are converted via str() before rounding, so a float such
as 1.005 is treated as the decimal literal 1.005 and rounds to 1.01.

Tax shares are NOT rounded here: the calculator keeps them exact so that
per-person tax shares always add back up to the tax amount.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

Number = Union[int, float, str, Decimal]

CENT = Decimal("0.01")
ZERO = Decimal("0")

# Tolerance for "fully assigned": absorbs 2-decimal-place share noise.
ASSIGNMENT_EPSILON = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """
    Convert a user or model supplied number to Decimal.

    Raises ValueError for unparseable strings, booleans, NaN and infinities.
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        text = value.strip() if isinstance(value, str) else str(value)
        try:
            result = Decimal(text)
        except (InvalidOperation, TypeError, ValueError):
            raise ValueError(f"Not a valid number: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def round2(value: Number) -> Decimal:
    """
    Round to 2 decimal places, half-up.

    Raises ValueError when the result has too many digits to represent.
    """
    try:
        return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Not a valid number: {value!r}") from None


def clamp_non_negative(value: Number) -> Decimal:
    """The write-time rule for shares and tax: max(0, round2(value))."""
    rounded = round2(value)
    if rounded < ZERO:
        return ZERO.quantize(CENT)
    # -0.00 would survive max() and render as "-0.00"
    return rounded.copy_abs() if rounded == ZERO else rounded
