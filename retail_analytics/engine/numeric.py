"""
Decimal helpers shared by the aggregator and the window engine.
"""

from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, Optional

# Working precision for means and differences; well beyond any display scale.
PRECISION = 50


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def exact_divide(numerator: Any, denominator: Any) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return to_decimal(numerator) / to_decimal(denominator)


def exact_subtract(a: Any, b: Any) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return to_decimal(a) - to_decimal(b)


def round_half_up(value: Any, places: Optional[int] = 2) -> Any:
    """
    Round a number to `places` decimals, halves away from zero.

    None and non-numeric values pass through; places=None leaves the value
    untouched.
    """
    if value is None or places is None or isinstance(value, bool):
        return value
    if not isinstance(value, (int, float, Decimal)):
        return value
    exponent = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)
