"""
Unsigned 128-bit amount arithmetic and Decimal ratio helpers.

All token amounts are Python ints constrained to [0, 2**128 - 1]. Rates
(exit tax, exchange rate, commission) are Decimals with 18 fractional digits.
"""

from decimal import Decimal, ROUND_DOWN, InvalidOperation, localcontext
from typing import Union

from .constants import UINT128_MAX, DECIMAL_PLACES
from .exceptions import DivideByZeroError, Uint128OverflowError, UnderflowError

# 2**128 has 39 digits; products of two amounts need twice that
_PRECISION = 96
_QUANTUM = Decimal(1).scaleb(-DECIMAL_PLACES)


def check_amount(value: int, field: str = "amount") -> int:
    """Validate that *value* is a uint128."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field} must be an int, got {type(value).__name__}")
    if value < 0:
        raise UnderflowError(field, 0, -value)
    if value > UINT128_MAX:
        raise Uint128OverflowError(field, value)
    return value


def checked_add(a: int, b: int, field: str = "amount") -> int:
    total = a + b
    if total > UINT128_MAX:
        raise Uint128OverflowError(field, total)
    return total


def checked_sub(a: int, b: int, field: str = "amount") -> int:
    if b > a:
        raise UnderflowError(field, a, b)
    return a - b


def multiply_ratio(value: int, numerator: int, denominator: int) -> int:
    """Return floor(value * numerator / denominator) without float rounding."""
    if denominator == 0:
        raise DivideByZeroError(f"{value} * {numerator} / {denominator}")
    result = value * numerator // denominator
    if result > UINT128_MAX:
        raise Uint128OverflowError("ratio", result)
    return result


def mul_floor(value: int, rate: Decimal) -> int:
    """Return floor(value * rate) for a non-negative Decimal rate."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        product = Decimal(value) * rate
        return int(product.to_integral_value(rounding=ROUND_DOWN))


def decimal_from_ratio(numerator: int, denominator: int) -> Decimal:
    """Exact-as-possible Decimal for numerator / denominator, truncated to 18 places."""
    if denominator == 0:
        raise DivideByZeroError(f"ratio {numerator}/{denominator}")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return (Decimal(numerator) / Decimal(denominator)).quantize(_QUANTUM, rounding=ROUND_DOWN)


def to_decimal(value: Union[str, int, float, Decimal], field: str = "rate") -> Decimal:
    """Parse a rate from config or message input, truncated to 18 places."""
    if isinstance(value, float):
        # repr() of a float is its shortest round-tripping form
        value = repr(value)
    try:
        parsed = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"{field} is not a decimal: {value!r}")
    if not parsed.is_finite():
        raise ValueError(f"{field} must be finite, got {value!r}")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return parsed.quantize(_QUANTUM, rounding=ROUND_DOWN)


def format_decimal(value: Decimal) -> str:
    """Render a Decimal without exponent or trailing zeros ("1.5", "0.02", "1")."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
