"""Human amount <-> base unit conversion and price display formatting.

All arithmetic goes through :class:`decimal.Decimal`. ``to_base_units`` truncates
toward zero, so ``from_base_units(to_base_units(x))`` can be smaller than ``x``
by strictly less than one base unit when ``x`` has more than 18 fractional
digits. Nothing converts the other way implicitly.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Any

from .errors import ValidationError

DENOMINATION_DECIMALS = 18
DENOM_MULTIPLIER = Decimal(10) ** DENOMINATION_DECIMALS
PRICE_SIGNIFICANT_DIGITS = 8
PRICE_WORKING_DIGITS = 28


def parse_decimal(value: Any, *, field_name: str) -> Decimal:
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} must be a number")
    else:
        try:
            parsed = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as error:
            raise ValidationError(f"{field_name} must be a number, got {value!r}") from error

    if not parsed.is_finite():
        raise ValidationError(f"{field_name} must be finite, got {value!r}")
    return parsed


def parse_positive_amount(value: Any, *, field_name: str = "amount") -> Decimal:
    amount = parse_decimal(value, field_name=field_name)
    if amount <= 0:
        raise ValidationError(f"{field_name} must be greater than zero, got {value!r}")
    return amount


def to_base_units(amount: Decimal | str | int) -> int:
    value = parse_positive_amount(amount)
    with localcontext() as ctx:
        ctx.prec = 80
        scaled = value * DENOM_MULTIPLIER
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_base_units(base_units: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(int(base_units)) / DENOM_MULTIPLIER


def normalize_price(value: Decimal) -> Decimal:
    """Round ``value`` to 28 significant digits, dropping noise left by earlier divisions.

    ``1 / (1 / 150)`` comes back as ``149.999...98``; this returns ``150``.
    """
    with localcontext() as ctx:
        ctx.prec = PRICE_WORKING_DIGITS
        return +value


def to_significant(value: Decimal, digits: int = PRICE_SIGNIFICANT_DIGITS) -> str:
    """Truncate ``value`` to ``digits`` significant digits as a fixed-point string.

    The value goes through :func:`normalize_price` first so inversion noise does
    not cost a whole display digit.

    >>> to_significant(Decimal("150"))
    '150.00000'
    >>> to_significant(Decimal("0.0066666666666"))
    '0.0066666666'
    """
    if value.is_zero():
        return "0"

    normalized = normalize_price(value)
    with localcontext() as ctx:
        ctx.prec = 80
        quantum = Decimal(1).scaleb(normalized.adjusted() - digits + 1)
        truncated = normalized.quantize(quantum, rounding=ROUND_DOWN)
    return f"{truncated:f}"


def invert_price(price: Decimal) -> Decimal:
    if price.is_zero():
        raise ZeroDivisionError("cannot invert a zero price")
    with localcontext() as ctx:
        ctx.prec = 40
        return Decimal(1) / price
