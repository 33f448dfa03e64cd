"""Decimal money helpers - every monetary value carries exactly 2 fraction digits"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


def to_decimal(value: Number) -> Decimal:
    """Exact Decimal from int/str/Decimal; floats go through their repr to avoid binary noise"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round2(value: Number) -> Decimal:
    """Round half-up to 2 decimals"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def floor2(value: Number) -> Decimal:
    """Round down to 2 decimals"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_FLOOR)


def floor100(value: Number) -> Decimal:
    """Round down to the nearest hundred rupees"""
    hundreds = (to_decimal(value) / HUNDRED).to_integral_value(rounding=ROUND_FLOOR)
    return hundreds * HUNDRED


def percent_of(amount: Number, percent: Number) -> Decimal:
    """Unrounded ``amount * percent / 100``"""
    return to_decimal(amount) * to_decimal(percent) / HUNDRED


def money_str(value: Number) -> str:
    """Storage/API representation: ``'1234.50'``"""
    return f"{round2(value):.2f}"
