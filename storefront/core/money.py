"""Decimal helpers shared by the pricing engine and the cart mirror.

Money is never represented as binary float. Values coming from JSON or the
database are routed through :func:`to_money` first.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

MoneyLike = Union[Decimal, int, str, float]

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: MoneyLike | None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary value")
    if isinstance(value, float):
        # str() keeps the shortest repr, so 99.99 stays 99.99 rather than 99.989999...
        return Decimal(str(value))
    return Decimal(value)


def quantize_money(value: MoneyLike) -> Decimal:
    return to_money(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(value: MoneyLike) -> int:
    return int((to_money(value) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(value: int) -> Decimal:
    return quantize_money(Decimal(value) / 100)


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    if value < low:
        return low
    if value > high:
        return high
    return value
