"""
Currency helpers. All amounts carry two decimal places.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Round a value to currency precision"""
    if not isinstance(value, Decimal):
        # str() keeps floats like 0.1 from dragging in binary noise
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Number) -> str:
    return f"${to_money(value):.2f}"
