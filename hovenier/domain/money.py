from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

D = Decimal

MONEY = D("0.01")
ZERO = D("0")
HUNDRED = D("100")


def qmoney(x: Decimal) -> Decimal:
    return x.quantize(MONEY, rounding=ROUND_HALF_UP)


def qround(x: Decimal, places: int = 2) -> Decimal:
    return x.quantize(D(1).scaleb(-places), rounding=ROUND_HALF_UP)


def to_decimal(value: Any, *, default: Decimal = ZERO) -> Decimal:
    """
    Accepts Decimal / int / str / float (via str, zodat 0.1 geen 0.1000000000000000055 wordt).
    None -> default. Raises ValueError on garbage.
    """
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    try:
        result = D(str(value))
    except InvalidOperation as e:
        raise ValueError(f"not a number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"not a number: {value!r}")
    return result


def format_eur(amount: Decimal) -> str:
    """€ 1.234,56 (nl-NL notatie)."""
    q = qmoney(D(amount))
    sign = "-" if q < 0 else ""
    whole, frac = f"{abs(q):.2f}".split(".")
    groups = []
    while whole:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    return f"{sign}€ {'.'.join(groups)},{frac}"
