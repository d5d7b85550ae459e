from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from rpos.domain.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Coerce a number or numeric string to a Decimal rounded to cents."""
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e
    if not d.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_sum(values: Iterable) -> Decimal:
    total = ZERO
    for v in values:
        total += to_money(v)
    return round2(total)


def fmt_money(value, symbol: str = "L.") -> str:
    return f"{symbol} {to_money(value):,.2f}"
