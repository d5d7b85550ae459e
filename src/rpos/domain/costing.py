from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable

from rpos.domain.errors import ValidationError
from rpos.domain.money import round2, to_money


def _whole(value, label: str) -> int:
    """Unit count as int; fractional, bool or non-numeric input is rejected, never truncated."""
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a whole number.")
    if isinstance(value, int):
        return value
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{label} must be a whole number.") from None
    if not d.is_finite() or d != d.to_integral_value():
        raise ValidationError(f"{label} must be a whole number.")
    return int(d)


@dataclass(frozen=True)
class CostUpdate:
    new_stock: int
    new_cost: Decimal


def apply_purchase(current_stock: int, current_cost, incoming_qty: int, unit_cost) -> CostUpdate:
    """
    Weighted average cost after receiving stock:
      new_cost = (old_stock*old_cost + qty*unit_cost) / (old_stock+qty)

    With nothing on hand and nothing incoming the cost is left as is.
    """
    current_stock = _whole(current_stock, "Current stock")
    incoming_qty = _whole(incoming_qty, "Incoming qty")
    cost = to_money(current_cost)
    unit = to_money(unit_cost)

    if current_stock < 0:
        raise ValidationError("Current stock must be >= 0.")
    if incoming_qty < 0:
        raise ValidationError("Incoming qty must be >= 0.")
    if cost < 0 or unit < 0:
        raise ValidationError("Costs must be >= 0.")

    if incoming_qty == 0:
        return CostUpdate(new_stock=current_stock, new_cost=cost)

    new_stock = current_stock + incoming_qty
    new_cost = (current_stock * cost + incoming_qty * unit) / Decimal(new_stock)
    return CostUpdate(new_stock=new_stock, new_cost=round2(new_cost))


def apply_purchase_lines(stock: int, cost, lines: Iterable[tuple[int, object]]) -> CostUpdate:
    """Fold several (qty, unit_cost) receipts for one product, in order."""
    update = CostUpdate(new_stock=_whole(stock, "Current stock"), new_cost=to_money(cost))
    for qty, unit_cost in lines:
        update = apply_purchase(update.new_stock, update.new_cost, qty, unit_cost)
    return update
