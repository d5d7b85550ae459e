from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from rpos.domain.errors import DataQualityError, ValidationError
from rpos.domain.models import Expense, InitialInventoryPeriod, Product, Purchase, Sale
from rpos.domain.money import ZERO, money_sum, round2, to_money

log = logging.getLogger(__name__)

UNDEFINED_PERIOD = "Undefined period"


class CogsPolicy(str, Enum):
    CLAMP = "clamp"
    STRICT = "strict"

    @classmethod
    def parse(cls, value) -> "CogsPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown COGS policy: {value!r}") from None


@dataclass(frozen=True)
class ProfitAndLoss:
    period_name: str
    revenue: Decimal
    initial_inventory: Decimal
    purchases: Decimal
    final_inventory: Decimal
    cogs_raw: Decimal
    cogs: Decimal
    gross_profit: Decimal
    operating_expenses: Decimal
    net_profit: Decimal
    expenses_by_category: dict[str, Decimal] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    @property
    def cogs_clamped(self) -> bool:
        return self.cogs != self.cogs_raw


def inventory_value(products: Iterable[Product]) -> Decimal:
    total = ZERO
    for p in products:
        total += to_money(p.cost_price) * int(p.stock)
    return round2(total)


def compute_profit_and_loss(
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    purchases: Iterable[Purchase],
    products: Iterable[Product],
    initial_inventory: Optional[InitialInventoryPeriod],
    policy: CogsPolicy | str = CogsPolicy.CLAMP,
) -> ProfitAndLoss:
    """
    COGS = initial inventory + purchases - final inventory (stock * weighted cost).

    A negative COGS means the initial inventory was never recorded or is too
    low. Under CLAMP it is reported as 0 with a warning; under STRICT it raises.
    """
    policy = CogsPolicy.parse(policy)
    expenses = list(expenses)

    revenue = money_sum(s.total_amount for s in sales)
    purchases_total = money_sum(p.total_amount for p in purchases)
    final_value = inventory_value(products)

    if initial_inventory is not None:
        initial_value = to_money(initial_inventory.total_value)
        period_name = initial_inventory.period_name
    else:
        initial_value = ZERO
        period_name = UNDEFINED_PERIOD

    cogs_raw = round2(initial_value + purchases_total - final_value)
    warnings: list[str] = []
    cogs = cogs_raw
    if cogs_raw < 0:
        msg = (
            f"Negative cost of goods sold ({cogs_raw}): initial inventory {initial_value} + "
            f"purchases {purchases_total} is below current stock value {final_value}. "
            "Check the initial inventory of the active period."
        )
        if policy is CogsPolicy.STRICT:
            raise DataQualityError(msg)
        log.warning("pnl_negative_cogs cogs_raw=%s period=%s", cogs_raw, period_name)
        warnings.append(msg)
        cogs = ZERO
    if initial_inventory is None:
        warnings.append("No active initial inventory period; initial inventory taken as 0.")

    by_category: dict[str, Decimal] = {}
    for e in expenses:
        key = getattr(e.category, "value", str(e.category))
        by_category[key] = round2(by_category.get(key, ZERO) + to_money(e.amount))
    opex = money_sum(e.amount for e in expenses)

    gross = round2(revenue - cogs)
    net = round2(gross - opex)

    return ProfitAndLoss(
        period_name=period_name,
        revenue=revenue,
        initial_inventory=initial_value,
        purchases=purchases_total,
        final_inventory=final_value,
        cogs_raw=cogs_raw,
        cogs=cogs,
        gross_profit=gross,
        operating_expenses=opex,
        net_profit=net,
        expenses_by_category=by_category,
        warnings=tuple(warnings),
    )
