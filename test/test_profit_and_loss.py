from decimal import Decimal

import pytest

from rpos.domain.errors import DataQualityError, ValidationError
from rpos.domain.models import (
    Expense,
    ExpenseCategory,
    InitialInventoryPeriod,
    PaymentMethod,
    Product,
    Purchase,
    Sale,
)
from rpos.domain.pnl import UNDEFINED_PERIOD, CogsPolicy, compute_profit_and_loss, inventory_value


def _sale(amount):
    return Sale(id=1, created_at="2024-01-01 10:00:00", total_amount=Decimal(amount), payment_method=PaymentMethod.CASH)


def _purchase(amount):
    return Purchase(id=1, created_at="2024-01-01 09:00:00", supplier_name="S", total_amount=Decimal(amount))


def _expense(amount, category=ExpenseCategory.RENT):
    return Expense(id=1, created_at="2024-01-02 09:00:00", description="x", category=category, amount=Decimal(amount))


def _product(stock, cost):
    return Product(id=1, sku="CAR-0001", name="P", category="Carnes", cost_price=Decimal(cost),
                   sell_price=Decimal("1.00"), stock=stock, min_stock=0)


def _period(value, name="Enero 2024"):
    return InitialInventoryPeriod(id=1, created_at="2024-01-01 00:00:00", period_name=name,
                                  total_value=Decimal(value), is_active=True)


def test_reference_statement():
    pnl = compute_profit_and_loss(
        sales=[_sale("1500.00"), _sale("500.00")],
        expenses=[_expense("200.00")],
        purchases=[_purchase("500.00")],
        products=[_product(3, "100.00")],
        initial_inventory=_period("1000.00"),
    )

    assert pnl.period_name == "Enero 2024"
    assert pnl.revenue == Decimal("2000.00")
    assert pnl.final_inventory == Decimal("300.00")
    assert pnl.cogs == Decimal("1200.00")
    assert pnl.gross_profit == Decimal("800.00")
    assert pnl.operating_expenses == Decimal("200.00")
    assert pnl.net_profit == Decimal("600.00")
    assert pnl.warnings == ()
    assert not pnl.cogs_clamped


def test_negative_cogs_is_clamped_with_warning():
    pnl = compute_profit_and_loss(
        sales=[_sale("100.00")],
        expenses=[],
        purchases=[_purchase("50.00")],
        products=[_product(10, "20.00")],
        initial_inventory=_period("0.00"),
    )

    assert pnl.cogs_raw == Decimal("-150.00")
    assert pnl.cogs == Decimal("0.00")
    assert pnl.cogs_clamped
    assert pnl.gross_profit == Decimal("100.00")
    assert any("Negative cost of goods sold" in w for w in pnl.warnings)


def test_negative_cogs_raises_under_strict_policy():
    with pytest.raises(DataQualityError, match="Negative cost of goods sold"):
        compute_profit_and_loss(
            sales=[],
            expenses=[],
            purchases=[],
            products=[_product(1, "5.00")],
            initial_inventory=_period("0.00"),
            policy="strict",
        )


def test_missing_period_uses_zero_and_warns():
    pnl = compute_profit_and_loss(
        sales=[], expenses=[], purchases=[_purchase("10.00")], products=[], initial_inventory=None,
    )

    assert pnl.period_name == UNDEFINED_PERIOD
    assert pnl.initial_inventory == Decimal("0.00")
    assert pnl.cogs == Decimal("10.00")
    assert any("No active initial inventory" in w for w in pnl.warnings)


def test_expenses_are_grouped_by_category():
    pnl = compute_profit_and_loss(
        sales=[],
        expenses=[
            _expense("100.00", ExpenseCategory.RENT),
            _expense("40.50", ExpenseCategory.UTILITIES),
            _expense("9.50", ExpenseCategory.UTILITIES),
        ],
        purchases=[],
        products=[],
        initial_inventory=_period("0.00"),
    )

    assert pnl.operating_expenses == Decimal("150.00")
    assert pnl.expenses_by_category == {"RENT": Decimal("100.00"), "UTILITIES": Decimal("50.00")}


def test_inventory_value_sums_stock_times_cost():
    assert inventory_value([_product(3, "10.10"), _product(2, "0.05")]) == Decimal("30.40")


def test_unknown_policy_is_rejected():
    with pytest.raises(ValidationError):
        CogsPolicy.parse("ignore")
