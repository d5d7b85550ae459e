from decimal import Decimal

import pytest

from rpos.application.state import (
    AddPurchaseLine,
    AddToCart,
    AppState,
    ClearCart,
    ClearPurchase,
    Navigate,
    Page,
    RemoveFromCart,
    RemovePurchaseLine,
    SelectPaymentMethod,
    SetCartQuantity,
    SetSupplier,
    Store,
    UpdatePurchaseLine,
    reduce,
)
from rpos.domain.errors import InsufficientStockError, ValidationError
from rpos.domain.models import PaymentMethod, Product


def _product(pid=1, stock=3, price="10.00", cost="6.00"):
    return Product(id=pid, sku=f"ABA-000{pid}", name=f"P{pid}", category="Abarrotes",
                   cost_price=Decimal(cost), sell_price=Decimal(price), stock=stock, min_stock=0)


def test_add_to_cart_increments_existing_line():
    state = reduce(AppState(), AddToCart(_product()))
    state = reduce(state, AddToCart(_product()))

    assert len(state.cart) == 1
    assert state.cart[0].quantity == 2
    assert state.cart_total == Decimal("20.00")


def test_add_to_cart_respects_stock():
    state = AppState()
    for _ in range(3):
        state = reduce(state, AddToCart(_product(stock=3)))

    with pytest.raises(InsufficientStockError):
        reduce(state, AddToCart(_product(stock=3)))
    with pytest.raises(InsufficientStockError):
        reduce(AppState(), AddToCart(_product(stock=0)))


def test_set_quantity_validates_bounds():
    state = reduce(AppState(), AddToCart(_product(stock=5)))

    assert reduce(state, SetCartQuantity(1, 5)).cart[0].quantity == 5
    with pytest.raises(InsufficientStockError):
        reduce(state, SetCartQuantity(1, 6))
    with pytest.raises(ValidationError):
        reduce(state, SetCartQuantity(1, 0))


def test_remove_and_clear_cart():
    state = reduce(AppState(), AddToCart(_product(1)))
    state = reduce(state, AddToCart(_product(2)))

    state = reduce(state, RemoveFromCart(1))
    assert [line.product_id for line in state.cart] == [2]
    assert reduce(state, ClearCart()).cart == ()


def test_sale_items_payload():
    state = reduce(AppState(), AddToCart(_product(price="12.50")))
    state = reduce(state, SelectPaymentMethod("card"))

    assert state.payment_method is PaymentMethod.CARD
    assert state.sale_items() == [{"product_id": 1, "quantity": 1, "unit_price": Decimal("12.50")}]


def test_purchase_draft_defaults_to_current_cost_and_dedups():
    state = reduce(AppState(), AddPurchaseLine(_product(cost="6.00")))
    state = reduce(state, AddPurchaseLine(_product(cost="6.00")))

    assert len(state.purchase_lines) == 1
    assert state.purchase_lines[0].unit_cost == Decimal("6.00")

    state = reduce(state, UpdatePurchaseLine(1, 4, "7.25"))
    state = reduce(state, SetSupplier("Distribuidora"))
    assert state.purchase_total == Decimal("29.00")
    assert state.purchase_items() == [{"product_id": 1, "quantity": 4, "unit_cost": Decimal("7.25")}]

    with pytest.raises(ValidationError):
        reduce(state, UpdatePurchaseLine(1, 0, "1"))
    with pytest.raises(ValidationError):
        reduce(state, UpdatePurchaseLine(1, 1, "-1"))

    assert reduce(state, RemovePurchaseLine(1)).purchase_lines == ()
    cleared = reduce(state, ClearPurchase())
    assert cleared.purchase_lines == () and cleared.supplier_name == ""


def test_store_notifies_only_on_change():
    store = Store()
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.dispatch(Navigate(Page.POS))
    store.dispatch(RemoveFromCart(99))  # no-op, same state object
    assert [s.page for s in seen] == [Page.POS]

    unsubscribe()
    store.dispatch(Navigate(Page.REPORTS))
    assert len(seen) == 1
    assert store.state.page is Page.REPORTS


def test_rejected_action_leaves_store_untouched():
    store = Store()
    with pytest.raises(InsufficientStockError):
        store.dispatch(AddToCart(_product(stock=0)))
    assert store.state == AppState()
