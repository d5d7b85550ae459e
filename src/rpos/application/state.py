"""Application state for the desktop UI.

The current page, the checkout cart and the purchase draft live in one
immutable :class:`AppState`. Views never mutate it; they dispatch actions to a
:class:`Store`, which runs :func:`reduce` and notifies subscribers.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Callable, Union

from rpos.domain.errors import InsufficientStockError, ValidationError
from rpos.domain.models import EntityId, PaymentMethod, Product
from rpos.domain.money import ZERO, money_sum, to_money


class Page(str, Enum):
    DASHBOARD = "dashboard"
    POS = "pos"
    PRODUCTS = "products"
    PURCHASES = "purchases"
    EXPENSES = "expenses"
    INITIAL_INVENTORY = "initial_inventory"
    REPORTS = "reports"
    CONFIGURATION = "configuration"


@dataclass(frozen=True)
class CartLine:
    product_id: EntityId
    sku: str
    name: str
    unit_price: Decimal
    quantity: int
    stock: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PurchaseLine:
    product_id: EntityId
    sku: str
    name: str
    quantity: int
    unit_cost: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_cost * self.quantity


@dataclass(frozen=True)
class AppState:
    page: Page = Page.DASHBOARD
    cart: tuple[CartLine, ...] = ()
    payment_method: PaymentMethod = PaymentMethod.CASH
    purchase_lines: tuple[PurchaseLine, ...] = ()
    supplier_name: str = ""

    @property
    def cart_total(self) -> Decimal:
        return money_sum(line.line_total for line in self.cart) if self.cart else ZERO

    @property
    def purchase_total(self) -> Decimal:
        return money_sum(line.line_total for line in self.purchase_lines) if self.purchase_lines else ZERO

    def sale_items(self) -> list[dict]:
        return [
            {"product_id": line.product_id, "quantity": line.quantity, "unit_price": line.unit_price}
            for line in self.cart
        ]

    def purchase_items(self) -> list[dict]:
        return [
            {"product_id": line.product_id, "quantity": line.quantity, "unit_cost": line.unit_cost}
            for line in self.purchase_lines
        ]


# ---------- Actions ----------
@dataclass(frozen=True)
class Navigate:
    page: Page


@dataclass(frozen=True)
class AddToCart:
    product: Product


@dataclass(frozen=True)
class SetCartQuantity:
    product_id: EntityId
    quantity: int


@dataclass(frozen=True)
class RemoveFromCart:
    product_id: EntityId


@dataclass(frozen=True)
class ClearCart:
    pass


@dataclass(frozen=True)
class SelectPaymentMethod:
    method: PaymentMethod


@dataclass(frozen=True)
class AddPurchaseLine:
    product: Product


@dataclass(frozen=True)
class UpdatePurchaseLine:
    product_id: EntityId
    quantity: int
    unit_cost: Decimal


@dataclass(frozen=True)
class RemovePurchaseLine:
    product_id: EntityId


@dataclass(frozen=True)
class SetSupplier:
    name: str


@dataclass(frozen=True)
class ClearPurchase:
    pass


Action = Union[
    Navigate, AddToCart, SetCartQuantity, RemoveFromCart, ClearCart, SelectPaymentMethod,
    AddPurchaseLine, UpdatePurchaseLine, RemovePurchaseLine, SetSupplier, ClearPurchase,
]


def _find(lines, product_id):
    for line in lines:
        if line.product_id == product_id:
            return line
    return None


def reduce(state: AppState, action: Action) -> AppState:
    """Pure transition. Rejected actions raise a ValidationError and leave state alone."""
    if isinstance(action, Navigate):
        return replace(state, page=Page(action.page))

    if isinstance(action, AddToCart):
        p = action.product
        if p.stock <= 0:
            raise InsufficientStockError(f"{p.name} is out of stock.")
        line = _find(state.cart, p.id)
        if line is None:
            new = CartLine(product_id=p.id, sku=p.sku, name=p.name, unit_price=to_money(p.sell_price), quantity=1, stock=p.stock)
            return replace(state, cart=state.cart + (new,))
        if line.quantity + 1 > p.stock:
            raise InsufficientStockError(f"No more stock available for {p.name}.")
        return replace(
            state,
            cart=tuple(replace(ln, quantity=ln.quantity + 1, stock=p.stock) if ln is line else ln for ln in state.cart),
        )

    if isinstance(action, SetCartQuantity):
        line = _find(state.cart, action.product_id)
        if line is None:
            return state
        qty = int(action.quantity)
        if qty < 1:
            raise ValidationError("Qty must be >= 1.")
        if qty > line.stock:
            raise InsufficientStockError(f"Not enough stock for {line.name}. Available: {line.stock}")
        return replace(state, cart=tuple(replace(ln, quantity=qty) if ln is line else ln for ln in state.cart))

    if isinstance(action, RemoveFromCart):
        if _find(state.cart, action.product_id) is None:
            return state
        return replace(state, cart=tuple(ln for ln in state.cart if ln.product_id != action.product_id))

    if isinstance(action, ClearCart):
        return replace(state, cart=())

    if isinstance(action, SelectPaymentMethod):
        return replace(state, payment_method=PaymentMethod.parse(action.method))

    if isinstance(action, AddPurchaseLine):
        p = action.product
        if _find(state.purchase_lines, p.id) is not None:
            return state
        # defaults to the current weighted cost
        new = PurchaseLine(product_id=p.id, sku=p.sku, name=p.name, quantity=1, unit_cost=to_money(p.cost_price))
        return replace(state, purchase_lines=state.purchase_lines + (new,))

    if isinstance(action, UpdatePurchaseLine):
        line = _find(state.purchase_lines, action.product_id)
        if line is None:
            return state
        qty = int(action.quantity)
        cost = to_money(action.unit_cost)
        if qty < 1:
            raise ValidationError("Qty must be >= 1.")
        if cost < 0:
            raise ValidationError("Unit cost must be >= 0.")
        return replace(
            state,
            purchase_lines=tuple(replace(ln, quantity=qty, unit_cost=cost) if ln is line else ln for ln in state.purchase_lines),
        )

    if isinstance(action, RemovePurchaseLine):
        if _find(state.purchase_lines, action.product_id) is None:
            return state
        return replace(state, purchase_lines=tuple(ln for ln in state.purchase_lines if ln.product_id != action.product_id))

    if isinstance(action, SetSupplier):
        return replace(state, supplier_name=action.name or "")

    if isinstance(action, ClearPurchase):
        return replace(state, purchase_lines=(), supplier_name="")

    raise TypeError(f"Unknown action: {action!r}")


class Store:
    def __init__(self, state: AppState | None = None):
        self.state = state or AppState()
        self._listeners: list[Callable[[AppState], None]] = []

    def subscribe(self, listener: Callable[[AppState], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, action: Action) -> AppState:
        new_state = reduce(self.state, action)
        if new_state is not self.state:
            self.state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self.state
