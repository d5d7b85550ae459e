from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from rpos.domain.errors import ValidationError

EntityId = Union[int, str]


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    TRANSFER = "TRANSFER"

    @classmethod
    def parse(cls, value) -> "PaymentMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValidationError(f"Invalid payment method: {value!r}. Use one of: {allowed}.") from None


class ExpenseCategory(str, Enum):
    UTILITIES = "UTILITIES"
    RENT = "RENT"
    PAYROLL = "PAYROLL"
    MAINTENANCE = "MAINTENANCE"
    ADMIN = "ADMIN"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value) -> "ExpenseCategory":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValidationError(f"Invalid expense category: {value!r}. Use one of: {allowed}.") from None


@dataclass(frozen=True)
class Product:
    id: EntityId
    sku: str
    name: str
    category: str
    cost_price: Decimal
    sell_price: Decimal
    stock: int
    min_stock: int
    description: Optional[str] = None

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    @property
    def stock_value(self) -> Decimal:
        return self.cost_price * self.stock


@dataclass(frozen=True)
class SaleItem:
    product_id: EntityId
    product_name: str
    quantity: int
    unit_price: Decimal
    unit_cost: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def line_margin(self) -> Decimal:
        return (self.unit_price - self.unit_cost) * self.quantity


@dataclass(frozen=True)
class Sale:
    id: EntityId
    created_at: str
    total_amount: Decimal
    payment_method: PaymentMethod
    items: tuple[SaleItem, ...] = ()


@dataclass(frozen=True)
class PurchaseItem:
    product_id: EntityId
    product_name: str
    quantity: int
    unit_cost: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_cost * self.quantity


@dataclass(frozen=True)
class Purchase:
    id: EntityId
    created_at: str
    supplier_name: str
    total_amount: Decimal
    items: tuple[PurchaseItem, ...] = ()


@dataclass(frozen=True)
class Expense:
    id: EntityId
    created_at: str
    description: str
    category: ExpenseCategory
    amount: Decimal


@dataclass(frozen=True)
class InitialInventoryPeriod:
    id: EntityId
    created_at: str
    period_name: str
    total_value: Decimal
    is_active: bool


@dataclass(frozen=True)
class CompanyProfile:
    name: str = "POS Honduras"
    tax_id: str = ""
    address: str = ""
    phone: str = ""
