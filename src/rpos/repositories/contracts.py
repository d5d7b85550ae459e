from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Protocol

from rpos.domain.models import (
    EntityId,
    Expense,
    InitialInventoryPeriod,
    Product,
    Purchase,
    Sale,
)


class ProductRepository(Protocol):
    def list_products(self) -> list[Product]: ...
    def get_product_by_id(self, product_id: EntityId) -> Optional[Product]: ...
    def get_product_by_sku(self, sku: str) -> Optional[Product]: ...
    def list_skus(self) -> list[str]: ...
    def insert_product(self, record: dict) -> EntityId: ...
    def update_product(self, product_id: EntityId, patch: dict) -> bool: ...
    def delete_product(self, product_id: EntityId) -> bool: ...


class StoreRepository(ProductRepository, Protocol):
    """Everything the services need from the backing store.

    Writes spanning several tables (create_sale, create_purchase,
    set_active_initial_inventory) are all-or-nothing.
    """

    def create_sale(self, created_at: str, payment_method: str, items: Iterable[dict]) -> Sale: ...
    def list_sales(self) -> list[Sale]: ...
    def get_sale(self, sale_id: EntityId) -> Optional[Sale]: ...

    def create_purchase(self, created_at: str, supplier_name: str, items: Iterable[dict]) -> Purchase: ...
    def list_purchases(self) -> list[Purchase]: ...
    def get_purchase(self, purchase_id: EntityId) -> Optional[Purchase]: ...

    def insert_expense(self, created_at: str, description: str, category: str, amount: Decimal) -> Expense: ...
    def list_expenses(self) -> list[Expense]: ...

    def set_active_initial_inventory(self, created_at: str, period_name: str, total_value: Decimal) -> InitialInventoryPeriod: ...
    def get_active_initial_inventory(self) -> Optional[InitialInventoryPeriod]: ...
    def list_initial_inventory(self) -> list[InitialInventoryPeriod]: ...

    def get_settings(self) -> dict[str, str]: ...
    def save_settings(self, values: dict[str, str]) -> None: ...
