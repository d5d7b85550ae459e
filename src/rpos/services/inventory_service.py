from __future__ import annotations

import logging
from typing import Optional

from rpos.domain.errors import NotFoundError, ValidationError
from rpos.domain.models import EntityId, Product
from rpos.domain.money import to_money
from rpos.domain.sku import SequentialSkuPolicy, SkuPolicy, ensure_unique_sku, normalize_sku

log = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    {"name": "Tajo de Res", "sku": "CAR-0001", "category": "Carnes", "cost_price": "80.00", "sell_price": "120.00", "stock": 15, "min_stock": 5},
    {"name": "Leche Entera", "sku": "LAC-0001", "category": "Lácteos", "cost_price": "25.00", "sell_price": "32.00", "stock": 50, "min_stock": 10},
    {"name": "Pan Molde Blanco", "sku": "PAN-0001", "category": "Panadería", "cost_price": "35.00", "sell_price": "50.00", "stock": 20, "min_stock": 5},
    {"name": "Refresco Cola 3L", "sku": "BEB-0001", "category": "Agua y Refrescos", "cost_price": "45.00", "sell_price": "60.00", "stock": 30, "min_stock": 8},
    {"name": "Jabón de Baño", "sku": "PER-0001", "category": "Higiene Personal", "cost_price": "15.00", "sell_price": "25.00", "stock": 40, "min_stock": 10},
]


class InventoryService:
    def __init__(self, repo, sku_policy: SkuPolicy | None = None):
        self.repo = repo
        self.sku_policy = sku_policy or SequentialSkuPolicy()

    def list_products(self) -> list[Product]:
        return self.repo.list_products()

    def search_products(self, term: str) -> list[Product]:
        needle = (term or "").strip().lower()
        rows = self.repo.list_products()
        if not needle:
            return rows
        return [
            p for p in rows
            if needle in p.name.lower() or needle in p.sku.lower() or needle in (p.category or "").lower()
        ]

    def low_stock(self) -> list[Product]:
        return [p for p in self.repo.list_products() if p.is_low_stock]

    def get_product(self, product_id: EntityId) -> Product:
        p = self.repo.get_product_by_id(product_id)
        if not p:
            raise NotFoundError("Product not found.")
        return p

    def get_product_by_sku(self, sku: str) -> Product:
        p = self.repo.get_product_by_sku(normalize_sku(sku))
        if not p:
            raise NotFoundError("Product not found.")
        return p

    def suggest_sku(self, category: str) -> str:
        return self.sku_policy.generate(category, self.repo.list_skus())

    def add_product(
        self,
        name: str,
        category: str,
        cost_price,
        sell_price,
        stock: int = 0,
        min_stock: int = 0,
        sku: Optional[str] = None,
        description: Optional[str] = None,
    ) -> EntityId:
        record = self._validated(name, category, cost_price, sell_price, stock, min_stock, description)

        existing = self.repo.list_skus()
        sku = normalize_sku(sku) or self.sku_policy.generate(record["category"], existing)
        ensure_unique_sku(sku, existing)
        record["sku"] = sku

        pid = self.repo.insert_product(record)
        log.info("product_created id=%s sku=%s", pid, sku)
        return pid

    def update_product(
        self,
        product_id: EntityId,
        name: str,
        category: str,
        cost_price,
        sell_price,
        stock: int,
        min_stock: int,
        sku: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        current = self.get_product(product_id)
        record = self._validated(name, category, cost_price, sell_price, stock, min_stock, description)

        # an existing code is kept unless the caller explicitly changes it
        sku = normalize_sku(sku) or current.sku
        if sku != normalize_sku(current.sku):
            others = [s for s in self.repo.list_skus() if normalize_sku(s) != normalize_sku(current.sku)]
            ensure_unique_sku(sku, others)
        record["sku"] = sku

        if not self.repo.update_product(product_id, record):
            raise NotFoundError("Product not found.")
        log.info("product_updated id=%s sku=%s", product_id, sku)

    def seed_demo_products(self) -> int:
        if self.repo.list_products():
            return 0
        for p in DEMO_PRODUCTS:
            self.repo.insert_product(dict(p))
        log.info("demo_catalog_seeded products=%s", len(DEMO_PRODUCTS))
        return len(DEMO_PRODUCTS)

    @staticmethod
    def _validated(name, category, cost_price, sell_price, stock, min_stock, description) -> dict:
        name = (name or "").strip()
        category = (category or "").strip()
        if not name:
            raise ValidationError("Name is required.")
        if not category:
            raise ValidationError("Category is required.")
        try:
            stock = int(stock)
            min_stock = int(min_stock)
        except (TypeError, ValueError):
            raise ValidationError("Stock values must be whole numbers.") from None
        cost = to_money(cost_price)
        price = to_money(sell_price)
        if stock < 0 or min_stock < 0:
            raise ValidationError("Stock values must be >= 0.")
        if cost < 0:
            raise ValidationError("Cost must be >= 0.")
        if price <= 0:
            raise ValidationError("Price must be > 0.")
        return {
            "name": name,
            "category": category,
            "cost_price": cost,
            "sell_price": price,
            "stock": stock,
            "min_stock": min_stock,
            "description": (description or "").strip() or None,
        }
