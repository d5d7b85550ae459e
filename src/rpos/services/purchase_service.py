from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from rpos.domain.errors import NotFoundError, ValidationError
from rpos.domain.models import EntityId, Purchase
from rpos.domain.money import to_money
from rpos.repositories.contracts import StoreRepository
from rpos.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork

log = logging.getLogger("rpos.purchases")


class PurchaseService:
    def __init__(self, repo: StoreRepository, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo))

    def create_purchase(self, supplier_name: str, items: Iterable[dict]) -> Purchase:
        """
        items: [{product_id, quantity, unit_cost}]

        Updates stock and cost using weighted average, line by line:
          new_cost = (old_stock*old_cost + qty*unit_cost) / (old_stock+qty)
        Either every line is applied or none is.
        """
        supplier_name = (supplier_name or "").strip()
        if not supplier_name:
            raise ValidationError("Supplier is required.")
        items = list(items)
        if not items:
            raise ValidationError("Purchase has no items.")

        clean: list[dict] = []
        for it in items:
            try:
                qty = int(it["quantity"])
            except (KeyError, TypeError, ValueError):
                raise ValidationError("Qty must be a whole number.") from None
            unit_cost = to_money(it.get("unit_cost"))
            if qty <= 0:
                raise ValidationError("Qty must be >= 1.")
            if unit_cost < 0:
                raise ValidationError("Unit cost must be >= 0.")
            product_id = it.get("product_id")
            if not self.repo.get_product_by_id(product_id):
                raise NotFoundError(f"Product not found: {product_id}")
            clean.append({"product_id": product_id, "quantity": qty, "unit_cost": unit_cost})

        with self.uow_factory() as uow:
            purchase = uow.create_purchase(supplier_name, clean)
        log.info(
            "purchase_created purchase_id=%s supplier=%s items=%s total=%s",
            purchase.id, supplier_name, len(clean), purchase.total_amount,
        )
        return purchase

    def list_purchases(self) -> list[Purchase]:
        return self.repo.list_purchases()

    def get_purchase(self, purchase_id: EntityId) -> Optional[Purchase]:
        return self.repo.get_purchase(purchase_id)
