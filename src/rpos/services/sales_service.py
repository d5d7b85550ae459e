from __future__ import annotations

from collections import Counter
from typing import Callable, Iterable, Optional
import logging

from rpos.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from rpos.domain.models import EntityId, PaymentMethod, Sale
from rpos.domain.money import to_money
from rpos.repositories.contracts import StoreRepository
from rpos.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork

log = logging.getLogger("rpos.sales")


class SalesService:
    def __init__(
        self,
        repo: StoreRepository,
        uow_factory: Callable[[], UnitOfWork] | None = None,
    ):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo))

    def create_sale(self, payment_method, items: Iterable[dict]) -> Sale:
        """
        items: [{product_id, quantity, unit_price}]

        The unit cost of each line is snapshotted from the product at checkout.
        """
        items = list(items)
        if not items:
            raise ValidationError("Cart is empty.")
        method = PaymentMethod.parse(payment_method)

        # Validate items and aggregate qty by product to avoid overselling
        qty_by_product: Counter = Counter()
        clean: list[dict] = []
        for it in items:
            try:
                qty = int(it["quantity"])
            except (KeyError, TypeError, ValueError):
                raise ValidationError("Qty must be a whole number.") from None
            unit_price = to_money(it.get("unit_price"))
            if qty <= 0:
                raise ValidationError("Qty must be >= 1.")
            if unit_price <= 0:
                raise ValidationError("Unit price must be > 0.")

            product_id = it.get("product_id")
            prod = self.repo.get_product_by_id(product_id)
            if not prod:
                raise NotFoundError(f"Product not found: {product_id}")
            qty_by_product[product_id] += qty
            if qty_by_product[product_id] > int(prod.stock):
                raise InsufficientStockError(f"Not enough stock for {prod.sku}. Available: {prod.stock}")
            clean.append({"product_id": product_id, "quantity": qty, "unit_price": unit_price})

        with self.uow_factory() as uow:
            sale = uow.create_sale(method.value, clean)
        log.info("sale_created sale_id=%s items=%s total=%s method=%s", sale.id, len(clean), sale.total_amount, method.value)
        return sale

    def list_sales(self) -> list[Sale]:
        return self.repo.list_sales()

    def get_sale(self, sale_id: EntityId) -> Optional[Sale]:
        return self.repo.get_sale(sale_id)
