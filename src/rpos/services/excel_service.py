from __future__ import annotations

from openpyxl import load_workbook

from rpos.domain.errors import NotFoundError, ValidationError
from rpos.domain.money import to_money
from rpos.domain.sku import normalize_sku
import logging

log = logging.getLogger(__name__)

IMPORT_SUPPLIER = "EXCEL_IMPORT"


class ExcelService:
    def __init__(self, repo, purchase_service, inventory_service):
        self.repo = repo
        self.purchases = purchase_service
        self.inventory = inventory_service

    def import_products_excel(self, path: str) -> tuple[int, int]:
        """
        Excel represents RESTOCK (delta to add), not absolute stock.
        Headers:
          name | category | cost_price | sell_price | stock | min_stock  (+ optional sku)

        Rows without a SKU, or with one not in the catalog, create a product
        (code generated from the category when missing). The stock column is
        always received as a purchase so the weighted cost stays consistent.
        """
        wb = load_workbook(path)
        ws = wb.active

        headers = {}
        for col in range(1, ws.max_column + 1):
            v = ws.cell(row=1, column=col).value
            if isinstance(v, str):
                headers[v.strip().lower()] = col

        required = ["name", "category", "cost_price", "sell_price", "stock", "min_stock"]
        for r in required:
            if r not in headers:
                raise ValidationError(f"Missing column header: {r}")

        def cell(row: int, key: str):
            col = headers.get(key)
            return ws.cell(row=row, column=col).value if col else None

        ok = 0
        skipped = 0

        for row in range(2, ws.max_row + 1):
            name = cell(row, "name")
            category = cell(row, "category")
            cost = cell(row, "cost_price")
            price = cell(row, "sell_price")
            restock_qty = cell(row, "stock")
            min_stock = cell(row, "min_stock")
            sku = normalize_sku(str(cell(row, "sku") or ""))

            if not name or not category:
                skipped += 1
                continue
            if cost is None or price is None or restock_qty is None or min_stock is None:
                skipped += 1
                continue

            try:
                restock_qty = int(float(restock_qty))
                min_stock = int(float(min_stock))
                cost = to_money(cost)
                if restock_qty < 0:
                    raise ValidationError("Restock qty must be >= 0.")

                existing = self.repo.get_product_by_sku(sku) if sku else None
                if existing:
                    # Update product fields, keep stock unchanged (stock changes only via purchases)
                    self.inventory.update_product(
                        existing.id,
                        name=str(name),
                        category=str(category),
                        cost_price=existing.cost_price,
                        sell_price=price,
                        stock=existing.stock,
                        min_stock=min_stock,
                        sku=existing.sku,
                        description=existing.description,
                    )
                    self._restock(existing.id, restock_qty, cost)
                else:
                    # Create product with stock=0, then apply restock as purchase
                    product_id = self.inventory.add_product(
                        name=str(name),
                        category=str(category),
                        cost_price=cost,
                        sell_price=price,
                        stock=0,
                        min_stock=min_stock,
                        sku=sku or None,
                    )
                    try:
                        self._restock(product_id, restock_qty, cost)
                    except Exception:
                        self.repo.delete_product(product_id)
                        log.warning("Excel import row %s: removed product id=%s after failed restock", row, product_id)
                        raise
                ok += 1
            except (ValidationError, NotFoundError, TypeError, ValueError) as e:
                log.warning("Excel import skipped row %s: %s", row, e)
                skipped += 1

        return ok, skipped

    def _restock(self, product_id, qty: int, unit_cost) -> None:
        if qty > 0:
            self.purchases.create_purchase(
                supplier_name=IMPORT_SUPPLIER,
                items=[{"product_id": product_id, "quantity": qty, "unit_cost": unit_cost}],
            )
