from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Callable, Iterable, Iterator, Optional

import requests

from rpos.domain.costing import CostUpdate, apply_purchase
from rpos.domain.errors import (
    AppError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    StoreTimeoutError,
    ValidationError,
)
from rpos.domain.models import (
    EntityId,
    Expense,
    ExpenseCategory,
    InitialInventoryPeriod,
    PaymentMethod,
    Product,
    Purchase,
    PurchaseItem,
    Sale,
    SaleItem,
)
from rpos.domain.money import money_sum, to_money
from rpos.repositories.sqlite_repo import PRODUCT_COLUMNS, UNKNOWN_PRODUCT

log = logging.getLogger(__name__)


def _jsonable(record: dict) -> dict:
    return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in record.items()}


def _product_name(row: dict) -> str:
    embedded = row.get("products") or {}
    return str(embedded.get("name") or UNKNOWN_PRODUCT)


def _row_to_product(row: dict) -> Product:
    return Product(
        id=row["id"],
        sku=str(row["sku"]),
        name=str(row["name"]),
        category=str(row.get("category") or ""),
        cost_price=to_money(row["cost_price"]),
        sell_price=to_money(row["sell_price"]),
        stock=int(row["stock"]),
        min_stock=int(row.get("min_stock") or 0),
        description=row.get("description"),
    )


def _row_to_period(row: dict) -> InitialInventoryPeriod:
    return InitialInventoryPeriod(
        id=row["id"],
        created_at=str(row["created_at"]),
        period_name=str(row["period_name"]),
        total_value=to_money(row["total_value"]),
        is_active=bool(row["is_active"]),
    )


class _Compensations:
    """Undo steps for a multi-call write, replayed newest first on failure."""

    def __init__(self, flow: str):
        self.flow = flow
        self._steps: list[tuple[str, Callable[[], object]]] = []

    def push(self, step: str, undo: Callable[[], object]) -> None:
        self._steps.append((step, undo))

    def rollback(self) -> None:
        while self._steps:
            step, undo = self._steps.pop()
            try:
                undo()
            except AppError:
                log.exception("compensation_failed flow=%s step=%s", self.flow, step)


class PostgrestRepository:
    """Store backed by a hosted PostgREST endpoint (e.g. Supabase ``/rest/v1``).

    HTTP offers no cross-table transaction, so multi-step writes keep a
    compensation log and undo the steps already applied when a later one fails.
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = float(timeout)
        self.session = session or requests.Session()

    def init_db(self) -> None:
        # schema is managed on the hosted side; just prove we can reach it
        self._request("GET", "products", params={"select": "id", "limit": "1"})

    def _headers(self, prefer: str | None = None) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(self, method: str, table: str, params: dict | None = None, payload=None, prefer: str | None = None):
        url = f"{self.base_url}/rest/v1/{table}"
        try:
            r = self.session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self._headers(prefer),
                timeout=self.timeout,
            )
            r.raise_for_status()
        except requests.Timeout as e:
            raise StoreTimeoutError(f"{method} {table} timed out after {self.timeout:g}s.") from e
        except requests.HTTPError as e:
            status = getattr(e.response, "status_code", "?")
            body = (getattr(e.response, "text", "") or "")[:200]
            raise PersistenceError(f"{method} {table} failed: HTTP {status} {body}") from e
        except requests.RequestException as e:
            raise PersistenceError(f"{method} {table} failed: {e}") from e

        if not r.content:
            return []
        try:
            return r.json(parse_float=Decimal)
        except ValueError as e:
            raise PersistenceError(f"{method} {table} returned invalid JSON.") from e

    def _insert_one(self, table: str, record: dict) -> dict:
        rows = self._request("POST", table, payload=_jsonable(record), prefer="return=representation")
        if not rows:
            raise PersistenceError(f"Insert into {table} returned no row.")
        return rows[0]

    @contextmanager
    def _compensated(self, flow: str) -> Iterator[_Compensations]:
        undo = _Compensations(flow)
        try:
            yield undo
        except Exception:
            log.warning("write_aborted flow=%s, undoing applied steps", flow)
            undo.rollback()
            raise

    # ---------- Products ----------
    def list_products(self) -> list[Product]:
        rows = self._request("GET", "products", params={"select": "*", "order": "name.asc"})
        return [_row_to_product(r) for r in rows]

    def list_skus(self) -> list[str]:
        rows = self._request("GET", "products", params={"select": "sku"})
        return [str(r["sku"]) for r in rows]

    def get_product_by_id(self, product_id: EntityId) -> Optional[Product]:
        rows = self._request("GET", "products", params={"select": "*", "id": f"eq.{product_id}"})
        return _row_to_product(rows[0]) if rows else None

    def get_product_by_sku(self, sku: str) -> Optional[Product]:
        rows = self._request("GET", "products", params={"select": "*", "sku": f"eq.{(sku or '').strip()}"})
        return _row_to_product(rows[0]) if rows else None

    def insert_product(self, record: dict) -> EntityId:
        unknown = set(record) - set(PRODUCT_COLUMNS)
        if unknown:
            raise ValidationError(f"Unknown product fields: {', '.join(sorted(unknown))}")
        return self._insert_one("products", record)["id"]

    def update_product(self, product_id: EntityId, patch: dict) -> bool:
        unknown = set(patch) - set(PRODUCT_COLUMNS)
        if unknown:
            raise ValidationError(f"Unknown product fields: {', '.join(sorted(unknown))}")
        rows = self._request(
            "PATCH", "products", params={"id": f"eq.{product_id}"}, payload=_jsonable(patch), prefer="return=representation"
        )
        return bool(rows)

    def delete_product(self, product_id: EntityId) -> bool:
        rows = self._request("DELETE", "products", params={"id": f"eq.{product_id}"}, prefer="return=representation")
        return bool(rows)

    def _patch_product(self, product_id: EntityId, patch: dict) -> None:
        self._request("PATCH", "products", params={"id": f"eq.{product_id}"}, payload=_jsonable(patch), prefer="return=minimal")

    # ---------- Sales ----------
    def create_sale(self, created_at: str, payment_method: str, items: Iterable[dict]) -> Sale:
        items = list(items)
        method = PaymentMethod.parse(payment_method)

        products: dict = {}
        remaining: dict = {}
        lines: list[SaleItem] = []
        for it in items:
            pid = it["product_id"]
            qty = int(it["quantity"])
            prod = products.get(pid) or self.get_product_by_id(pid)
            if prod is None:
                raise NotFoundError(f"Product not found: {pid}")
            products[pid] = prod
            left = remaining.get(pid, prod.stock) - qty
            if left < 0:
                raise InsufficientStockError(f"Not enough stock for {prod.name}. Available: {prod.stock}")
            remaining[pid] = left
            lines.append(SaleItem(product_id=pid, product_name=prod.name, quantity=qty, unit_price=to_money(it["unit_price"]), unit_cost=prod.cost_price))

        total = money_sum(line.line_total for line in lines)

        with self._compensated("sale") as undo:
            header = self._insert_one(
                "sales", {"created_at": created_at, "total_amount": total, "payment_method": method.value}
            )
            sale_id = header["id"]
            undo.push("sale header", lambda: self._request("DELETE", "sales", params={"id": f"eq.{sale_id}"}))

            self._request(
                "POST",
                "sale_items",
                payload=[
                    _jsonable({
                        "sale_id": sale_id,
                        "product_id": line.product_id,
                        "quantity": line.quantity,
                        "unit_price": line.unit_price,
                        "unit_cost": line.unit_cost,
                    })
                    for line in lines
                ],
                prefer="return=minimal",
            )
            undo.push("sale items", lambda: self._request("DELETE", "sale_items", params={"sale_id": f"eq.{sale_id}"}))

            for pid, new_stock in remaining.items():
                old_stock = products[pid].stock
                self._patch_product(pid, {"stock": new_stock})
                undo.push(f"stock {pid}", lambda pid=pid, old_stock=old_stock: self._patch_product(pid, {"stock": old_stock}))

        return Sale(id=sale_id, created_at=created_at, total_amount=total, payment_method=method, items=tuple(lines))

    def list_sales(self) -> list[Sale]:
        rows = self._request(
            "GET", "sales", params={"select": "*,sale_items(*,products(name))", "order": "created_at.desc"}
        )
        return [self._row_to_sale(r) for r in rows]

    def get_sale(self, sale_id: EntityId) -> Optional[Sale]:
        rows = self._request(
            "GET", "sales", params={"select": "*,sale_items(*,products(name))", "id": f"eq.{sale_id}"}
        )
        return self._row_to_sale(rows[0]) if rows else None

    @staticmethod
    def _row_to_sale(row: dict) -> Sale:
        items = tuple(
            SaleItem(
                product_id=it["product_id"],
                product_name=_product_name(it),
                quantity=int(it["quantity"]),
                unit_price=to_money(it["unit_price"]),
                unit_cost=to_money(it.get("unit_cost")),
            )
            for it in row.get("sale_items") or []
        )
        return Sale(
            id=row["id"],
            created_at=str(row["created_at"]),
            total_amount=to_money(row["total_amount"]),
            payment_method=PaymentMethod.parse(row["payment_method"]),
            items=items,
        )

    # ---------- Purchases ----------
    def create_purchase(self, created_at: str, supplier_name: str, items: Iterable[dict]) -> Purchase:
        items = list(items)
        total = money_sum(to_money(it["unit_cost"]) * int(it["quantity"]) for it in items)

        originals: dict = {}
        updates: dict = {}
        lines: list[PurchaseItem] = []
        for it in items:
            pid = it["product_id"]
            qty = int(it["quantity"])
            unit_cost = to_money(it["unit_cost"])
            prod = originals.get(pid) or self.get_product_by_id(pid)
            if prod is None:
                raise NotFoundError(f"Product not found: {pid}")
            originals[pid] = prod
            current = updates.get(pid, CostUpdate(new_stock=prod.stock, new_cost=prod.cost_price))
            updates[pid] = apply_purchase(current.new_stock, current.new_cost, qty, unit_cost)
            lines.append(PurchaseItem(product_id=pid, product_name=prod.name, quantity=qty, unit_cost=unit_cost))

        with self._compensated("purchase") as undo:
            header = self._insert_one(
                "purchases", {"created_at": created_at, "supplier_name": supplier_name, "total_amount": total}
            )
            purchase_id = header["id"]
            undo.push("purchase header", lambda: self._request("DELETE", "purchases", params={"id": f"eq.{purchase_id}"}))

            self._request(
                "POST",
                "purchase_items",
                payload=[
                    _jsonable({
                        "purchase_id": purchase_id,
                        "product_id": line.product_id,
                        "quantity": line.quantity,
                        "unit_cost": line.unit_cost,
                    })
                    for line in lines
                ],
                prefer="return=minimal",
            )
            undo.push("purchase items", lambda: self._request("DELETE", "purchase_items", params={"purchase_id": f"eq.{purchase_id}"}))

            for pid, update in updates.items():
                old = originals[pid]
                self._patch_product(pid, {"stock": update.new_stock, "cost_price": update.new_cost})
                undo.push(
                    f"cost {pid}",
                    lambda pid=pid, old=old: self._patch_product(pid, {"stock": old.stock, "cost_price": old.cost_price}),
                )

        return Purchase(id=purchase_id, created_at=created_at, supplier_name=supplier_name, total_amount=total, items=tuple(lines))

    def list_purchases(self) -> list[Purchase]:
        rows = self._request(
            "GET", "purchases", params={"select": "*,purchase_items(*,products(name))", "order": "created_at.desc"}
        )
        return [self._row_to_purchase(r) for r in rows]

    def get_purchase(self, purchase_id: EntityId) -> Optional[Purchase]:
        rows = self._request(
            "GET", "purchases", params={"select": "*,purchase_items(*,products(name))", "id": f"eq.{purchase_id}"}
        )
        return self._row_to_purchase(rows[0]) if rows else None

    @staticmethod
    def _row_to_purchase(row: dict) -> Purchase:
        items = tuple(
            PurchaseItem(
                product_id=it["product_id"],
                product_name=_product_name(it),
                quantity=int(it["quantity"]),
                unit_cost=to_money(it["unit_cost"]),
            )
            for it in row.get("purchase_items") or []
        )
        return Purchase(
            id=row["id"],
            created_at=str(row["created_at"]),
            supplier_name=str(row.get("supplier_name") or ""),
            total_amount=to_money(row["total_amount"]),
            items=items,
        )

    # ---------- Expenses ----------
    def insert_expense(self, created_at: str, description: str, category: str, amount: Decimal) -> Expense:
        cat = ExpenseCategory.parse(category)
        row = self._insert_one(
            "expenses",
            {"created_at": created_at, "description": description, "category": cat.value, "amount": to_money(amount)},
        )
        return Expense(id=row["id"], created_at=created_at, description=description, category=cat, amount=to_money(amount))

    def list_expenses(self) -> list[Expense]:
        rows = self._request("GET", "expenses", params={"select": "*", "order": "created_at.desc"})
        return [
            Expense(
                id=r["id"],
                created_at=str(r["created_at"]),
                description=str(r["description"]),
                category=ExpenseCategory.parse(r["category"]),
                amount=to_money(r["amount"]),
            )
            for r in rows
        ]

    # ---------- Initial inventory ----------
    def set_active_initial_inventory(self, created_at: str, period_name: str, total_value: Decimal) -> InitialInventoryPeriod:
        value = to_money(total_value)
        active = self._request("GET", "initial_inventory", params={"select": "id", "is_active": "eq.true"})
        active_ids = [r["id"] for r in active]

        with self._compensated("initial_inventory") as undo:
            if active_ids:
                self._request(
                    "PATCH", "initial_inventory", params={"is_active": "eq.true"}, payload={"is_active": False}, prefer="return=minimal"
                )
                ids = ",".join(str(i) for i in active_ids)
                undo.push(
                    "deactivate",
                    lambda: self._request(
                        "PATCH", "initial_inventory", params={"id": f"in.({ids})"}, payload={"is_active": True}, prefer="return=minimal"
                    ),
                )
            row = self._insert_one(
                "initial_inventory",
                {"created_at": created_at, "period_name": period_name, "total_value": value, "is_active": True},
            )

        log.info("initial_inventory_set id=%s period=%s deactivated=%s", row["id"], period_name, len(active_ids))
        return InitialInventoryPeriod(id=row["id"], created_at=created_at, period_name=period_name, total_value=value, is_active=True)

    def get_active_initial_inventory(self) -> Optional[InitialInventoryPeriod]:
        rows = self._request(
            "GET",
            "initial_inventory",
            params={"select": "*", "is_active": "eq.true", "order": "created_at.desc", "limit": "1"},
        )
        return _row_to_period(rows[0]) if rows else None

    def list_initial_inventory(self) -> list[InitialInventoryPeriod]:
        rows = self._request("GET", "initial_inventory", params={"select": "*", "order": "created_at.desc"})
        return [_row_to_period(r) for r in rows]

    # ---------- Settings ----------
    def get_settings(self) -> dict[str, str]:
        rows = self._request("GET", "settings", params={"select": "key,value"})
        return {str(r["key"]): str(r["value"]) for r in rows}

    def save_settings(self, values: dict[str, str]) -> None:
        self._request(
            "POST",
            "settings",
            payload=[{"key": str(k), "value": str(v)} for k, v in values.items()],
            prefer="resolution=merge-duplicates,return=minimal",
        )
