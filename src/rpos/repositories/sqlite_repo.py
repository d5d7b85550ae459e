from __future__ import annotations

import logging
import shutil
import sqlite3
from collections import OrderedDict
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Iterator, Optional

from rpos.domain.costing import apply_purchase
from rpos.domain.errors import (
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

log = logging.getLogger(__name__)

UNKNOWN_PRODUCT = "Unknown product"

PRODUCT_COLUMNS = ("sku", "name", "category", "cost_price", "sell_price", "stock", "min_stock", "description")
_PRODUCT_SELECT = "SELECT id, sku, name, category, cost_price, sell_price, stock, min_stock, description FROM products"


def _money_text(value) -> str:
    return str(to_money(value))


def _row_to_product(r) -> Product:
    return Product(
        id=int(r[0]),
        sku=str(r[1]),
        name=str(r[2]),
        category=str(r[3]),
        cost_price=to_money(r[4]),
        sell_price=to_money(r[5]),
        stock=int(r[6]),
        min_stock=int(r[7]),
        description=(r[8] if r[8] is not None else None),
    )


def _row_to_period(r) -> InitialInventoryPeriod:
    return InitialInventoryPeriod(
        id=int(r[0]),
        created_at=str(r[1]),
        period_name=str(r[2]),
        total_value=to_money(r[3]),
        is_active=bool(r[4]),
    )


class SqliteRepository:
    def __init__(self, db_path: Path | str, timeout: float = 10.0):
        self.db_path = str(db_path)
        self.timeout = float(timeout)

    def _conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
            conn.execute("PRAGMA foreign_keys = ON;")
        except sqlite3.Error as e:
            raise self._translate(e) from e
        return conn

    @staticmethod
    def _translate(exc: sqlite3.Error) -> Exception:
        msg = str(exc)
        if isinstance(exc, sqlite3.OperationalError) and ("locked" in msg or "busy" in msg):
            return StoreTimeoutError(f"Database is busy, try again. ({msg})")
        if isinstance(exc, sqlite3.IntegrityError) and "products.sku" in msg:
            return ValidationError("SKU already exists.")
        return PersistenceError(f"Database operation failed: {msg}")

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Cursor]:
        conn = self._conn()
        try:
            yield conn.cursor()
        except sqlite3.Error as e:
            raise self._translate(e) from e
        finally:
            conn.close()

    @contextmanager
    def _tx(self) -> Iterator[sqlite3.Cursor]:
        """One write flow = one transaction. Any exception rolls everything back."""
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            yield cur
            conn.commit()
        except sqlite3.Error as e:
            self._safe_rollback(conn)
            raise self._translate(e) from e
        except BaseException:
            self._safe_rollback(conn)
            raise
        finally:
            conn.close()

    @staticmethod
    def _safe_rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.rollback()

    # ---------- Schema ----------
    def init_db(self) -> None:
        self.run_migrations()

    def _migrations(self):
        return [
            (1, self._migration_v1_base),
            (2, self._migration_v2_settings),
        ]

    def run_migrations(self) -> None:
        migrations = self._migrations()
        if self.schema_version() >= migrations[-1][0]:
            return

        backup_path = self._create_pre_migration_backup()
        try:
            with self._tx() as cur:
                cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
                cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
                current_version = int(cur.fetchone()[0])

                for version, migration in migrations:
                    if version <= current_version:
                        continue
                    migration(cur)
                    cur.execute(
                        "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                        (version,),
                    )
        except Exception as exc:
            self._restore_pre_migration_backup(backup_path)
            raise PersistenceError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc

    def schema_version(self) -> int:
        with self._read() as cur:
            cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='schema_migrations'")
            if cur.fetchone() is None:
                return 0
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            return int(cur.fetchone()[0])

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        # money is stored as decimal text; arithmetic happens in Python
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS products (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                sku TEXT NOT NULL COLLATE NOCASE UNIQUE,
                name TEXT NOT NULL,
                category TEXT NOT NULL DEFAULT '',
                description TEXT,
                cost_price TEXT NOT NULL CHECK(CAST(cost_price AS REAL) >= 0),
                sell_price TEXT NOT NULL CHECK(CAST(sell_price AS REAL) >= 0),
                stock INTEGER NOT NULL DEFAULT 0 CHECK(stock >= 0),
                min_stock INTEGER NOT NULL DEFAULT 0 CHECK(min_stock >= 0)
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS sales (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                total_amount TEXT NOT NULL,
                payment_method TEXT NOT NULL CHECK(payment_method IN ('CASH','CARD','TRANSFER'))
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS sale_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                sale_id INTEGER NOT NULL,
                product_id INTEGER NOT NULL,
                quantity INTEGER NOT NULL CHECK(quantity > 0),
                unit_price TEXT NOT NULL,
                unit_cost TEXT NOT NULL,
                FOREIGN KEY(sale_id) REFERENCES sales(id) ON DELETE CASCADE,
                FOREIGN KEY(product_id) REFERENCES products(id)
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS purchases (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                supplier_name TEXT NOT NULL,
                total_amount TEXT NOT NULL
            )
            """
        )

        # no UNIQUE(purchase_id, product_id): repeated lines are applied in order
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS purchase_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                purchase_id INTEGER NOT NULL,
                product_id INTEGER NOT NULL,
                quantity INTEGER NOT NULL CHECK(quantity > 0),
                unit_cost TEXT NOT NULL CHECK(CAST(unit_cost AS REAL) >= 0),
                FOREIGN KEY(purchase_id) REFERENCES purchases(id) ON DELETE CASCADE,
                FOREIGN KEY(product_id) REFERENCES products(id)
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                description TEXT NOT NULL,
                category TEXT NOT NULL,
                amount TEXT NOT NULL CHECK(CAST(amount AS REAL) > 0)
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS initial_inventory (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                period_name TEXT NOT NULL,
                total_value TEXT NOT NULL CHECK(CAST(total_value AS REAL) >= 0),
                is_active INTEGER NOT NULL DEFAULT 0 CHECK(is_active IN (0,1))
            )
            """
        )
        cur.execute(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS ux_initial_inventory_single_active
            ON initial_inventory(is_active) WHERE is_active = 1
            """
        )

    def _migration_v2_settings(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )

    # ---------- Products ----------
    def list_products(self) -> list[Product]:
        with self._read() as cur:
            cur.execute(f"{_PRODUCT_SELECT} ORDER BY name")
            rows = cur.fetchall()
        return [_row_to_product(r) for r in rows]

    def list_skus(self) -> list[str]:
        with self._read() as cur:
            cur.execute("SELECT sku FROM products")
            return [str(r[0]) for r in cur.fetchall()]

    def get_product_by_id(self, product_id: EntityId) -> Optional[Product]:
        with self._read() as cur:
            cur.execute(f"{_PRODUCT_SELECT} WHERE id=?", (int(product_id),))
            r = cur.fetchone()
        return _row_to_product(r) if r else None

    def get_product_by_sku(self, sku: str) -> Optional[Product]:
        with self._read() as cur:
            cur.execute(f"{_PRODUCT_SELECT} WHERE sku=?", ((sku or "").strip(),))
            r = cur.fetchone()
        return _row_to_product(r) if r else None

    def insert_product(self, record: dict) -> int:
        values = self._product_values(record, require_all=True)
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        with self._tx() as cur:
            cur.execute(f"INSERT INTO products ({cols}) VALUES ({marks})", tuple(values.values()))
            return int(cur.lastrowid)

    def update_product(self, product_id: EntityId, patch: dict) -> bool:
        values = self._product_values(patch, require_all=False)
        if not values:
            return self.get_product_by_id(product_id) is not None
        assignments = ", ".join(f"{c}=?" for c in values)
        with self._tx() as cur:
            cur.execute(f"UPDATE products SET {assignments} WHERE id=?", (*values.values(), int(product_id)))
            return cur.rowcount > 0

    def delete_product(self, product_id: EntityId) -> bool:
        with self._tx() as cur:
            cur.execute("DELETE FROM products WHERE id=?", (int(product_id),))
            return cur.rowcount > 0

    @staticmethod
    def _product_values(record: dict, require_all: bool) -> dict:
        unknown = set(record) - set(PRODUCT_COLUMNS)
        if unknown:
            raise ValidationError(f"Unknown product fields: {', '.join(sorted(unknown))}")
        out = {}
        for col in PRODUCT_COLUMNS:
            if col not in record:
                if require_all and col != "description":
                    raise ValidationError(f"Missing product field: {col}")
                continue
            v = record[col]
            if col in ("cost_price", "sell_price"):
                v = _money_text(v)
            elif col in ("stock", "min_stock"):
                v = int(v)
            out[col] = v
        return out

    # ---------- Sales ----------
    def create_sale(self, created_at: str, payment_method: str, items: Iterable[dict]) -> Sale:
        items = list(items)
        method = PaymentMethod.parse(payment_method)
        with self._tx() as cur:
            lines: list[SaleItem] = []
            for it in items:
                pid = int(it["product_id"])
                qty = int(it["quantity"])
                cur.execute("SELECT name, stock, cost_price FROM products WHERE id=?", (pid,))
                row = cur.fetchone()
                if not row:
                    raise NotFoundError(f"Product not found: {pid}")
                name, stock, cost = str(row[0]), int(row[1]), to_money(row[2])
                if stock < qty:
                    raise InsufficientStockError(f"Not enough stock for {name}. Available: {stock}")

                cur.execute("UPDATE products SET stock = stock - ? WHERE id = ?", (qty, pid))
                lines.append(
                    SaleItem(product_id=pid, product_name=name, quantity=qty, unit_price=to_money(it["unit_price"]), unit_cost=cost)
                )

            total = money_sum(line.line_total for line in lines)
            cur.execute(
                "INSERT INTO sales (created_at, total_amount, payment_method) VALUES (?, ?, ?)",
                (created_at, str(total), method.value),
            )
            sale_id = int(cur.lastrowid)
            cur.executemany(
                """
                INSERT INTO sale_items (sale_id, product_id, quantity, unit_price, unit_cost)
                VALUES (?, ?, ?, ?, ?)
                """,
                [(sale_id, int(line.product_id), line.quantity, str(line.unit_price), str(line.unit_cost)) for line in lines],
            )

        return Sale(id=sale_id, created_at=created_at, total_amount=total, payment_method=method, items=tuple(lines))

    def list_sales(self) -> list[Sale]:
        return self._load_sales("", ())

    def get_sale(self, sale_id: EntityId) -> Optional[Sale]:
        found = self._load_sales("WHERE s.id = ?", (int(sale_id),))
        return found[0] if found else None

    def _load_sales(self, where: str, params: tuple) -> list[Sale]:
        with self._read() as cur:
            cur.execute(
                f"""
                SELECT s.id, s.created_at, s.total_amount, s.payment_method,
                       si.product_id, COALESCE(p.name, ?), si.quantity, si.unit_price, si.unit_cost
                FROM sales s
                LEFT JOIN sale_items si ON si.sale_id = s.id
                LEFT JOIN products p ON p.id = si.product_id
                {where}
                ORDER BY s.created_at DESC, s.id DESC, si.id ASC
                """,
                (UNKNOWN_PRODUCT, *params),
            )
            rows = cur.fetchall()

        headers: OrderedDict[int, tuple] = OrderedDict()
        items: dict[int, list[SaleItem]] = {}
        for r in rows:
            sid = int(r[0])
            if sid not in headers:
                headers[sid] = r[:4]
                items[sid] = []
            if r[4] is not None:
                items[sid].append(
                    SaleItem(product_id=int(r[4]), product_name=str(r[5]), quantity=int(r[6]), unit_price=to_money(r[7]), unit_cost=to_money(r[8]))
                )
        return [
            Sale(
                id=sid,
                created_at=str(h[1]),
                total_amount=to_money(h[2]),
                payment_method=PaymentMethod.parse(h[3]),
                items=tuple(items[sid]),
            )
            for sid, h in headers.items()
        ]

    # ---------- Purchases ----------
    def create_purchase(self, created_at: str, supplier_name: str, items: Iterable[dict]) -> Purchase:
        items = list(items)
        total = money_sum(to_money(it["unit_cost"]) * int(it["quantity"]) for it in items)
        with self._tx() as cur:
            cur.execute(
                "INSERT INTO purchases (created_at, supplier_name, total_amount) VALUES (?, ?, ?)",
                (created_at, supplier_name, str(total)),
            )
            purchase_id = int(cur.lastrowid)

            lines: list[PurchaseItem] = []
            for it in items:
                pid = int(it["product_id"])
                qty = int(it["quantity"])
                unit_cost = to_money(it["unit_cost"])

                cur.execute("SELECT name, stock, cost_price FROM products WHERE id = ?", (pid,))
                row = cur.fetchone()
                if not row:
                    raise NotFoundError(f"Product not found: {pid}")

                update = apply_purchase(int(row[1]), row[2], qty, unit_cost)
                cur.execute(
                    "INSERT INTO purchase_items (purchase_id, product_id, quantity, unit_cost) VALUES (?, ?, ?, ?)",
                    (purchase_id, pid, qty, str(unit_cost)),
                )
                cur.execute(
                    "UPDATE products SET stock = ?, cost_price = ? WHERE id = ?",
                    (update.new_stock, str(update.new_cost), pid),
                )
                lines.append(PurchaseItem(product_id=pid, product_name=str(row[0]), quantity=qty, unit_cost=unit_cost))

        return Purchase(id=purchase_id, created_at=created_at, supplier_name=supplier_name, total_amount=total, items=tuple(lines))

    def list_purchases(self) -> list[Purchase]:
        return self._load_purchases("", ())

    def get_purchase(self, purchase_id: EntityId) -> Optional[Purchase]:
        found = self._load_purchases("WHERE pu.id = ?", (int(purchase_id),))
        return found[0] if found else None

    def _load_purchases(self, where: str, params: tuple) -> list[Purchase]:
        with self._read() as cur:
            cur.execute(
                f"""
                SELECT pu.id, pu.created_at, pu.supplier_name, pu.total_amount,
                       pi.product_id, COALESCE(p.name, ?), pi.quantity, pi.unit_cost
                FROM purchases pu
                LEFT JOIN purchase_items pi ON pi.purchase_id = pu.id
                LEFT JOIN products p ON p.id = pi.product_id
                {where}
                ORDER BY pu.created_at DESC, pu.id DESC, pi.id ASC
                """,
                (UNKNOWN_PRODUCT, *params),
            )
            rows = cur.fetchall()

        headers: OrderedDict[int, tuple] = OrderedDict()
        items: dict[int, list[PurchaseItem]] = {}
        for r in rows:
            pid = int(r[0])
            if pid not in headers:
                headers[pid] = r[:4]
                items[pid] = []
            if r[4] is not None:
                items[pid].append(
                    PurchaseItem(product_id=int(r[4]), product_name=str(r[5]), quantity=int(r[6]), unit_cost=to_money(r[7]))
                )
        return [
            Purchase(id=pid, created_at=str(h[1]), supplier_name=str(h[2]), total_amount=to_money(h[3]), items=tuple(items[pid]))
            for pid, h in headers.items()
        ]

    # ---------- Expenses ----------
    def insert_expense(self, created_at: str, description: str, category: str, amount: Decimal) -> Expense:
        cat = ExpenseCategory.parse(category)
        amount = to_money(amount)
        with self._tx() as cur:
            cur.execute(
                "INSERT INTO expenses (created_at, description, category, amount) VALUES (?, ?, ?, ?)",
                (created_at, description, cat.value, str(amount)),
            )
            eid = int(cur.lastrowid)
        return Expense(id=eid, created_at=created_at, description=description, category=cat, amount=amount)

    def list_expenses(self) -> list[Expense]:
        with self._read() as cur:
            cur.execute("SELECT id, created_at, description, category, amount FROM expenses ORDER BY created_at DESC, id DESC")
            rows = cur.fetchall()
        return [
            Expense(id=int(r[0]), created_at=str(r[1]), description=str(r[2]), category=ExpenseCategory.parse(r[3]), amount=to_money(r[4]))
            for r in rows
        ]

    # ---------- Initial inventory ----------
    def set_active_initial_inventory(self, created_at: str, period_name: str, total_value: Decimal) -> InitialInventoryPeriod:
        value = to_money(total_value)
        with self._tx() as cur:
            cur.execute("UPDATE initial_inventory SET is_active = 0 WHERE is_active = 1")
            deactivated = cur.rowcount
            cur.execute(
                "INSERT INTO initial_inventory (created_at, period_name, total_value, is_active) VALUES (?, ?, ?, 1)",
                (created_at, period_name, str(value)),
            )
            iid = int(cur.lastrowid)
        log.info("initial_inventory_set id=%s period=%s deactivated=%s", iid, period_name, deactivated)
        return InitialInventoryPeriod(id=iid, created_at=created_at, period_name=period_name, total_value=value, is_active=True)

    def get_active_initial_inventory(self) -> Optional[InitialInventoryPeriod]:
        with self._read() as cur:
            cur.execute(
                """
                SELECT id, created_at, period_name, total_value, is_active
                FROM initial_inventory
                WHERE is_active = 1
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """
            )
            r = cur.fetchone()
        return _row_to_period(r) if r else None

    def list_initial_inventory(self) -> list[InitialInventoryPeriod]:
        with self._read() as cur:
            cur.execute(
                "SELECT id, created_at, period_name, total_value, is_active FROM initial_inventory ORDER BY created_at DESC, id DESC"
            )
            rows = cur.fetchall()
        return [_row_to_period(r) for r in rows]

    # ---------- Settings ----------
    def get_settings(self) -> dict[str, str]:
        with self._read() as cur:
            cur.execute("SELECT key, value FROM settings")
            return {str(k): str(v) for k, v in cur.fetchall()}

    def save_settings(self, values: dict[str, str]) -> None:
        with self._tx() as cur:
            cur.executemany(
                """
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                [(str(k), str(v)) for k, v in values.items()],
            )
