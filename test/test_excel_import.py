from decimal import Decimal
from pathlib import Path

import pytest
from openpyxl import Workbook

from conftest import make_repo
from rpos.domain.errors import PersistenceError, ValidationError
from rpos.services.excel_service import IMPORT_SUPPLIER, ExcelService
from rpos.services.inventory_service import InventoryService
from rpos.services.purchase_service import PurchaseService

HEADERS = ["sku", "name", "category", "cost_price", "sell_price", "stock", "min_stock"]


def _workbook(tmp_path: Path, rows, headers=HEADERS) -> str:
    wb = Workbook()
    ws = wb.active
    ws.append(headers)
    for r in rows:
        ws.append(r)
    path = tmp_path / "import.xlsx"
    wb.save(path)
    return str(path)


def _services(tmp_path: Path):
    repo = make_repo(tmp_path, "excel.db")
    inv = InventoryService(repo)
    purchases = PurchaseService(repo)
    return repo, inv, purchases, ExcelService(repo, purchases, inv)


def test_excel_import_keeps_existing_stock_and_logs_purchase(tmp_path: Path):
    repo, inv, purchases, excel = _services(tmp_path)
    pid = inv.add_product("Leche", "Lácteos", "5.00", "8.00", 10, 1, sku="LAC-0001")

    path = _workbook(tmp_path, [["lac-0001", "Leche Updated", "Lácteos", 6.0, 9.0, 5, 2]])
    ok, skipped = excel.import_products_excel(path)
    updated = repo.get_product_by_id(pid)

    assert (ok, skipped) == (1, 0)
    assert updated.stock == 15
    assert updated.name == "Leche Updated"
    assert updated.sell_price == Decimal("9.00")
    assert updated.min_stock == 2
    # (10*5 + 5*6) / 15
    assert updated.cost_price == Decimal("5.33")

    rows = purchases.list_purchases()
    assert len(rows) == 1
    assert rows[0].supplier_name == IMPORT_SUPPLIER


def test_excel_import_creates_products_with_generated_skus(tmp_path: Path):
    repo, inv, purchases, excel = _services(tmp_path)

    path = _workbook(tmp_path, [
        [None, "Manzana", "Frutas", 5, 8, 10, 2],
        [None, "Banano", "Frutas", 1, 2, 0, 0],
        [None, "Cable USB", "Electrónica", 50, 80, 1, 0],
    ])
    ok, skipped = excel.import_products_excel(path)

    assert (ok, skipped) == (3, 0)
    by_name = {p.name: p for p in inv.list_products()}
    assert by_name["Manzana"].sku == "FRU-0001"
    assert by_name["Manzana"].stock == 10
    assert by_name["Manzana"].cost_price == Decimal("5.00")
    assert by_name["Banano"].sku == "FRU-0002"
    assert by_name["Banano"].stock == 0
    assert by_name["Cable USB"].sku == "GEN-0001"
    # zero restock rows do not create a purchase
    assert len(purchases.list_purchases()) == 2


def test_excel_import_skips_bad_rows(tmp_path: Path):
    _repo, inv, _purchases, excel = _services(tmp_path)

    path = _workbook(tmp_path, [
        [None, None, "Frutas", 5, 8, 1, 0],
        [None, "Sin precio", "Frutas", 5, None, 1, 0],
        [None, "Negativo", "Frutas", 5, 8, -3, 0],
        [None, "Texto", "Frutas", "abc", 8, 1, 0],
        [None, "Buena", "Frutas", 5, 8, 1, 0],
    ])
    ok, skipped = excel.import_products_excel(path)

    assert (ok, skipped) == (1, 4)
    assert [p.name for p in inv.list_products()] == ["Buena"]


def test_excel_import_requires_headers(tmp_path: Path):
    _repo, _inv, _purchases, excel = _services(tmp_path)

    path = _workbook(tmp_path, [], headers=["name", "category", "cost_price"])

    with pytest.raises(ValidationError, match="Missing column header: sell_price"):
        excel.import_products_excel(path)


def test_excel_import_store_failure_aborts_and_removes_new_product(tmp_path: Path, monkeypatch):
    repo, inv, purchases, excel = _services(tmp_path)

    def failing_purchase(*args, **kwargs):
        raise PersistenceError("disk I/O error")

    monkeypatch.setattr(repo, "create_purchase", failing_purchase)
    path = _workbook(tmp_path, [
        [None, "Yogurt", "Lácteos", 3, 5, 0, 0],
        [None, "Leche", "Lácteos", 5, 8, 4, 1],
        [None, "Queso", "Lácteos", 9, 12, 0, 0],
    ])

    with pytest.raises(PersistenceError, match="disk I/O error"):
        excel.import_products_excel(path)

    # rows before the failure stay, the failing row leaves nothing behind
    assert [(p.name, p.sku, p.stock) for p in inv.list_products()] == [("Yogurt", "LAC-0001", 0)]
    assert purchases.list_purchases() == []
