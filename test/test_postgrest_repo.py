import json
from decimal import Decimal

import pytest
import requests

from rpos.domain.errors import InsufficientStockError, PersistenceError, StoreTimeoutError
from rpos.repositories.postgrest_repo import PostgrestRepository


class FakeResponse:
    def __init__(self, status=200, body=None):
        self.status_code = status
        self.content = b"" if body is None else json.dumps(body).encode()
        self.text = self.content.decode()

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}", response=self)

    def json(self, **kwargs):
        return json.loads(self.content, **kwargs)


class FakeSession:
    """In-memory PostgREST stand-in: tables of dict rows, eq./in. filters only."""

    def __init__(self):
        self.tables = {
            "products": [], "sales": [], "sale_items": [], "purchases": [], "purchase_items": [],
            "expenses": [], "initial_inventory": [], "settings": [],
        }
        self.calls = []
        self.fail_on = None
        self.timeout_on = None
        self._ids = 0

    def _match(self, row, params):
        for key, cond in (params or {}).items():
            if key in ("select", "order", "limit"):
                continue
            op, _, value = cond.partition(".")
            actual = row.get(key)
            if op == "eq":
                if str(actual).lower() != value.lower():
                    return False
            elif op == "in":
                if str(actual) not in value.strip("()").split(","):
                    return False
        return True

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        table = url.rsplit("/", 1)[-1]
        self.calls.append((method, table, params, json, headers, timeout))
        if self.timeout_on == (method, table):
            raise requests.Timeout("slow")
        if self.fail_on == (method, table):
            return FakeResponse(500, {"message": "boom"})

        rows = self.tables[table]
        if method == "GET":
            found = [dict(r) for r in rows if self._match(r, params)]
            if table == "sales":
                for s in found:
                    s["sale_items"] = [self._with_name(i) for i in self.tables["sale_items"] if i["sale_id"] == s["id"]]
            if table == "purchases":
                for p in found:
                    p["purchase_items"] = [self._with_name(i) for i in self.tables["purchase_items"] if i["purchase_id"] == p["id"]]
            return FakeResponse(200, found)
        if method == "POST":
            payload = json if isinstance(json, list) else [json]
            created = []
            for rec in payload:
                rec = dict(rec)
                if table == "settings":
                    rows[:] = [r for r in rows if r["key"] != rec["key"]]
                else:
                    self._ids += 1
                    rec["id"] = self._ids
                rows.append(rec)
                created.append(rec)
            return FakeResponse(201, created if "return=representation" in (headers or {}).get("Prefer", "") else None)
        if method == "PATCH":
            changed = []
            for r in rows:
                if self._match(r, params):
                    r.update(json)
                    changed.append(dict(r))
            return FakeResponse(200, changed if "return=representation" in (headers or {}).get("Prefer", "") else None)
        if method == "DELETE":
            rows[:] = [r for r in rows if not self._match(r, params)]
            return FakeResponse(204)
        raise AssertionError(method)

    def _with_name(self, item):
        product = next((p for p in self.tables["products"] if p["id"] == item["product_id"]), None)
        return {**item, "products": {"name": product["name"]} if product else None}


def _repo(session, timeout=4.0):
    return PostgrestRepository("https://demo.supabase.co/", "anon-key", timeout=timeout, session=session)


def _seed_product(repo, sku="CAR-0001", stock=10, cost="80.00"):
    return repo.insert_product({
        "sku": sku, "name": "Tajo de Res", "category": "Carnes",
        "cost_price": Decimal(cost), "sell_price": Decimal("120.00"), "stock": stock, "min_stock": 5,
    })


def test_requests_carry_auth_headers_and_timeout():
    session = FakeSession()
    repo = _repo(session)

    repo.init_db()

    method, table, params, _payload, headers, timeout = session.calls[0]
    assert (method, table) == ("GET", "products")
    assert params["limit"] == "1"
    assert headers["apikey"] == "anon-key"
    assert headers["Authorization"] == "Bearer anon-key"
    assert timeout == 4.0


def test_products_round_trip_as_decimal():
    session = FakeSession()
    repo = _repo(session)
    pid = _seed_product(repo)

    p = repo.get_product_by_id(pid)
    assert p.cost_price == Decimal("80.00")
    assert repo.get_product_by_sku("car-0001").id == pid
    assert repo.list_skus() == ["CAR-0001"]
    assert repo.update_product(pid, {"name": "Tajo"})
    assert repo.get_product_by_id(pid).name == "Tajo"


def test_purchase_updates_cost_through_patches():
    session = FakeSession()
    repo = _repo(session)
    pid = _seed_product(repo)

    purchase = repo.create_purchase("2024-01-01 10:00:00", "Proveedor", [{"product_id": pid, "quantity": 5, "unit_cost": "100.00"}])

    p = repo.get_product_by_id(pid)
    assert p.stock == 15
    assert p.cost_price == Decimal("86.67")
    assert purchase.total_amount == Decimal("500.00")
    stored = repo.get_purchase(purchase.id)
    assert stored.items[0].product_name == "Tajo de Res"


def test_purchase_failure_is_compensated():
    session = FakeSession()
    repo = _repo(session)
    pid = _seed_product(repo)
    session.fail_on = ("PATCH", "products")

    with pytest.raises(PersistenceError, match="HTTP 500"):
        repo.create_purchase("2024-01-01 10:00:00", "Proveedor", [{"product_id": pid, "quantity": 5, "unit_cost": "100.00"}])

    assert session.tables["purchases"] == []
    assert session.tables["purchase_items"] == []
    session.fail_on = None
    assert repo.get_product_by_id(pid).stock == 10


def test_sale_failure_restores_stock_already_patched():
    session = FakeSession()
    repo = _repo(session)
    a = _seed_product(repo, "CAR-0001", stock=5)
    b = _seed_product(repo, "CAR-0002", stock=5)

    real = session.request
    patches = []

    def second_patch_fails(method, url, **kw):
        if method == "PATCH" and url.endswith("/products"):
            patches.append(kw["params"])
            if len(patches) == 2:
                return FakeResponse(503, {"message": "unavailable"})
        return real(method, url, **kw)

    session.request = second_patch_fails

    with pytest.raises(PersistenceError):
        repo.create_sale("2024-01-01 10:00:00", "CASH", [
            {"product_id": a, "quantity": 2, "unit_price": "120.00"},
            {"product_id": b, "quantity": 1, "unit_price": "120.00"},
        ])

    assert session.tables["sales"] == []
    assert session.tables["sale_items"] == []
    assert [p["stock"] for p in session.tables["products"]] == [5, 5]


def test_sale_checks_stock_before_writing():
    session = FakeSession()
    repo = _repo(session)
    pid = _seed_product(repo, stock=1)

    with pytest.raises(InsufficientStockError):
        repo.create_sale("2024-01-01 10:00:00", "CASH", [{"product_id": pid, "quantity": 2, "unit_price": "1.00"}])
    assert not any(c[0] == "POST" and c[1] == "sales" for c in session.calls)


def test_timeout_maps_to_store_timeout():
    session = FakeSession()
    session.timeout_on = ("GET", "products")

    with pytest.raises(StoreTimeoutError, match="timed out"):
        _repo(session).list_products()


def test_set_active_period_deactivates_previous():
    session = FakeSession()
    repo = _repo(session)

    first = repo.set_active_initial_inventory("2024-01-01 00:00:00", "Enero", Decimal("100"))
    second = repo.set_active_initial_inventory("2024-02-01 00:00:00", "Febrero", Decimal("200"))

    active = [r["id"] for r in session.tables["initial_inventory"] if r["is_active"]]
    assert active == [second.id]
    assert first.id != second.id


def test_set_active_period_failure_reactivates_previous():
    session = FakeSession()
    repo = _repo(session)
    first = repo.set_active_initial_inventory("2024-01-01 00:00:00", "Enero", Decimal("100"))
    session.fail_on = ("POST", "initial_inventory")

    with pytest.raises(PersistenceError):
        repo.set_active_initial_inventory("2024-02-01 00:00:00", "Febrero", Decimal("200"))

    rows = session.tables["initial_inventory"]
    assert [(r["id"], r["is_active"]) for r in rows] == [(first.id, True)]


def test_settings_upsert():
    session = FakeSession()
    repo = _repo(session)

    repo.save_settings({"company.name": "A"})
    repo.save_settings({"company.name": "B"})

    assert repo.get_settings() == {"company.name": "B"}
    assert "merge-duplicates" in session.calls[-2][4]["Prefer"]
