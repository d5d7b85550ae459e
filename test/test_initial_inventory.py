from decimal import Decimal
from pathlib import Path

import pytest

from conftest import make_repo
from rpos.domain.errors import ValidationError
from rpos.repositories.unit_of_work import RepositoryUnitOfWork
from rpos.services.initial_inventory_service import InitialInventoryService


def _service(repo, stamps):
    clock = iter(stamps).__next__
    return InitialInventoryService(repo, uow_factory=lambda: RepositoryUnitOfWork(repo, clock=clock))


def test_setting_a_period_deactivates_the_previous_one(tmp_path: Path):
    repo = make_repo(tmp_path)
    svc = _service(repo, ["2024-01-01 08:00:00", "2024-02-01 08:00:00"])

    assert svc.get_active_period() is None

    first = svc.set_active_period("Enero 2024", "1000")
    second = svc.set_active_period("Febrero 2024", "1250.50")

    active = svc.get_active_period()
    assert active.id == second.id
    assert active.total_value == Decimal("1250.50")

    history = svc.list_history()
    assert [p.period_name for p in history] == ["Febrero 2024", "Enero 2024"]
    assert [p.is_active for p in history] == [True, False]
    assert sum(1 for p in history if p.is_active) == 1
    assert first.id != second.id


def test_store_allows_a_single_active_row(tmp_path: Path):
    repo = make_repo(tmp_path)
    repo.set_active_initial_inventory("2024-01-01 00:00:00", "A", Decimal("1"))

    conn = repo._conn()
    try:
        with pytest.raises(Exception, match="UNIQUE"):
            conn.execute(
                "INSERT INTO initial_inventory (created_at, period_name, total_value, is_active) VALUES (?, ?, ?, 1)",
                ("2024-01-02 00:00:00", "B", "2.00"),
            )
    finally:
        conn.close()


@pytest.mark.parametrize("name, value, message", [
    ("  ", "10", "Period name is required"),
    ("Marzo", "-1", "must be >= 0"),
    ("Marzo", "diez", "Invalid amount"),
])
def test_period_validation(tmp_path: Path, name, value, message):
    svc = InitialInventoryService(make_repo(tmp_path))

    with pytest.raises(ValidationError, match=message):
        svc.set_active_period(name, value)
    assert svc.list_history() == []
