from decimal import Decimal
from pathlib import Path

import pytest

from conftest import fixed_clock, make_repo
from rpos.domain.errors import ValidationError
from rpos.domain.models import CompanyProfile, ExpenseCategory
from rpos.services.expense_service import ExpenseService
from rpos.services.settings_service import SettingsService


def test_create_and_list_expenses(tmp_path: Path):
    repo = make_repo(tmp_path)
    svc = ExpenseService(repo, clock=fixed_clock("2024-03-05 12:00:00"))

    created = svc.create_expense("Energía eléctrica", "utilities", "1500.456")

    assert created.amount == Decimal("1500.46")
    assert created.category is ExpenseCategory.UTILITIES
    rows = svc.list_expenses()
    assert len(rows) == 1
    assert rows[0].description == "Energía eléctrica"
    assert rows[0].created_at == "2024-03-05 12:00:00"


@pytest.mark.parametrize("description, category, amount, message", [
    ("", "RENT", "10", "Description is required"),
    ("Alquiler", "RENT", "0", "Amount must be > 0"),
    ("Alquiler", "TAXES", "10", "Invalid expense category"),
])
def test_expense_validation(tmp_path: Path, description, category, amount, message):
    svc = ExpenseService(make_repo(tmp_path))

    with pytest.raises(ValidationError, match=message):
        svc.create_expense(description, category, amount)
    assert svc.list_expenses() == []


def test_company_profile_defaults_and_round_trip(tmp_path: Path):
    svc = SettingsService(make_repo(tmp_path))

    assert svc.get_company_profile() == CompanyProfile()

    svc.save_company_profile(CompanyProfile(name=" Pulpería Central ", tax_id="08011999123456", phone="2222-3333"))
    profile = svc.get_company_profile()

    assert profile.name == "Pulpería Central"
    assert profile.tax_id == "08011999123456"
    assert profile.address == ""


def test_company_name_is_required(tmp_path: Path):
    svc = SettingsService(make_repo(tmp_path))

    with pytest.raises(ValidationError, match="Company name is required"):
        svc.save_company_profile(CompanyProfile(name="  "))
