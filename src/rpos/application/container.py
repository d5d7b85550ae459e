from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rpos.config import Settings
from rpos.domain.pnl import CogsPolicy
from rpos.domain.sku import make_sku_policy
from rpos.repositories.postgrest_repo import PostgrestRepository
from rpos.repositories.sqlite_repo import SqliteRepository
from rpos.services.excel_service import ExcelService
from rpos.services.expense_service import ExpenseService
from rpos.services.initial_inventory_service import InitialInventoryService
from rpos.services.inventory_service import InventoryService
from rpos.services.purchase_service import PurchaseService
from rpos.services.reporting_service import ReportingService
from rpos.services.sales_service import SalesService
from rpos.services.settings_service import SettingsService


@dataclass(frozen=True)
class AppContainer:
    repo: object
    settings: Settings
    inventory: InventoryService
    sales: SalesService
    purchases: PurchaseService
    expenses: ExpenseService
    initial_inventory: InitialInventoryService
    company: SettingsService
    excel: ExcelService
    reporting: ReportingService


def build_repository(db_path: Path | str, settings: Settings):
    if settings.backend == "postgrest":
        return PostgrestRepository(settings.postgrest_url, settings.postgrest_key, timeout=settings.store_timeout)
    return SqliteRepository(db_path, timeout=settings.store_timeout)


def build_container(db_path: Path | str, settings: Settings | None = None) -> AppContainer:
    settings = settings or Settings()
    repo = build_repository(db_path, settings)
    repo.init_db()

    inventory = InventoryService(repo, sku_policy=make_sku_policy(settings.sku_policy))
    purchases = PurchaseService(repo)
    sales = SalesService(repo)
    expenses = ExpenseService(repo)
    initial_inventory = InitialInventoryService(repo)
    company = SettingsService(repo)
    excel = ExcelService(repo, purchases, inventory)
    reporting = ReportingService(repo, cogs_policy=CogsPolicy.parse(settings.cogs_policy), settings_service=company)

    if settings.seed_demo:
        inventory.seed_demo_products()

    return AppContainer(
        repo=repo,
        settings=settings,
        inventory=inventory,
        sales=sales,
        purchases=purchases,
        expenses=expenses,
        initial_inventory=initial_inventory,
        company=company,
        excel=excel,
        reporting=reporting,
    )
