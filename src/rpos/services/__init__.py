from .inventory_service import InventoryService
from .sales_service import SalesService
from .purchase_service import PurchaseService
from .expense_service import ExpenseService
from .initial_inventory_service import InitialInventoryService
from .settings_service import SettingsService
from .excel_service import ExcelService
from .reporting_service import ReportingService

__all__ = [
    "InventoryService",
    "SalesService",
    "PurchaseService",
    "ExpenseService",
    "InitialInventoryService",
    "SettingsService",
    "ExcelService",
    "ReportingService",
]
