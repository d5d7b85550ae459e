from .configuration_view import ConfigurationView
from .dashboard_view import DashboardView
from .expenses_view import ExpensesView
from .initial_inventory_view import InitialInventoryView
from .pos_view import PosView
from .products_view import ProductsView
from .purchases_view import PurchasesView
from .reports_view import ReportsView

__all__ = [
    "ConfigurationView",
    "DashboardView",
    "ExpensesView",
    "InitialInventoryView",
    "PosView",
    "ProductsView",
    "PurchasesView",
    "ReportsView",
]
