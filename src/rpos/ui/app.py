from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging
from pathlib import Path

from rpos.application.state import Navigate, Page, Store
from rpos.application.feedback import feedback_for
from rpos.domain.errors import OperationCancelledError
from rpos.domain.money import fmt_money
from rpos.ui.views import (
    ConfigurationView,
    DashboardView,
    ExpensesView,
    InitialInventoryView,
    PosView,
    ProductsView,
    PurchasesView,
    ReportsView,
)

log = logging.getLogger(__name__)


class App(tk.Tk):
    def __init__(self, container, db_path: str, logs_dir: str):
        super().__init__()
        self.title("Retail POS & Inventory")
        self.geometry("1280x720")
        self.minsize(1120, 640)

        self.container = container
        self.inventory = container.inventory
        self.sales = container.sales
        self.purchases = container.purchases
        self.expenses = container.expenses
        self.initial_inventory = container.initial_inventory
        self.company = container.company
        self.excel = container.excel
        self.reporting = container.reporting

        self.db_path = db_path
        self.logs_dir = logs_dir

        self.store = Store()
        self.status_var = tk.StringVar(value="")
        self.company_var = tk.StringVar(value="")
        self._toast_after_id = None

        self._build_styles()
        self._build_topbar()

        main = ttk.Frame(self)
        main.pack(fill="both", expand=True, padx=12, pady=(0, 8))

        self.sidebar = ttk.Frame(main)
        self.sidebar.pack(side="left", fill="y", padx=(0, 10))

        self.content = ttk.Frame(main)
        self.content.pack(side="right", fill="both", expand=True)

        self.nb = ttk.Notebook(self.content, style="Side.TNotebook")
        self.nb.pack(fill="both", expand=True)

        # Views (tabs hidden)
        self.views = {
            Page.DASHBOARD: DashboardView(self.nb, self),
            Page.POS: PosView(self.nb, self),
            Page.PRODUCTS: ProductsView(self.nb, self),
            Page.PURCHASES: PurchasesView(self.nb, self),
            Page.EXPENSES: ExpensesView(self.nb, self),
            Page.INITIAL_INVENTORY: InitialInventoryView(self.nb, self),
            Page.REPORTS: ReportsView(self.nb, self),
            Page.CONFIGURATION: ConfigurationView(self.nb, self),
        }

        self._build_sidebar()
        self._build_status_bar()

        self.store.subscribe(self._on_state_change)

        self.refresh_all(show_toast=False)
        self.toast("Ready.", kind="info", ms=1200)

    def _build_styles(self):
        style = ttk.Style(self)
        style.layout("Side.TNotebook.Tab", [])
        style.configure("Side.TNotebook", tabmargins=0)
        style.configure("Big.TButton", padding=(14, 10))
        style.configure("Title.TLabel", font=("Segoe UI", 12, "bold"))
        style.configure("KPI.TLabel", font=("Segoe UI", 10))
        style.configure("KPIValue.TLabel", font=("Segoe UI", 11, "bold"))
        style.configure("Warn.TLabel", foreground="#b45309")

    def _build_topbar(self):
        top = ttk.Frame(self)
        top.pack(fill="x", padx=12, pady=10)

        ttk.Label(top, textvariable=self.company_var, style="Title.TLabel").pack(side="left")

        # Show only file name (not full path)
        backend = self.container.settings.backend
        where = Path(self.db_path).name if backend == "sqlite" else self.container.settings.postgrest_url
        ttk.Label(top, text=f"{backend.upper()}: {where}").pack(side="right")

    def _build_sidebar(self):
        box = ttk.LabelFrame(self.sidebar, text="Menu")
        box.pack(fill="x", pady=(0, 10))

        entries = [
            ("Dashboard", Page.DASHBOARD),
            ("Point of Sale", Page.POS),
            ("Products", Page.PRODUCTS),
            ("Purchases", Page.PURCHASES),
            ("Expenses", Page.EXPENSES),
            ("Initial Inventory", Page.INITIAL_INVENTORY),
            ("Excel + Reports", Page.REPORTS),
            ("Configuration", Page.CONFIGURATION),
        ]
        for i, (label, page) in enumerate(entries):
            ttk.Button(
                box, text=label, style="Big.TButton",
                command=lambda p=page: self.navigate(p),
            ).pack(fill="x", padx=10, pady=(10 if i == 0 else 4, 4))

        ttk.Button(box, text="Refresh", command=self.refresh_all).pack(fill="x", padx=10, pady=(6, 10))

        # Low stock list
        lowbox = ttk.LabelFrame(self.sidebar, text="Low Stock (double click)")
        lowbox.pack(fill="both", expand=True)

        self.low_list = tk.Listbox(lowbox, height=8)
        self.low_list.pack(fill="both", expand=True, padx=10, pady=10)
        self.low_list.bind("<Double-1>", self.on_low_stock_open)
        self._low_items: list[str] = []

    def _build_status_bar(self):
        bar = ttk.Frame(self)
        bar.pack(fill="x", padx=12, pady=(0, 10))
        ttk.Label(bar, textvariable=self.status_var).pack(side="left")
        ttk.Label(bar, text=f"Logs: {self.logs_dir}").pack(side="right")

    # ---------- navigation ----------
    def navigate(self, page: Page):
        self.store.dispatch(Navigate(page))

    def _on_state_change(self, state):
        view = self.views[state.page]
        if str(self.nb.select()) != str(view.frame):
            self.nb.select(view.frame)
            view.refresh()
        if hasattr(view, "render"):
            view.render(state)

    # ---------- feedback ----------
    def toast(self, msg: str, kind: str = "info", ms: int = 2500):
        prefix = {"info": "ℹ ", "success": "✅ ", "warn": "⚠ ", "error": "❌ "}.get(kind, "")
        self.status_var.set(prefix + msg)
        if self._toast_after_id is not None:
            self.after_cancel(self._toast_after_id)
        self._toast_after_id = self.after(ms, lambda: self.status_var.set(""))

    def handle_error(self, title: str, exc: Exception, fallback: str = "Operation failed."):
        fb = feedback_for(exc, fallback)
        if fb.log_exception:
            log.exception("%s: %s", title, exc)
        self.toast(fb.message, kind=fb.kind, ms=4000 if fb.kind == "error" else 2500)
        if not fb.dialog:
            return
        if fb.kind == "warn":
            messagebox.showwarning(title, fb.message, parent=self)
        else:
            messagebox.showerror(title, fb.message, parent=self)

    def confirm(self, title: str, question: str) -> None:
        """Raise OperationCancelledError unless the user accepts."""
        if not messagebox.askyesno(title, question, parent=self):
            raise OperationCancelledError("Operation cancelled.")

    def money(self, value) -> str:
        return fmt_money(value)

    # ---------- refresh ----------
    def refresh_all(self, show_toast: bool = True):
        try:
            self.company_var.set(self.company.get_company_profile().name)
            for view in self.views.values():
                view.refresh()
            self.refresh_low_stock_panel()
        except Exception as e:
            self.handle_error("Refresh", e, "Refresh failed.")
            return

        if show_toast:
            self.toast("Refreshed.", kind="info", ms=1200)

    def refresh_low_stock_panel(self):
        self.low_list.delete(0, tk.END)
        self._low_items = []
        for p in self.inventory.low_stock():
            self.low_list.insert(tk.END, f"{p.sku} - {p.name} ({p.stock}/{p.min_stock})")
            self._low_items.append(p.sku)

    def on_low_stock_open(self, _evt=None):
        sel = self.low_list.curselection()
        if not sel:
            return
        sku = self._low_items[sel[0]]
        self.navigate(Page.PRODUCTS)
        self.views[Page.PRODUCTS].select_product_in_tree(sku)
        self.toast(f"Selected low stock: {sku}", kind="warn", ms=2000)
