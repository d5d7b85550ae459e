from __future__ import annotations

import tkinter as tk
from tkinter import ttk


class InitialInventoryView:
    """Opening inventory value used as the P&L baseline."""

    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Initial Inventory")

        self.active_var = tk.StringVar(value="No active period.")
        self._build()

    def _build(self):
        tab = self.frame

        box = ttk.LabelFrame(tab, text="Set active period")
        box.pack(fill="x", padx=10, pady=10)

        ttk.Label(box, text="Period name").grid(row=0, column=0, padx=10, pady=8, sticky="w")
        self.name_e = ttk.Entry(box, width=32)
        self.name_e.grid(row=0, column=1, padx=10, pady=8, sticky="w")

        ttk.Label(box, text="Total value").grid(row=0, column=2, padx=10, pady=8, sticky="w")
        self.value_e = ttk.Entry(box, width=14)
        self.value_e.grid(row=0, column=3, padx=10, pady=8, sticky="w")

        ttk.Button(box, text="Use current stock value", command=self.fill_from_stock)\
            .grid(row=0, column=4, padx=10, pady=8)
        ttk.Button(box, text="Activate", style="Big.TButton", command=self.activate)\
            .grid(row=0, column=5, padx=10, pady=8)

        ttk.Label(tab, textvariable=self.active_var, style="Title.TLabel").pack(anchor="w", padx=14)

        hist = ttk.LabelFrame(tab, text="History")
        hist.pack(fill="both", expand=True, padx=10, pady=10)

        cols = ("id", "dt", "name", "value", "active")
        self.tree = ttk.Treeview(hist, columns=cols, show="headings", height=14)
        heads = {"id": "ID", "dt": "Created", "name": "Period", "value": "Total value", "active": "Active"}
        widths = {"id": 60, "dt": 180, "name": 300, "value": 140, "active": 80}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.tag_configure("active", background="#dcfce7")
        self.tree.pack(fill="both", expand=True, padx=10, pady=10)

    def fill_from_stock(self):
        total = sum((p.stock_value for p in self.app.inventory.list_products()), 0)
        self.value_e.delete(0, tk.END)
        self.value_e.insert(0, f"{total:.2f}")

    def activate(self):
        name = self.name_e.get().strip()
        try:
            if self.app.initial_inventory.get_active_period() is not None:
                self.app.confirm("Initial inventory", f"Replace the active period with '{name}'?")
            period = self.app.initial_inventory.set_active_period(name, self.value_e.get().strip())
        except Exception as e:
            self.app.handle_error("Initial inventory", e, "Failed to set period.")
            return

        self.name_e.delete(0, tk.END)
        self.value_e.delete(0, tk.END)
        self.app.toast(f"Active period: {period.period_name}", kind="success")
        self.app.refresh_all(show_toast=False)

    def refresh(self):
        active = self.app.initial_inventory.get_active_period()
        if active is None:
            self.active_var.set("No active period.")
        else:
            self.active_var.set(f"Active: {active.period_name} ({self.app.money(active.total_value)})")

        for item in self.tree.get_children():
            self.tree.delete(item)
        for p in self.app.initial_inventory.list_history():
            self.tree.insert(
                "", "end",
                values=(p.id, p.created_at, p.period_name, self.app.money(p.total_value), "yes" if p.is_active else ""),
                tags=("active",) if p.is_active else (),
            )
