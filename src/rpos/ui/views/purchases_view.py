from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging

from rpos.application.state import (
    AddPurchaseLine,
    ClearPurchase,
    RemovePurchaseLine,
    SetSupplier,
    UpdatePurchaseLine,
)

log = logging.getLogger(__name__)


class PurchasesView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Purchases")

        self.pick_var = tk.StringVar()
        self.supplier_var = tk.StringVar()
        self.total_var = tk.StringVar(value="Total: " + app.money(0))

        self.all_choices: list[str] = []
        self.sku_map: dict[str, str] = {}

        self._build()

    def _build(self):
        tab = self.frame

        top = ttk.LabelFrame(tab, text="Add purchase line")
        top.pack(fill="x", padx=10, pady=10)
        top.columnconfigure(1, weight=1)

        ttk.Label(top, text="Search product (SKU or name)").grid(row=0, column=0, padx=10, pady=8, sticky="w")
        self.combo = ttk.Combobox(top, textvariable=self.pick_var, width=56)
        self.combo.grid(row=0, column=1, padx=10, pady=8, sticky="ew")
        self.combo.bind("<KeyRelease>", lambda _e: self._filter_combobox(self.pick_var.get()))
        self.combo.bind("<Return>", lambda _e: self.add_line())
        ttk.Button(top, text="Add", style="Big.TButton", command=self.add_line)\
            .grid(row=0, column=2, padx=10, pady=8)

        mid = ttk.Frame(tab)
        mid.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        box = ttk.LabelFrame(mid, text="Purchase draft")
        box.pack(side="left", fill="both", expand=True, padx=(0, 10))

        cols = ("sku", "name", "qty", "unit", "line")
        self.tree = ttk.Treeview(box, columns=cols, show="headings", height=10)
        heads = {"sku": "SKU", "name": "Name", "qty": "Qty", "unit": "Unit cost", "line": "Line"}
        widths = {"sku": 110, "name": 360, "qty": 70, "unit": 120, "line": 120}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.pack(fill="both", expand=True, padx=10, pady=10)

        edit = ttk.Frame(box)
        edit.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Label(edit, text="Qty").pack(side="left")
        self.qty_e = ttk.Entry(edit, width=8)
        self.qty_e.pack(side="left", padx=6)
        ttk.Label(edit, text="Unit cost").pack(side="left")
        self.cost_e = ttk.Entry(edit, width=10)
        self.cost_e.pack(side="left", padx=6)
        ttk.Button(edit, text="Update line", command=self.update_line).pack(side="left")
        ttk.Button(edit, text="Remove selected", command=self.remove_selected).pack(side="left", padx=10)
        ttk.Button(edit, text="Clear", command=self.clear).pack(side="left")
        self.tree.bind("<<TreeviewSelect>>", self._load_selected)

        right = ttk.LabelFrame(mid, text="Confirm purchase")
        right.pack(side="right", fill="y")

        ttk.Label(right, text="Supplier").pack(anchor="w", padx=10, pady=(10, 4))
        supplier = ttk.Entry(right, textvariable=self.supplier_var, width=34)
        supplier.pack(padx=10)
        supplier.bind("<FocusOut>", lambda _e: self.app.store.dispatch(SetSupplier(self.supplier_var.get())))

        ttk.Label(right, textvariable=self.total_var).pack(anchor="w", padx=10, pady=10)
        ttk.Button(right, text="Confirm purchase", style="Big.TButton", command=self.confirm)\
            .pack(fill="x", padx=10, pady=(0, 10))

        hist = ttk.LabelFrame(tab, text="Purchases History (double click to view details)")
        hist.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cols = ("id", "dt", "supplier", "items", "total")
        self.history = ttk.Treeview(hist, columns=cols, show="headings", height=7)
        heads = {"id": "Purchase ID", "dt": "Datetime", "supplier": "Supplier", "items": "Items", "total": "Total"}
        widths = {"id": 100, "dt": 180, "supplier": 260, "items": 70, "total": 140}
        for c in cols:
            self.history.heading(c, text=heads[c])
            self.history.column(c, width=widths[c], anchor="w")
        self.history.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        self.history.bind("<Double-1>", self.open_purchase_details)

    def _filter_combobox(self, typed: str):
        typed = typed.strip().lower()
        self.combo["values"] = self.all_choices if not typed else [c for c in self.all_choices if typed in c.lower()]

    def refresh_product_choices(self):
        choices = []
        mapping = {}
        for p in self.app.inventory.list_products():
            label = f"{p.sku} - {p.name} (stock: {p.stock}, cost: {p.cost_price:.2f})"
            choices.append(label)
            mapping[label] = p.sku
        self.all_choices = choices
        self.sku_map = mapping
        self.combo["values"] = choices

    def refresh(self):
        self.refresh_product_choices()
        self.refresh_history()
        self.render(self.app.store.state)

    def render(self, state):
        for item in self.tree.get_children():
            self.tree.delete(item)
        for line in state.purchase_lines:
            self.tree.insert(
                "", "end", iid=str(line.product_id),
                values=(line.sku, line.name, line.quantity,
                        self.app.money(line.unit_cost), self.app.money(line.line_total)),
            )
        self.supplier_var.set(state.supplier_name)
        self.total_var.set("Total: " + self.app.money(state.purchase_total))

    def _selected_line(self):
        sel = self.tree.selection()
        if not sel:
            return None
        for line in self.app.store.state.purchase_lines:
            if str(line.product_id) == sel[0]:
                return line
        return None

    def _load_selected(self, _evt=None):
        line = self._selected_line()
        if line is None:
            return
        self.qty_e.delete(0, tk.END)
        self.qty_e.insert(0, str(line.quantity))
        self.cost_e.delete(0, tk.END)
        self.cost_e.insert(0, f"{line.unit_cost:.2f}")

    def add_line(self):
        sku = self.sku_map.get(self.pick_var.get().strip())
        if not sku:
            messagebox.showwarning("Validation", "Pick a product from the dropdown list.", parent=self.frame)
            return
        try:
            product = self.app.inventory.get_product_by_sku(sku)
            self.app.store.dispatch(AddPurchaseLine(product))
        except Exception as e:
            self.app.handle_error("Purchase", e)
            return
        self.pick_var.set("")

    def update_line(self):
        line = self._selected_line()
        if line is None:
            messagebox.showwarning("Validation", "Select a purchase line.", parent=self.frame)
            return
        try:
            qty = int(self.qty_e.get().strip())
        except ValueError:
            messagebox.showwarning("Validation", "Qty must be an integer.", parent=self.frame)
            return
        try:
            self.app.store.dispatch(UpdatePurchaseLine(line.product_id, qty, self.cost_e.get().strip()))
        except Exception as e:
            self.app.handle_error("Purchase", e)

    def remove_selected(self):
        line = self._selected_line()
        if line is not None:
            self.app.store.dispatch(RemovePurchaseLine(line.product_id))

    def clear(self):
        self.app.store.dispatch(ClearPurchase())

    def confirm(self):
        self.app.store.dispatch(SetSupplier(self.supplier_var.get()))
        state = self.app.store.state
        try:
            purchase = self.app.purchases.create_purchase(state.supplier_name, state.purchase_items())
        except Exception as e:
            self.app.handle_error("Purchase failed", e, "Purchase failed.")
            return

        self.app.toast(f"Purchase saved (ID {purchase.id}).", kind="success")
        self.app.store.dispatch(ClearPurchase())
        self.app.refresh_all(show_toast=False)

    # ---------- history ----------
    def refresh_history(self):
        for item in self.history.get_children():
            self.history.delete(item)
        for p in self.app.purchases.list_purchases():
            self.history.insert(
                "", "end", iid=str(p.id),
                values=(p.id, p.created_at, p.supplier_name, len(p.items), self.app.money(p.total_amount)),
            )

    def open_purchase_details(self, _evt=None):
        sel = self.history.selection()
        if not sel:
            return
        purchase = next((p for p in self.app.purchases.list_purchases() if str(p.id) == sel[0]), None)
        if purchase is None:
            return

        win = tk.Toplevel(self.app)
        win.title(f"Purchase Details #{purchase.id}")
        win.geometry("820x420")

        h = ttk.LabelFrame(win, text="Header")
        h.pack(fill="x", padx=10, pady=10)
        ttk.Label(h, text=f"Datetime: {purchase.created_at}").pack(anchor="w", padx=10, pady=2)
        ttk.Label(h, text=f"Supplier: {purchase.supplier_name}").pack(anchor="w", padx=10, pady=2)
        ttk.Label(h, text=f"Total: {self.app.money(purchase.total_amount)}").pack(anchor="w", padx=10, pady=2)

        box = ttk.LabelFrame(win, text="Items")
        box.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cols = ("name", "qty", "unit", "line")
        tree = ttk.Treeview(box, columns=cols, show="headings", height=10)
        heads = {"name": "Product", "qty": "Qty", "unit": "Unit cost", "line": "Line"}
        widths = {"name": 380, "qty": 70, "unit": 120, "line": 120}
        for c in cols:
            tree.heading(c, text=heads[c])
            tree.column(c, width=widths[c], anchor="w")
        tree.pack(fill="both", expand=True, padx=10, pady=10)

        for it in purchase.items:
            tree.insert("", "end", values=(
                it.product_name, it.quantity, self.app.money(it.unit_cost), self.app.money(it.line_total),
            ))
