from __future__ import annotations

import tkinter as tk
from tkinter import ttk
import logging

from rpos.domain.sku import PRODUCT_CATEGORIES

log = logging.getLogger(__name__)


class ProductsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Products")

        self.editing_id = None
        self.category_var = tk.StringVar(value=PRODUCT_CATEGORIES[0])

        tab = self.frame
        style = ttk.Style(self.frame)
        style.configure("ProductsCompact.Treeview", rowheight=24, font=("Segoe UI", 9))
        style.configure("ProductsCompact.Treeview.Heading", font=("Segoe UI", 9, "bold"))

        self.form = ttk.LabelFrame(tab, text="Add product", width=285)
        self.form.pack(side="left", fill="y", padx=(0, 6), pady=8)
        self.form.pack_propagate(False)
        left = self.form

        right = ttk.LabelFrame(tab, text="Products list (double click to edit)")
        right.pack(side="right", fill="both", expand=True, pady=8)

        self.p_name = self._entry(left, "Name", 0)
        ttk.Label(left, text="Category").grid(row=1, column=0, sticky="w", padx=8, pady=4)
        ttk.Combobox(left, textvariable=self.category_var, values=PRODUCT_CATEGORIES, state="readonly", width=16)\
            .grid(row=1, column=1, sticky="ew", padx=8, pady=4)
        self.p_sku = self._entry(left, "SKU", 2)
        ttk.Button(left, text="Suggest SKU", command=self.on_suggest_sku)\
            .grid(row=3, column=1, sticky="ew", padx=8, pady=(0, 4))
        self.p_cost = self._entry(left, "Cost", 4)
        self.p_price = self._entry(left, "Price", 5)
        self.p_stock = self._entry(left, "Stock", 6)
        self.p_min = self._entry(left, "Min stock", 7)
        self.p_desc = self._entry(left, "Description", 8)

        btns = ttk.Frame(left)
        btns.grid(row=9, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 8))
        for i in range(2):
            btns.columnconfigure(i, weight=1)

        self.save_btn = ttk.Button(btns, text="Add", command=self.on_save_product)
        self.save_btn.grid(row=0, column=0, sticky="ew", padx=(0, 6))
        ttk.Button(btns, text="Clear", command=self.clear_form).grid(row=0, column=1, sticky="ew", padx=(6, 0))

        for entry in self._entries():
            entry.bind("<Return>", self._on_enter_save)

        tree_wrap = ttk.Frame(right)
        tree_wrap.pack(fill="both", expand=True, padx=6, pady=6)

        cols = ("id", "sku", "name", "category", "cost", "price", "stock", "min")
        self.tree = ttk.Treeview(tree_wrap, columns=cols, show="headings", height=20, style="ProductsCompact.Treeview")
        heads = {
            "id": "ID", "sku": "SKU", "name": "Name", "category": "Category",
            "cost": "Avg cost", "price": "Price", "stock": "Stock", "min": "Min",
        }
        widths = {"id": 48, "sku": 95, "name": 240, "category": 130, "cost": 92, "price": 92, "stock": 70, "min": 60}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")

        self.tree.tag_configure("low", background="#ffdddd")
        self.tree.bind("<Double-1>", self.on_edit_selected)

        vsb = ttk.Scrollbar(tree_wrap, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=vsb.set)
        self.tree.grid(row=0, column=0, sticky="nsew")
        vsb.grid(row=0, column=1, sticky="ns")

        tree_wrap.columnconfigure(0, weight=1)
        tree_wrap.rowconfigure(0, weight=1)

    def _entry(self, parent, label, row):
        ttk.Label(parent, text=label).grid(row=row, column=0, sticky="w", padx=8, pady=4)
        e = ttk.Entry(parent, width=16)
        e.grid(row=row, column=1, sticky="ew", padx=8, pady=4)
        parent.columnconfigure(1, weight=1)
        return e

    def _entries(self):
        return (self.p_name, self.p_sku, self.p_cost, self.p_price, self.p_stock, self.p_min, self.p_desc)

    def _on_enter_save(self, _event=None):
        self.on_save_product()
        return "break"

    def on_suggest_sku(self):
        try:
            sku = self.app.inventory.suggest_sku(self.category_var.get())
        except Exception as e:
            self.app.handle_error("SKU", e)
            return
        self.p_sku.delete(0, tk.END)
        self.p_sku.insert(0, sku)

    def on_save_product(self):
        fields = dict(
            name=self.p_name.get(),
            category=self.category_var.get(),
            cost_price=self.p_cost.get().strip() or "0",
            sell_price=self.p_price.get().strip() or "0",
            stock=self.p_stock.get().strip() or "0",
            min_stock=self.p_min.get().strip() or "0",
            sku=self.p_sku.get(),
            description=self.p_desc.get(),
        )
        try:
            if self.editing_id is None:
                pid = self.app.inventory.add_product(**fields)
                self.app.toast(f"Product added (ID {pid}).", kind="success")
            else:
                self.app.inventory.update_product(self.editing_id, **fields)
                self.app.toast("Product updated.", kind="success")
        except Exception as e:
            self.app.handle_error("Product", e, "Failed to save product.")
            return

        self.clear_form()
        self.app.refresh_all(show_toast=False)

    def on_edit_selected(self, _evt=None):
        sel = self.tree.selection()
        if not sel:
            return
        try:
            p = self.app.inventory.get_product(self.tree.item(sel[0], "values")[0])
        except Exception as e:
            self.app.handle_error("Product", e)
            return

        self.clear_form()
        self.editing_id = p.id
        self.category_var.set(p.category)
        values = (p.name, p.sku, p.cost_price, p.sell_price, p.stock, p.min_stock, p.description or "")
        for entry, value in zip(self._entries(), values):
            entry.insert(0, str(value))
        self.form.configure(text=f"Edit product #{p.id}")
        self.save_btn.configure(text="Update")

    def clear_form(self):
        for e in self._entries():
            e.delete(0, tk.END)
        self.editing_id = None
        self.form.configure(text="Add product")
        self.save_btn.configure(text="Add")
        self.p_name.focus_set()

    def refresh(self):
        for item in self.tree.get_children():
            self.tree.delete(item)

        for p in self.app.inventory.list_products():
            self.tree.insert(
                "", "end",
                values=(p.id, p.sku, p.name, p.category, f"{p.cost_price:.2f}", f"{p.sell_price:.2f}", p.stock, p.min_stock),
                tags=("low",) if p.is_low_stock else (),
            )

    def select_product_in_tree(self, sku: str):
        for iid in self.tree.get_children():
            vals = self.tree.item(iid, "values")
            if len(vals) >= 2 and str(vals[1]) == str(sku):
                self.tree.selection_set(iid)
                self.tree.focus(iid)
                self.tree.see(iid)
                return
