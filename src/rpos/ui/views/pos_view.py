from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging

from rpos.application.state import (
    AddToCart,
    ClearCart,
    RemoveFromCart,
    SelectPaymentMethod,
    SetCartQuantity,
)
from rpos.domain.models import PaymentMethod

log = logging.getLogger(__name__)


class PosView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="POS")

        self.search_var = tk.StringVar()
        self.payment_var = tk.StringVar(value=PaymentMethod.CASH.value)
        self.total_var = tk.StringVar(value="Total: " + app.money(0))
        self._products = []

        self._build()

    def _build(self):
        tab = self.frame

        left = ttk.LabelFrame(tab, text="Catalog (double click to add)")
        left.pack(side="left", fill="both", expand=True, padx=(10, 6), pady=10)

        top = ttk.Frame(left)
        top.pack(fill="x", padx=10, pady=8)
        ttk.Label(top, text="Search (SKU, name or category)").pack(side="left")
        search = ttk.Entry(top, textvariable=self.search_var, width=40)
        search.pack(side="left", padx=10)
        search.bind("<KeyRelease>", lambda _e: self.refresh_catalog())

        cols = ("sku", "name", "price", "stock")
        self.catalog = ttk.Treeview(left, columns=cols, show="headings", height=18)
        heads = {"sku": "SKU", "name": "Name", "price": "Price", "stock": "Stock"}
        widths = {"sku": 100, "name": 300, "price": 100, "stock": 70}
        for c in cols:
            self.catalog.heading(c, text=heads[c])
            self.catalog.column(c, width=widths[c], anchor="w")
        self.catalog.tag_configure("out", foreground="#9ca3af")
        self.catalog.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        self.catalog.bind("<Double-1>", lambda _e: self.add_selected())

        right = ttk.LabelFrame(tab, text="Cart")
        right.pack(side="right", fill="both", padx=(6, 10), pady=10)

        cols = ("sku", "name", "qty", "unit", "line")
        self.cart_tree = ttk.Treeview(right, columns=cols, show="headings", height=12)
        heads = {"sku": "SKU", "name": "Name", "qty": "Qty", "unit": "Unit", "line": "Line"}
        widths = {"sku": 90, "name": 200, "qty": 50, "unit": 90, "line": 90}
        for c in cols:
            self.cart_tree.heading(c, text=heads[c])
            self.cart_tree.column(c, width=widths[c], anchor="w")
        self.cart_tree.pack(fill="both", expand=True, padx=10, pady=10)

        qtyrow = ttk.Frame(right)
        qtyrow.pack(fill="x", padx=10)
        ttk.Label(qtyrow, text="Qty").pack(side="left")
        self.qty_e = ttk.Entry(qtyrow, width=8)
        self.qty_e.pack(side="left", padx=6)
        self.qty_e.bind("<Return>", lambda _e: self.set_quantity())
        ttk.Button(qtyrow, text="Set qty", command=self.set_quantity).pack(side="left")
        ttk.Button(qtyrow, text="Remove", command=self.remove_selected).pack(side="left", padx=6)
        ttk.Button(qtyrow, text="Clear", command=self.clear_cart).pack(side="left")

        pay = ttk.LabelFrame(right, text="Payment method")
        pay.pack(fill="x", padx=10, pady=10)
        for m in PaymentMethod:
            ttk.Radiobutton(
                pay, text=m.value.title(), value=m.value, variable=self.payment_var,
                command=self.select_payment,
            ).pack(side="left", padx=8, pady=6)

        ttk.Label(right, textvariable=self.total_var, style="Title.TLabel").pack(anchor="w", padx=10)
        ttk.Button(right, text="Checkout", style="Big.TButton", command=self.checkout)\
            .pack(fill="x", padx=10, pady=10)

    # ---------- catalog ----------
    def refresh(self):
        self.refresh_catalog()
        self.render(self.app.store.state)

    def refresh_catalog(self):
        self._products = self.app.inventory.search_products(self.search_var.get())
        for item in self.catalog.get_children():
            self.catalog.delete(item)
        for p in self._products:
            self.catalog.insert(
                "", "end", iid=str(p.id),
                values=(p.sku, p.name, self.app.money(p.sell_price), p.stock),
                tags=("out",) if p.stock <= 0 else (),
            )

    def _selected_product(self):
        sel = self.catalog.selection()
        if not sel:
            return None
        for p in self._products:
            if str(p.id) == sel[0]:
                return p
        return None

    # ---------- cart ----------
    def render(self, state):
        for item in self.cart_tree.get_children():
            self.cart_tree.delete(item)
        for line in state.cart:
            self.cart_tree.insert(
                "", "end", iid=str(line.product_id),
                values=(line.sku, line.name, line.quantity,
                        self.app.money(line.unit_price), self.app.money(line.line_total)),
            )
        self.payment_var.set(state.payment_method.value)
        self.total_var.set("Total: " + self.app.money(state.cart_total))

    def _selected_line(self):
        sel = self.cart_tree.selection()
        if not sel:
            return None
        for line in self.app.store.state.cart:
            if str(line.product_id) == sel[0]:
                return line
        return None

    def add_selected(self):
        p = self._selected_product()
        if p is None:
            return
        try:
            self.app.store.dispatch(AddToCart(p))
        except Exception as e:
            self.app.handle_error("Stock", e)

    def set_quantity(self):
        line = self._selected_line()
        if line is None:
            messagebox.showwarning("Validation", "Select a cart line.", parent=self.frame)
            return
        try:
            qty = int(self.qty_e.get().strip())
        except ValueError:
            messagebox.showwarning("Validation", "Qty must be an integer.", parent=self.frame)
            return
        try:
            self.app.store.dispatch(SetCartQuantity(line.product_id, qty))
            self.qty_e.delete(0, tk.END)
        except Exception as e:
            self.app.handle_error("Stock", e)

    def remove_selected(self):
        line = self._selected_line()
        if line is not None:
            self.app.store.dispatch(RemoveFromCart(line.product_id))

    def clear_cart(self):
        self.app.store.dispatch(ClearCart())

    def select_payment(self):
        self.app.store.dispatch(SelectPaymentMethod(PaymentMethod(self.payment_var.get())))

    def checkout(self):
        state = self.app.store.state
        try:
            sale = self.app.sales.create_sale(state.payment_method, state.sale_items())
        except Exception as e:
            self.app.handle_error("Sale failed", e, "Sale failed.")
            return

        self.app.toast(f"Sale saved (ID {sale.id}). Total {self.app.money(sale.total_amount)}", kind="success")
        self.app.store.dispatch(ClearCart())
        self.app.refresh_all(show_toast=False)
