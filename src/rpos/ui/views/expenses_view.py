from __future__ import annotations

import tkinter as tk
from tkinter import ttk

from rpos.domain.models import ExpenseCategory


class ExpensesView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Expenses")

        self.category_var = tk.StringVar(value=ExpenseCategory.OTHER.value)
        self.total_var = tk.StringVar(value="")
        self._build()

    def _build(self):
        tab = self.frame

        form = ttk.LabelFrame(tab, text="Register expense")
        form.pack(fill="x", padx=10, pady=10)

        ttk.Label(form, text="Description").grid(row=0, column=0, padx=10, pady=8, sticky="w")
        self.desc_e = ttk.Entry(form, width=48)
        self.desc_e.grid(row=0, column=1, padx=10, pady=8, sticky="w")

        ttk.Label(form, text="Category").grid(row=0, column=2, padx=10, pady=8, sticky="w")
        ttk.Combobox(
            form, textvariable=self.category_var, values=[c.value for c in ExpenseCategory],
            state="readonly", width=14,
        ).grid(row=0, column=3, padx=10, pady=8, sticky="w")

        ttk.Label(form, text="Amount").grid(row=0, column=4, padx=10, pady=8, sticky="w")
        self.amount_e = ttk.Entry(form, width=12)
        self.amount_e.grid(row=0, column=5, padx=10, pady=8, sticky="w")
        self.amount_e.bind("<Return>", lambda _e: self.save())

        ttk.Button(form, text="Save", style="Big.TButton", command=self.save)\
            .grid(row=0, column=6, padx=10, pady=8)

        hist = ttk.LabelFrame(tab, text="Expenses")
        hist.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cols = ("id", "dt", "category", "desc", "amount")
        self.tree = ttk.Treeview(hist, columns=cols, show="headings", height=16)
        heads = {"id": "ID", "dt": "Datetime", "category": "Category", "desc": "Description", "amount": "Amount"}
        widths = {"id": 60, "dt": 180, "category": 130, "desc": 460, "amount": 130}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.pack(fill="both", expand=True, padx=10, pady=10)

        ttk.Label(hist, textvariable=self.total_var, style="Title.TLabel").pack(anchor="e", padx=10, pady=(0, 10))

    def save(self):
        try:
            self.app.expenses.create_expense(self.desc_e.get(), self.category_var.get(), self.amount_e.get().strip())
        except Exception as e:
            self.app.handle_error("Expense", e, "Failed to save expense.")
            return

        self.desc_e.delete(0, tk.END)
        self.amount_e.delete(0, tk.END)
        self.app.toast("Expense saved.", kind="success")
        self.app.refresh_all(show_toast=False)

    def refresh(self):
        for item in self.tree.get_children():
            self.tree.delete(item)
        rows = self.app.expenses.list_expenses()
        for e in rows:
            self.tree.insert("", "end", values=(
                e.id, e.created_at, e.category.value, e.description, self.app.money(e.amount),
            ))
        total = sum((e.amount for e in rows), 0)
        self.total_var.set("Total expenses: " + self.app.money(total))
