from __future__ import annotations

import tkinter as tk
from tkinter import ttk

from rpos.domain.models import CompanyProfile


class ConfigurationView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Configuration")
        self._build()

    def _build(self):
        tab = self.frame

        box = ttk.LabelFrame(tab, text="Company")
        box.pack(fill="x", padx=10, pady=10)

        self.name_e = self._entry(box, "Name", 0)
        self.tax_e = self._entry(box, "RTN", 1)
        self.address_e = self._entry(box, "Address", 2)
        self.phone_e = self._entry(box, "Phone", 3)

        ttk.Button(box, text="Save", style="Big.TButton", command=self.save)\
            .grid(row=4, column=1, sticky="w", padx=10, pady=(4, 10))

        info = ttk.LabelFrame(tab, text="Runtime")
        info.pack(fill="x", padx=10, pady=10)
        s = self.app.container.settings
        for text in (
            f"Backend: {s.backend}",
            f"SKU policy: {s.sku_policy}",
            f"COGS policy: {s.cogs_policy}",
            f"Store timeout: {s.store_timeout:g}s",
        ):
            ttk.Label(info, text=text).pack(anchor="w", padx=10, pady=2)

    def _entry(self, parent, label, row):
        ttk.Label(parent, text=label).grid(row=row, column=0, sticky="w", padx=10, pady=4)
        e = ttk.Entry(parent, width=48)
        e.grid(row=row, column=1, sticky="w", padx=10, pady=4)
        return e

    def refresh(self):
        profile = self.app.company.get_company_profile()
        for entry, value in (
            (self.name_e, profile.name),
            (self.tax_e, profile.tax_id),
            (self.address_e, profile.address),
            (self.phone_e, profile.phone),
        ):
            entry.delete(0, tk.END)
            entry.insert(0, value)

    def save(self):
        profile = CompanyProfile(
            name=self.name_e.get(),
            tax_id=self.tax_e.get(),
            address=self.address_e.get(),
            phone=self.phone_e.get(),
        )
        try:
            self.app.company.save_company_profile(profile)
        except Exception as e:
            self.app.handle_error("Configuration", e, "Failed to save settings.")
            return
        self.app.toast("Settings saved.", kind="success")
        self.app.refresh_all(show_toast=False)
