from __future__ import annotations

from tkinter import ttk, filedialog
from datetime import date


class ReportsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Excel + Reports")
        self._build()

    def _build(self):
        tab = self.frame

        box1 = ttk.LabelFrame(tab, text="Import products / restock from Excel")
        box1.pack(fill="x", padx=10, pady=10)

        ttk.Label(
            box1,
            text="Headers: name | category | cost_price | sell_price | stock | min_stock  (optional: sku)",
        ).pack(anchor="w", padx=10, pady=(8, 4))
        ttk.Label(
            box1,
            text="The stock column is received as a purchase; existing products keep their current stock.",
        ).pack(anchor="w", padx=10, pady=(0, 4))
        ttk.Button(box1, text="Choose file and import", style="Big.TButton", command=self.import_excel)\
            .pack(anchor="w", padx=10, pady=(0, 10))

        box2 = ttk.LabelFrame(tab, text="Export report to Excel")
        box2.pack(fill="x", padx=10, pady=10)
        ttk.Label(box2, text="Sheets: P&L, Sales, Purchases, Expenses").pack(anchor="w", padx=10, pady=(8, 4))
        ttk.Button(box2, text="Export report", style="Big.TButton", command=self.export_report)\
            .pack(anchor="w", padx=10, pady=(0, 10))

    def refresh(self):
        pass

    def import_excel(self):
        path = filedialog.askopenfilename(title="Select Excel file", filetypes=[("Excel files", "*.xlsx")])
        if not path:
            return
        try:
            ok, skipped = self.app.excel.import_products_excel(path)
        except Exception as e:
            self.app.handle_error("Import error", e, "Excel import failed.")
            return
        self.app.toast(f"Excel import: {ok} ok, {skipped} skipped.", kind="success")
        self.app.refresh_all(show_toast=False)

    def export_report(self):
        path = filedialog.asksaveasfilename(
            title="Save report as",
            defaultextension=".xlsx",
            filetypes=[("Excel files", "*.xlsx")],
            initialfile=f"report_{date.today().isoformat()}.xlsx",
        )
        if not path:
            return
        try:
            self.app.reporting.export_report_excel(path)
        except Exception as e:
            self.app.handle_error("Export error", e, "Excel export failed.")
            return
        self.app.toast("Excel report exported.", kind="success")
