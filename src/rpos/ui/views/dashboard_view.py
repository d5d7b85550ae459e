from __future__ import annotations

import tkinter as tk
from tkinter import ttk
import logging

log = logging.getLogger(__name__)


class DashboardView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Dashboard")

        self.warning_var = tk.StringVar(value="")
        self._build()

    def _build(self):
        tab = self.frame

        kpi = ttk.LabelFrame(tab, text="Profit & Loss")
        kpi.pack(fill="x", padx=10, pady=10)

        self.kpi_labels: dict[str, ttk.Label] = {}
        entries = [
            ("period", "Base period"),
            ("revenue", "Revenue"),
            ("initial", "Initial inventory"),
            ("purchases", "Purchases"),
            ("final", "Final inventory"),
            ("cogs", "(-) Cost of goods sold"),
            ("gross", "Gross profit"),
            ("expenses", "Operating expenses"),
            ("net", "Net profit"),
        ]
        for i, (key, text) in enumerate(entries):
            row, col = divmod(i, 3)
            ttk.Label(kpi, text=text, style="KPI.TLabel").grid(row=row, column=col * 2, sticky="w", padx=10, pady=4)
            value = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
            value.grid(row=row, column=col * 2 + 1, sticky="e", padx=10, pady=4)
            self.kpi_labels[key] = value
        for c in range(6):
            kpi.columnconfigure(c, weight=1)

        ttk.Label(tab, textvariable=self.warning_var, style="Warn.TLabel").pack(anchor="w", padx=14)

        self.sales_canvas = tk.Canvas(tab, height=220, bg="#f8fafc", highlightthickness=1, highlightbackground="#cbd5e1")
        self.sales_canvas.pack(fill="both", expand=True, padx=10, pady=10)

    def refresh(self):
        pnl = self.app.reporting.profit_and_loss()
        values = {
            "period": pnl.period_name,
            "revenue": pnl.revenue,
            "initial": pnl.initial_inventory,
            "purchases": pnl.purchases,
            "final": pnl.final_inventory,
            "cogs": pnl.cogs,
            "gross": pnl.gross_profit,
            "expenses": pnl.operating_expenses,
            "net": pnl.net_profit,
        }
        for key, value in values.items():
            text = value if isinstance(value, str) else self.app.money(value)
            self.kpi_labels[key].config(text=text)
        self.warning_var.set("\n".join(f"⚠ {w}" for w in pnl.warnings))

        self._draw_bar_chart(
            self.sales_canvas,
            "Sales, last 7 days",
            [(day, float(total)) for day, total in self.app.reporting.daily_sales(7)],
        )

    def _draw_bar_chart(self, canvas: tk.Canvas, title: str, data: list[tuple[str, float]], color: str = "#2563eb"):
        canvas.delete("all")
        w, h = int(canvas.winfo_width() or 560), int(canvas.winfo_height() or 220)
        w, h = max(w, 560), max(h, 220)
        canvas.create_text(12, 16, text=title, anchor="w", font=("Segoe UI", 10, "bold"), fill="#0f172a")
        if not any(v for _, v in data):
            canvas.create_text(w // 2, h // 2, text="No sales yet", fill="#64748b")
            return
        maxv = max(v for _, v in data) or 1
        bw = max(24, (w - 40) // len(data))
        for i, (label, val) in enumerate(data):
            x0 = 24 + i * bw
            x1 = x0 + bw - 8
            y1 = h - 30
            y0 = y1 - int((val / maxv) * (h - 70))
            canvas.create_rectangle(x0, y0, x1, y1, fill=color, outline="")
            canvas.create_text((x0 + x1) // 2, y1 + 12, text=label[-5:], font=("Segoe UI", 8), fill="#475569")
            canvas.create_text((x0 + x1) // 2, y0 - 8, text=f"{val:.0f}", font=("Segoe UI", 8), fill="#0f172a")
