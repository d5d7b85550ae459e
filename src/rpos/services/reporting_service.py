from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, timedelta
from decimal import Decimal

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from rpos.domain.models import CompanyProfile
from rpos.domain.money import ZERO, round2
from rpos.domain.pnl import CogsPolicy, ProfitAndLoss, compute_profit_and_loss


class ReportingService:
    def __init__(self, repo, cogs_policy: CogsPolicy | str = CogsPolicy.CLAMP, settings_service=None):
        self.repo = repo
        self.cogs_policy = CogsPolicy.parse(cogs_policy)
        self.settings = settings_service

    def profit_and_loss(self) -> ProfitAndLoss:
        return compute_profit_and_loss(
            sales=self.repo.list_sales(),
            expenses=self.repo.list_expenses(),
            purchases=self.repo.list_purchases(),
            products=self.repo.list_products(),
            initial_inventory=self.repo.get_active_initial_inventory(),
            policy=self.cogs_policy,
        )

    def daily_sales(self, days: int = 7, today: date | None = None) -> list[tuple[str, Decimal]]:
        """Sales total per day for the last `days` days, oldest first, zero-filled."""
        today = today or date.today()
        buckets: OrderedDict[str, Decimal] = OrderedDict(
            ((today - timedelta(days=offset)).isoformat(), ZERO) for offset in range(days - 1, -1, -1)
        )
        for s in self.repo.list_sales():
            day = str(s.created_at)[:10]
            if day in buckets:
                buckets[day] = round2(buckets[day] + s.total_amount)
        return list(buckets.items())

    def export_report_excel(self, path: str) -> None:
        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
            ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        company = self.settings.get_company_profile() if self.settings else CompanyProfile()
        pnl = self.profit_and_loss()
        sales_rows = self.repo.list_sales()
        purchases_rows = self.repo.list_purchases()
        expenses_rows = self.repo.list_expenses()

        # -------- 1) P&L --------
        ws = wb.active
        ws.title = "P&L"
        ws["A1"] = "Income Statement (P&L)"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A2"] = company.name
        ws["B2"] = f"RTN {company.tax_id}" if company.tax_id else ""

        ws["A3"] = "Base period"
        ws["B3"] = pnl.period_name
        ws["A4"] = "Generated"
        ws["B4"] = datetime.now().replace(microsecond=0).isoformat(sep=" ")

        rows = [
            ("Revenue", pnl.revenue),
            ("Initial inventory", pnl.initial_inventory),
            ("Purchases", pnl.purchases),
            ("Final inventory (current stock)", pnl.final_inventory),
            ("(-) Cost of goods sold", pnl.cogs),
            ("Gross profit", pnl.gross_profit),
            ("Operating expenses", pnl.operating_expenses),
        ]
        rows += [(f"  - {cat}", amount) for cat, amount in sorted(pnl.expenses_by_category.items())]
        rows.append(("Net profit", pnl.net_profit))

        start_row = 6
        for i, (label, val) in enumerate(rows):
            r = start_row + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = float(val)
            money(ws[f"B{r}"])
            if label in ("Gross profit", "Net profit"):
                bold_row(ws, r)

        r = start_row + len(rows) + 1
        for w in pnl.warnings:
            ws[f"A{r}"] = f"Warning: {w}"
            ws[f"A{r}"].font = Font(italic=True)
            r += 1

        set_widths(ws, {"A": 36, "B": 30})

        # -------- 2) Sales --------
        ws2 = wb.create_sheet("Sales")
        ws2.append([
            "Sale ID", "Datetime", "Payment",
            "Product", "Qty", "Unit Price", "Unit Cost",
            "Line Total", "Line Margin",
        ])
        bold_row(ws2, 1)

        out_row = 2
        for s in sales_rows:
            for it in s.items:
                ws2.append([
                    str(s.id), s.created_at, s.payment_method.value,
                    it.product_name, int(it.quantity), float(it.unit_price), float(it.unit_cost),
                    float(it.line_total), float(it.line_margin),
                ])
                for col in "FGHI":
                    money(ws2[f"{col}{out_row}"])
                out_row += 1

        ws2.freeze_panes = "A2"
        set_widths(ws2, {"A": 10, "B": 22, "C": 12, "D": 34, "E": 6, "F": 14, "G": 14, "H": 14, "I": 14})
        if ws2.max_row >= 2:
            add_table(ws2, "SalesDetail", 1, 1, ws2.max_row, 9)

        # -------- 3) Purchases --------
        ws3 = wb.create_sheet("Purchases")
        ws3.append(["Purchase ID", "Datetime", "Supplier", "Product", "Qty", "Unit Cost", "Line Total"])
        bold_row(ws3, 1)

        out_row = 2
        for p in purchases_rows:
            for it in p.items:
                ws3.append([
                    str(p.id), p.created_at, p.supplier_name,
                    it.product_name, int(it.quantity), float(it.unit_cost), float(it.line_total),
                ])
                money(ws3[f"F{out_row}"])
                money(ws3[f"G{out_row}"])
                out_row += 1

        ws3.freeze_panes = "A2"
        set_widths(ws3, {"A": 12, "B": 22, "C": 24, "D": 34, "E": 6, "F": 14, "G": 14})
        if ws3.max_row >= 2:
            add_table(ws3, "PurchasesDetail", 1, 1, ws3.max_row, 7)

        # -------- 4) Expenses --------
        ws4 = wb.create_sheet("Expenses")
        ws4.append(["Expense ID", "Datetime", "Category", "Description", "Amount"])
        bold_row(ws4, 1)
        for i, e in enumerate(expenses_rows, start=2):
            ws4.append([str(e.id), e.created_at, e.category.value, e.description, float(e.amount)])
            money(ws4[f"E{i}"])

        ws4.freeze_panes = "A2"
        set_widths(ws4, {"A": 12, "B": 22, "C": 16, "D": 40, "E": 14})
        if ws4.max_row >= 2:
            add_table(ws4, "ExpensesDetail", 1, 1, ws4.max_row, 5)

        wb.save(path)
