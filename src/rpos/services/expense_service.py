from __future__ import annotations

import logging

from rpos.domain.errors import ValidationError
from rpos.domain.models import Expense, ExpenseCategory
from rpos.domain.money import to_money
from rpos.repositories.unit_of_work import now_iso

log = logging.getLogger(__name__)


class ExpenseService:
    def __init__(self, repo, clock=now_iso):
        self.repo = repo
        self.clock = clock

    def create_expense(self, description: str, category, amount) -> Expense:
        description = (description or "").strip()
        if not description:
            raise ValidationError("Description is required.")
        cat = ExpenseCategory.parse(category)
        value = to_money(amount)
        if value <= 0:
            raise ValidationError("Amount must be > 0.")
        expense = self.repo.insert_expense(self.clock(), description, cat.value, value)
        log.info("expense_created id=%s category=%s amount=%s", expense.id, cat.value, value)
        return expense

    def list_expenses(self) -> list[Expense]:
        return self.repo.list_expenses()
