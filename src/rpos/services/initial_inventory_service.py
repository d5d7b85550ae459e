from __future__ import annotations

from typing import Callable, Optional

from rpos.domain.errors import ValidationError
from rpos.domain.models import InitialInventoryPeriod
from rpos.domain.money import to_money
from rpos.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork


class InitialInventoryService:
    """Accounting baseline used as the opening inventory in the P&L."""

    def __init__(self, repo, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo))

    def set_active_period(self, period_name: str, total_value) -> InitialInventoryPeriod:
        period_name = (period_name or "").strip()
        if not period_name:
            raise ValidationError("Period name is required.")
        value = to_money(total_value)
        if value < 0:
            raise ValidationError("Initial inventory value must be >= 0.")
        with self.uow_factory() as uow:
            return uow.set_active_period(period_name, value)

    def get_active_period(self) -> Optional[InitialInventoryPeriod]:
        return self.repo.get_active_initial_inventory()

    def list_history(self) -> list[InitialInventoryPeriod]:
        return self.repo.list_initial_inventory()
