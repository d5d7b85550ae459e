from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Protocol

from rpos.domain.models import InitialInventoryPeriod, Purchase, Sale


def now_iso() -> str:
    return datetime.now().replace(microsecond=0).isoformat(sep=" ")


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def create_sale(self, payment_method: str, items: Iterable[dict]) -> Sale: ...
    def create_purchase(self, supplier_name: str, items: Iterable[dict]) -> Purchase: ...
    def set_active_period(self, period_name: str, total_value: Decimal) -> InitialInventoryPeriod: ...


@dataclass
class RepositoryUnitOfWork:
    """Unit of Work adapter for transactional write use-cases.

    Each repository write method below is already all-or-nothing (a single
    sqlite transaction, or a compensated sequence of HTTP calls). This class
    stamps the records and keeps services persistence-agnostic.
    """

    repo: object
    clock: Callable[[], str] = field(default=now_iso)

    def __enter__(self) -> "RepositoryUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def create_sale(self, payment_method: str, items: Iterable[dict]) -> Sale:
        return self.repo.create_sale(self.clock(), payment_method, list(items))

    def create_purchase(self, supplier_name: str, items: Iterable[dict]) -> Purchase:
        return self.repo.create_purchase(self.clock(), supplier_name, list(items))

    def set_active_period(self, period_name: str, total_value: Decimal) -> InitialInventoryPeriod:
        return self.repo.set_active_initial_inventory(self.clock(), period_name, total_value)
