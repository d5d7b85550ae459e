from .models import (
    CompanyProfile,
    Expense,
    ExpenseCategory,
    InitialInventoryPeriod,
    PaymentMethod,
    Product,
    Purchase,
    PurchaseItem,
    Sale,
    SaleItem,
)
from .errors import (
    AppError,
    DataQualityError,
    InsufficientStockError,
    NotFoundError,
    OperationCancelledError,
    PersistenceError,
    StoreTimeoutError,
    ValidationError,
)

__all__ = [
    "CompanyProfile",
    "Expense",
    "ExpenseCategory",
    "InitialInventoryPeriod",
    "PaymentMethod",
    "Product",
    "Purchase",
    "PurchaseItem",
    "Sale",
    "SaleItem",
    "AppError",
    "DataQualityError",
    "InsufficientStockError",
    "NotFoundError",
    "OperationCancelledError",
    "PersistenceError",
    "StoreTimeoutError",
    "ValidationError",
]
