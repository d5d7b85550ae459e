class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class InsufficientStockError(ValidationError):
    pass


class DataQualityError(ValidationError):
    pass


class NotFoundError(AppError):
    pass


class PersistenceError(AppError):
    pass


class StoreTimeoutError(PersistenceError):
    pass


class OperationCancelledError(AppError):
    pass
