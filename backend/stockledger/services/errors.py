class LedgerError(Exception):
    """Errores de dominio del libro de stock.

    `retryable` indica si el llamador puede repetir la operacion completa
    (desde una lectura nueva) sin cambiar la peticion.
    """

    code = "LEDGER_ERROR"
    retryable = False


class NotFoundError(LedgerError):
    code = "NOT_FOUND"


class DuplicateKeyError(LedgerError):
    code = "DUPLICATE_KEY"


class InsufficientStockError(LedgerError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, message: str, *, available: int, requested: int) -> None:
        super().__init__(message)
        self.available = available
        self.requested = requested


class InvalidArgumentError(LedgerError):
    code = "INVALID_ARGUMENT"


class ConcurrencyConflictError(LedgerError):
    code = "CONCURRENCY_CONFLICT"
    retryable = True

    def __init__(self, message: str, *, expected_version: int | None = None) -> None:
        super().__init__(message)
        self.expected_version = expected_version


class StorageFailureError(LedgerError):
    code = "STORAGE_FAILURE"
    retryable = True
