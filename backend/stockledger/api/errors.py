from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from stockledger.services.errors import (
    ConcurrencyConflictError,
    DuplicateKeyError,
    InsufficientStockError,
    InvalidArgumentError,
    LedgerError,
    NotFoundError,
    StorageFailureError,
)


ERROR_STATUS: dict[type[LedgerError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateKeyError: status.HTTP_409_CONFLICT,
    InsufficientStockError: status.HTTP_409_CONFLICT,
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    ConcurrencyConflictError: status.HTTP_409_CONFLICT,
    StorageFailureError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: LedgerError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return status.HTTP_400_BAD_REQUEST


async def ledger_error_handler(_request: Request, exc: LedgerError) -> JSONResponse:
    payload = {"detail": str(exc), "code": exc.code, "retryable": exc.retryable}
    if isinstance(exc, InsufficientStockError):
        payload["available"] = exc.available
        payload["requested"] = exc.requested
    return JSONResponse(payload, status_code=status_for(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
