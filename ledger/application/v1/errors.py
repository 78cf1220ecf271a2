from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ledger.domain.errors import (ConstraintViolationError,
                                  InvalidPaymentAmountError,
                                  InvalidStorageInputError,
                                  InvalidTokenPrefixError,
                                  TransientStorageError)
from ledger.shared.monitoring.logging import get_logger
from ledger.shared.monitoring.metrics import record_error

logger = get_logger(__name__)


async def constraint_violation_handler(request: Request, exc: ConstraintViolationError):
    logger.warning(f"HTTP {request.method} {request.url.path} rejected - {exc}")
    record_error(type(exc).__name__, exc.operation)
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "constraint": exc.constraint},
    )


async def transient_storage_handler(request: Request, exc: TransientStorageError):
    logger.error(f"HTTP {request.method} {request.url.path} storage unavailable - {exc}")
    record_error(type(exc).__name__, exc.operation)
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc)},
        headers={"Retry-After": "1"},
    )


async def invalid_input_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ConstraintViolationError, constraint_violation_handler)
    app.add_exception_handler(TransientStorageError, transient_storage_handler)
    app.add_exception_handler(InvalidTokenPrefixError, invalid_input_handler)
    app.add_exception_handler(InvalidPaymentAmountError, invalid_input_handler)
    app.add_exception_handler(InvalidStorageInputError, invalid_input_handler)
