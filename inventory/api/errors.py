from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from inventory.core.logging_config import get_logger
from inventory.domain.errors import (
    AlreadyExistsError,
    DeadlineExceededError,
    FailedPreconditionError,
    InsufficientStockError,
    InvalidArgumentError,
    InventoryError,
    NotFoundError,
)

logger = get_logger(__name__)

# Most specific first; the first isinstance match wins
ERROR_STATUS = [
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST, "Invalid request"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Resource not found"),
    (AlreadyExistsError, status.HTTP_409_CONFLICT, "Resource already exists"),
    (InsufficientStockError, status.HTTP_409_CONFLICT, "Insufficient stock"),
    (FailedPreconditionError, status.HTTP_409_CONFLICT, "Failed precondition"),
    (DeadlineExceededError, status.HTTP_504_GATEWAY_TIMEOUT, "Deadline exceeded"),
]

def error_response(status_code: int, message: str, details: str = None) -> JSONResponse:
    content = {"error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)

async def handle_inventory_error(request: Request, exc: InventoryError) -> JSONResponse:
    for error_type, status_code, message in ERROR_STATUS:
        if isinstance(exc, error_type):
            return error_response(status_code, message, exc.message)

    # Internal errors: the cause is logged where it happened, never echoed back
    logger.error(
        f"Internal error on {request.method} {request.url.path}",
        extra={'extra_fields': exc.to_dict()}
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An internal server error occurred",
        "Please try again later.",
    )

async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request payload", problems)

def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InventoryError, handle_inventory_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
