"""Map GovernanceError subclasses onto HTTP responses."""

from typing import Dict, Type

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from governance.core.errors import (
    CapacityExceededError,
    ConflictError,
    GovernanceError,
    InsufficientFundsError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    StoreUnavailableError,
    ValidationError,
)
from governance.core.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_ERROR: Dict[Type[GovernanceError], int] = {
    ValidationError: 422,
    PermissionDeniedError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    CapacityExceededError: 409,
    InsufficientFundsError: 409,
    StateError: 409,
    StoreUnavailableError: 503,
}


def status_for(exc: GovernanceError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 400


async def governance_error_handler(request: Request, exc: GovernanceError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
    return JSONResponse(status_code=status, content={"error": exc.code, "message": exc.message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GovernanceError, governance_error_handler)
