"""Mapping of domain errors to HTTP responses."""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from fittrainer.core.errors import (
    CompletionGateError,
    ConcurrencyConflictError,
    FitTrainerError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    StoreUnavailableError,
    ValidationFailure,
)

STATUS_BY_ERROR: dict[type[FitTrainerError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationFailure: status.HTTP_400_BAD_REQUEST,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    CompletionGateError: status.HTTP_409_CONFLICT,
    ConcurrencyConflictError: status.HTTP_409_CONFLICT,
    StoreUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(error: FitTrainerError) -> int:
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def fittrainer_error_handler(request: Request, exc: FitTrainerError) -> JSONResponse:
    status_code = status_for(exc)
    body: dict = {"detail": str(exc), "error": type(exc).__name__}
    headers = None

    if isinstance(exc, CompletionGateError):
        body["completed"] = exc.completed
        body["total"] = exc.total
    if isinstance(exc, StoreUnavailableError):
        body["retryable"] = True
        headers = {"Retry-After": "1"}
        logger.error("Store unavailable while handling request", path=request.url.path)
    else:
        logger.info("Request rejected", path=request.url.path, error=type(exc).__name__, status_code=status_code)

    return JSONResponse(status_code=status_code, content=body, headers=headers)
