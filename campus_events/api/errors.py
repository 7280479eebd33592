from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from campus_events.services.exceptions import (
    BackendUnavailableError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationError,
)


def http_error_from_service(err: ServiceError) -> HTTPException:
    headers = None
    if isinstance(err, NotFoundError):
        status = 404
    elif isinstance(err, PermissionDeniedError):
        status = 403
    elif isinstance(err, ConflictError):
        status = 409
    elif isinstance(err, ValidationError):
        status = 422
    elif isinstance(err, BackendUnavailableError):
        status = 503
        headers = {"Retry-After": "1"}
    else:
        status = 500

    return HTTPException(
        status_code=status,
        detail={"code": err.code, "message": err.message},
        headers=headers,
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    http_exc = http_error_from_service(exc)
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"detail": http_exc.detail},
        headers=http_exc.headers,
    )
