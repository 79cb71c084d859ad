"""
Exception handlers: every rejection is rendered as

    {"error_code": ..., "message": ..., "details": {...}}
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cargo_dispatch.domain.errors import DispatchError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "validation": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "not_found": status.HTTP_404_NOT_FOUND,
    "ownership": status.HTTP_403_FORBIDDEN,
    "state": status.HTTP_409_CONFLICT,
    "concurrency": status.HTTP_409_CONFLICT,
    "infrastructure": status.HTTP_503_SERVICE_UNAVAILABLE,
}

ERROR_CODE_BY_STATUS = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    405: "ERR_METHOD_NOT_ALLOWED",
}


def _envelope(status_code: int, error_code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": jsonable_encoder(details or {}),
        },
    )


async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("request_failed: path=%s code=%s", request.url.path, exc.error_code)
    else:
        logger.info("request_rejected: path=%s code=%s", request.url.path, exc.error_code)
    return _envelope(status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    error_code = ERROR_CODE_BY_STATUS.get(exc.status_code, "ERR_HTTP")
    response = _envelope(exc.status_code, error_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ERR_VALIDATION",
        "Validation error",
        {"errors": exc.errors()},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DispatchError, dispatch_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
