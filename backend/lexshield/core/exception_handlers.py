"""
FastAPI exception handlers for custom exceptions.

WHY: Exception handlers convert security exceptions into the bilingual JSON
envelope with correct HTTP status codes, so every stage can simply raise.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from lexshield.core.config import settings
from lexshield.core.exceptions import AppException


logger = logging.getLogger(__name__)


def error_response(exc: AppException) -> JSONResponse:
    """
    Render an AppException as a JSONResponse.

    Honors the side effects the exception requests: clearing the session
    cookie on timeouts and the ``Location`` header on moved endpoints.
    Application middleware runs outside the exception handlers and uses
    this directly.
    """
    response = JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers(),
    )
    if exc.clear_session_cookie:
        response.delete_cookie(settings.ACCESS_TOKEN_COOKIE)
    return response


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle custom AppException and its subclasses.

    Args:
        request: The FastAPI request object
        exc: The custom exception instance

    Returns:
        JSONResponse with the error envelope
    """
    return error_response(exc)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Args:
        request: The FastAPI request object
        exc: The Pydantic validation error

    Returns:
        JSONResponse with validation error details
    """
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
        )

    return JSONResponse(
        status_code=400,
        content={
            "error": True,
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "messageAr": "فشل التحقق من الطلب",
            "details": {"errors": errors},
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handle Starlette HTTP exceptions (404, 405 raised by the router).

    Args:
        request: The FastAPI request object
        exc: The HTTP exception

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "code": "HTTP_ERROR",
            "message": exc.detail,
            "messageAr": "تعذر معالجة الطلب",
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions.

    The traceback goes to the log; the client only ever sees the generic
    envelope.

    Args:
        request: The FastAPI request object
        exc: The unexpected exception

    Returns:
        JSONResponse with generic error message
    """
    logger.exception(
        f"Unhandled error on {request.method} {request.url.path}",
        extra={"path": request.url.path, "method": request.method},
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "messageAr": "حدث خطأ غير متوقع",
        },
    )
