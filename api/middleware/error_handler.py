"""
Global Error Handler Middleware
================================

Maps custom exceptions to HTTP status codes and formats error responses.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from exceptions import (
    SafeScribeError,
    EmptyTranscriptError,
    TranscriptTooLongError,
    InputValidationError,
    PipelineError,
    ProviderConnectionError,
    ProcessingCancelledError,
    ConfigurationError,
)
from config import get_settings


logger = logging.getLogger(__name__)

# Non-standard "client closed request"
HTTP_499_CLIENT_CLOSED_REQUEST = 499

# Map exceptions to HTTP status codes
EXCEPTION_STATUS_MAP = {
    EmptyTranscriptError: status.HTTP_400_BAD_REQUEST,
    TranscriptTooLongError: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    InputValidationError: status.HTTP_400_BAD_REQUEST,
    PipelineError: status.HTTP_502_BAD_GATEWAY,
    ProcessingCancelledError: HTTP_499_CLIENT_CLOSED_REQUEST,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(error: SafeScribeError) -> int:
    """
    Resolve the HTTP status for an exception.

    A PipelineError caused by an unreachable provider is reported as 503.
    """
    if isinstance(error, PipelineError) and isinstance(error.__cause__, ProviderConnectionError):
        return status.HTTP_503_SERVICE_UNAVAILABLE

    for error_type in type(error).__mro__:
        if error_type in EXCEPTION_STATUS_MAP:
            return EXCEPTION_STATUS_MAP[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def error_handler_middleware(request: Request, call_next):
    """
    Global error handling middleware.

    Catches SafeScribe exceptions and converts them to appropriate
    HTTP responses with structured error bodies.

    Args:
        request: The incoming request
        call_next: The next middleware/route handler

    Returns:
        Response or JSONResponse with error details
    """
    try:
        response = await call_next(request)
        return response
    except SafeScribeError as e:
        status_code = status_code_for(e)
        logger.warning(f"{request.method} {request.url.path} -> {status_code}: {e.message}")
        return JSONResponse(
            status_code=status_code,
            content={"success": False, **e.to_dict()}
        )
    except Exception as e:
        # Unexpected errors - hide details in production
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        settings = get_settings()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error_type": "InternalServerError",
                "message": "An unexpected error occurred",
                "details": {"error": str(e)} if settings.api_debug else {}
            }
        )
