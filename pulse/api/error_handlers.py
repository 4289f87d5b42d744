from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pulse.core.exceptions import ErrorCode, PulseError
from pulse.core.logging import get_logger

# Initialize logger
logger = get_logger(__name__)

STATUS_BY_CODE = {
    ErrorCode.PROVIDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.METHOD_NOT_SUPPORTED: status.HTTP_501_NOT_IMPLEMENTED,
    ErrorCode.CONFIGURATION_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.UNKNOWN_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(code: ErrorCode) -> int:
    """HTTP status for an error code; provider failures map to 502."""
    return STATUS_BY_CODE.get(code, status.HTTP_502_BAD_GATEWAY)


async def handle_pulse_error(request: Request, exc: PulseError) -> JSONResponse:
    """
    Handle PulseError instances.

    Args:
        request: FastAPI request object
        exc: PulseError instance

    Returns:
        JSONResponse: Formatted error response
    """
    status_code = status_for(exc.code)
    log = logger.error if status_code >= 500 else logger.info
    log(
        f"Pulse error: {exc.message}",
        extra={
            "data": {
                "request_path": request.url.path,
                "status_code": status_code,
                "error_code": exc.code.value,
                "provider": exc.provider,
            }
        },
    )

    content = exc.to_dict()
    content["error"]["status_code"] = status_code
    return JSONResponse(status_code=status_code, content=content)


async def handle_validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors."""
    errors = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.info(f"Request validation failed for {request.url.path}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "message": "Request validation error",
                "status_code": status.HTTP_422_UNPROCESSABLE_ENTITY,
                "context": {"errors": errors},
            }
        },
    )


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": ErrorCode.UNKNOWN_ERROR.value,
                "message": "An unexpected error occurred",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            }
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Configure global exception handlers for the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(PulseError, handle_pulse_error)
    app.add_exception_handler(RequestValidationError, handle_validation_exception)
    app.add_exception_handler(Exception, handle_unexpected_exception)
