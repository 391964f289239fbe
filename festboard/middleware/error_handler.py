"""
Global error handling for the results board API.

Registers handlers so that every failure leaves the service in the
standard error shape defined in festboard.errors.
"""
import logging
import traceback

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from festboard.errors import APIError, ErrorCode, new_log_id

logger = logging.getLogger(__name__)


def _violations_from_request_errors(errors) -> list:
    violations = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        violations.append({
            "field": ".".join(loc) or "body",
            "message": error.get("msg", "Invalid value"),
        })
    return violations


def setup_error_handlers(app, debug: bool = False):
    """
    Setup error handlers for FastAPI application.

    Args:
        app: FastAPI application instance
        debug: Enable debug mode (includes stack traces for unexpected errors)
    """

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        if exc.status_code >= 500:
            logger.error(f"API error on {request.url.path}: {exc.code} - {exc.message}")
        else:
            logger.warning(f"API error on {request.url.path}: {exc.code} - {exc.message}")
        return exc.to_response()

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        violations = _violations_from_request_errors(exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error": "Invalid request: " + "; ".join(
                    f"{v['field']}: {v['message']}" for v in violations
                ),
                "code": ErrorCode.VALIDATION_ERROR,
                "details": {"violations": violations}
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(f"HTTP exception on {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": str(exc.detail),
                "code": ErrorCode.INTERNAL_ERROR if exc.status_code >= 500 else ErrorCode.INVALID_INPUT
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log_id = new_log_id()
        logger.error(
            f"[{log_id}] Unhandled exception on {request.url.path}: "
            f"{type(exc).__name__}: {str(exc)}\n{traceback.format_exc()}"
        )
        details = {"log_id": log_id}
        if debug:
            details["type"] = type(exc).__name__
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "An unexpected error occurred. Please try again later.",
                "code": ErrorCode.INTERNAL_ERROR,
                "details": details
            }
        )

    logger.info("Error handlers configured")
