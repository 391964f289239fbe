"""
festboard/errors.py
Centralized error taxonomy for the results board API.

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional, e.g. field violations)
}

HTTP STATUS CODE DISCIPLINE:
- 200/201: Successful, valid request
- 400: Invalid input, duplicate submission, invalid action
- 404: Resource does not exist
- 405: Operation not offered (fixed houses)
- 500: Store or internal failure (never caused by user input, never leaks internals)
"""

import logging
import uuid
from typing import Optional, Dict, Any, List

from fastapi import status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_ACTION = "INVALID_ACTION"

    ALREADY_SUBMITTED = "ALREADY_SUBMITTED"

    NOT_FOUND = "NOT_FOUND"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    RESULT_NOT_FOUND = "RESULT_NOT_FOUND"

    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    STORE_ERROR = "STORE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def new_log_id() -> str:
    return str(uuid.uuid4())[:8]


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "success": False,
            "error": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class BadRequestError(APIError):
    """400 Bad Request - Invalid input"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, code, details)


class SubmissionValidationError(BadRequestError):
    """
    400 - One or more submission fields are invalid.

    Carries every violation at once so the submitter can fix them together.
    Each violation is {"field": "placements[1].points", "message": "..."}.
    """
    def __init__(self, violations: List[Dict[str, str]]):
        self.violations = violations
        summary = "; ".join(v["message"] for v in violations)
        super().__init__(
            f"Invalid submission: {summary}",
            code=ErrorCode.VALIDATION_ERROR,
            details={"violations": violations}
        )


class ResultConflictError(BadRequestError):
    """400 - A result already exists for the event. Surfaced verbatim, never retried."""
    def __init__(self, event_id: Any):
        super().__init__(
            "Results already submitted for this event",
            code=ErrorCode.ALREADY_SUBMITTED,
            details={"eventId": event_id}
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(status.HTTP_404_NOT_FOUND, message, code)


class MethodNotAllowedError(APIError):
    """405 - Operation intentionally not offered"""
    def __init__(self, message: str):
        super().__init__(status.HTTP_405_METHOD_NOT_ALLOWED, message, ErrorCode.METHOD_NOT_ALLOWED)


class StoreError(APIError):
    """
    500 - Transaction or connectivity failure.

    The original exception is logged under `log_id`; the response only says
    that the operation failed and may be retried.
    """
    def __init__(self, operation: str, log_id: Optional[str] = None):
        self.operation = operation
        self.log_id = log_id or new_log_id()
        super().__init__(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "The operation could not be completed. Please try again.",
            ErrorCode.STORE_ERROR,
            {"log_id": self.log_id}
        )


def log_store_failure(error: Exception, operation: str) -> StoreError:
    """Log a store failure and build the opaque error returned to callers"""
    store_error = StoreError(operation)
    logger.error(
        f"[{store_error.log_id}] Store failure during {operation}: "
        f"{type(error).__name__}: {str(error)}"
    )
    return store_error
