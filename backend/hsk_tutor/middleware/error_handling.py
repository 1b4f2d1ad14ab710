"""
Error Handling Middleware

Provides consistent, informative error responses across the API.

Features:
- Standardized error response format
- Correlation IDs for log tracking
- Sanitized responses (hides internal details in production)
- Custom exception classes for the failure modes of content delivery,
  persistence and the exam lifecycle

Usage:
    from hsk_tutor.middleware.error_handling import ContentFetchFailed, setup_error_handling

    # Add middleware to app
    setup_error_handling(app, debug=settings.DEBUG)

    # Raise custom exceptions from services
    raise ContentFetchFailed("Provider returned malformed data")

Exception handling hierarchy:
    - HTTPException: Re-raised for FastAPI's built-in handler
    - ServiceError: Custom exceptions → structured JSON response
    - Exception: Catch-all for unexpected errors → sanitized response

Every ServiceError is retryable by re-issuing the request; none leaves
partially written state behind.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - HTTP status code
    - Error code for categorization
    - Optional details for debugging

    Details are only returned to clients in debug mode unless the subclass
    sets expose_details (the UI needs them to act).

    Example:
        raise ServiceError("Something went wrong", status_code=500)
    """

    status_code: int = 500
    error_code: str = "service_error"
    expose_details: bool = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details


class ContentFetchFailed(ServiceError):
    """
    Content provider error.

    Raised when a provider call fails (rate limits, timeouts, API errors) or
    returns data that cannot be parsed into items.
    """

    status_code = 502
    error_code = "content_fetch_failed"


class PersistenceFailed(ServiceError):
    """
    Key-value store error.

    Raised when a storage read or write fails, or a stored value cannot
    be decoded.
    """

    status_code = 503
    error_code = "persistence_failed"


class ExamStateError(ServiceError):
    """
    Exam command error.

    Raised when a command is not valid in the exam's current state, or
    refers to a question or option that does not exist.
    """

    status_code = 409
    error_code = "exam_state_error"


class SubmissionNeedsConfirmation(ServiceError):
    """
    Raised when an exam is submitted with unanswered questions and the
    learner has not confirmed.
    """

    status_code = 409
    error_code = "confirmation_required"
    expose_details = True

    def __init__(self, unanswered: int):
        super().__init__(
            f"{unanswered} question(s) are unanswered; confirm to submit anyway",
            details={"unanswered": unanswered},
        )
        self.unanswered = unanswered


class InvalidRequestError(ServiceError):
    """
    Data validation error.

    Raised when input data fails validation beyond the request schema.
    """

    status_code = 422
    error_code = "validation_error"


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when a requested resource doesn't exist.
    """

    status_code = 404
    error_code = "not_found"


# =============================================================================
# Error Handling Middleware
# =============================================================================


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    - Catches unhandled exceptions
    - Logs with correlation ID
    - Returns consistent error format
    - Hides internal details in production
    """

    def __init__(self, app, debug: bool = False):
        """
        Initialize middleware.

        Args:
            app: FastAPI/Starlette application
            debug: Whether to include stack traces in responses
        """
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any errors."""
        error_id = str(uuid4())[:8]

        try:
            response = await call_next(request)
            return response

        except HTTPException:
            # Let FastAPI handle HTTP exceptions
            raise

        except ServiceError as e:
            logger.error(
                f"[{error_id}] {e.error_code}: {e.message}",
                extra={
                    "error_id": error_id,
                    "error_code": e.error_code,
                    "path": request.url.path,
                    "method": request.method,
                    "details": e.details,
                },
            )

            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": e.error_code,
                    "message": e.message,
                    "error_id": error_id,
                    "details": e.details if (self.debug or e.expose_details) else None,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )

        except Exception as e:
            logger.error(
                f"[{error_id}] Unhandled error: {type(e).__name__}: {e}",
                extra={
                    "error_id": error_id,
                    "path": request.url.path,
                    "method": request.method,
                    "traceback": traceback.format_exc(),
                },
            )

            content = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "error_id": error_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

            if self.debug:
                content["details"] = {
                    "exception": type(e).__name__,
                    "message": str(e),
                    "traceback": traceback.format_exc(),
                }

            return JSONResponse(status_code=500, content=content)


# =============================================================================
# Setup Function
# =============================================================================


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """
    Configure error handling on the FastAPI app.

    Args:
        app: FastAPI application instance
        debug: Whether to include stack traces in responses
    """
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling middleware enabled (debug={debug})")
