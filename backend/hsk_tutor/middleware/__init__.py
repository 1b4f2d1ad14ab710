"""
Middleware package.

- error_handling.py: Service exceptions and JSON error responses
- rate_limit.py: SlowAPI rate limiting for provider-backed endpoints
"""

from hsk_tutor.middleware.error_handling import (
    ContentFetchFailed,
    ErrorHandlingMiddleware,
    ExamStateError,
    InvalidRequestError,
    NotFoundError,
    PersistenceFailed,
    ServiceError,
    SubmissionNeedsConfirmation,
    setup_error_handling,
)
from hsk_tutor.middleware.rate_limit import limit_llm, limiter, setup_rate_limiting

__all__ = [
    "ContentFetchFailed",
    "ErrorHandlingMiddleware",
    "ExamStateError",
    "InvalidRequestError",
    "NotFoundError",
    "PersistenceFailed",
    "ServiceError",
    "SubmissionNeedsConfirmation",
    "setup_error_handling",
    "limit_llm",
    "limiter",
    "setup_rate_limiting",
]
