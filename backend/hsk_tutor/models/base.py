"""
Strict Base Model for API Request/Response Validation

This module provides base classes with strict validation settings to harden
the API contract between backend and frontend.

Usage:
    # For request bodies (strictest validation)
    class ExamAnswerRequest(StrictRequest):
        index: int
        choice: str

    # For response bodies and provider payloads (extra fields ignored)
    class VocabularyWord(StrictResponse):
        hanzi: str
        pinyin: str

Architecture:
    API Request → StrictRequest (extra="forbid") → Route Handler
    Provider JSON / stored record → StrictResponse (extra="ignore") → API Response
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for API request bodies with strict validation.

    Rejects any fields not explicitly declared in the model, catching
    frontend typos and mismatches at request time rather than runtime.

    Features:
        - extra="forbid": Unknown fields raise 422 Unprocessable Entity
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )


class StrictResponse(BaseModel):
    """
    Base model for response bodies and generated payloads.

    More lenient than StrictRequest: generated content often carries
    fields we do not use, so extras are dropped rather than rejected.

    Features:
        - extra="ignore": Silently ignores extra fields
        - validate_default=True: Validates default values
        - from_attributes=True: Allows conversion from plain objects
    """

    model_config = ConfigDict(
        extra="ignore",
        validate_default=True,
        from_attributes=True,
    )


# =============================================================================
# Common Response Patterns
# =============================================================================


class ErrorDetail(StrictResponse):
    """
    Standardized error response detail.

    Matches the error format from the error_handling middleware.
    """

    error: str  # Error code (e.g., "content_fetch_failed")
    message: str  # Human-readable message
    error_id: str  # Correlation ID for log lookup
    details: Optional[dict] = None  # Additional context
    timestamp: datetime


class PaginatedResponse(StrictResponse):
    """
    Base model for paginated list responses.

    Subclass and add an 'items' field with the appropriate type:

        class PoolPage(PaginatedResponse):
            items: list[dict]
    """

    total: int
    page: int = 1
    page_size: int = 20
    has_more: bool = False


class SuccessResponse(StrictResponse):
    """Simple success response for operations without complex output."""

    success: bool = True
    message: str
