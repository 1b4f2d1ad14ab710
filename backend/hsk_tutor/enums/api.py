"""
API Enums

Defines enums used by the HTTP layer.
"""

from enum import Enum


class RateLimitType(str, Enum):
    """
    Rate limit categories for different endpoint types.

    Each category has a corresponding rate limit configured in settings.
    Usage:
        from hsk_tutor.enums import RateLimitType
        from hsk_tutor.config import settings

        limit = settings.get_rate_limit(RateLimitType.LLM_HEAVY)
    """

    # General API endpoints
    DEFAULT = "default"

    # Endpoints that may call the LLM (expensive)
    LLM_HEAVY = "llm_heavy"
