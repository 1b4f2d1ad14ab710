"""
Rate Limiting Middleware

Prevents abuse of the expensive content provider using SlowAPI.

Usage:
    from hsk_tutor.middleware.rate_limit import limit_llm

    @router.get("/writing/keyword")
    @limit_llm
    async def writing_for_keyword(request: Request, ...):
        ...

Rate limit configurations (from settings):
- DEFAULT: General API endpoints (100/minute)
- LLM_HEAVY: Endpoints that may call the provider (10/minute)
"""

import logging

from fastapi import FastAPI, Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from hsk_tutor.config import settings
from hsk_tutor.enums import RateLimitType

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """
    Get client identifier for rate limiting.

    Prefers the learner id header so learners behind one NAT do not share
    a budget, then X-Forwarded-For, then the direct address.
    """
    learner_id = request.headers.get("X-Learner-Id")
    if learner_id:
        return f"learner:{learner_id}"

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain (original client)
        return forwarded_for.split(",")[0].strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[settings.get_rate_limit(RateLimitType.DEFAULT)],
    enabled=settings.RATE_LIMIT_ENABLED,
)


def setup_rate_limiting(app: FastAPI, enabled: bool = True) -> None:
    """
    Configure rate limiting on the FastAPI app.

    Args:
        app: FastAPI application instance
        enabled: Whether to enable rate limiting
    """
    # Decorated endpoints look the limiter up on app state either way
    app.state.limiter = limiter

    if not enabled:
        limiter.enabled = False
        logger.info("Rate limiting disabled")
        return

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    logger.info("Rate limiting enabled")


def limit_llm(func):
    """Decorator for endpoints that may call the content provider."""
    return limiter.limit(settings.get_rate_limit(RateLimitType.LLM_HEAVY))(func)
