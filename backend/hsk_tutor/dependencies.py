"""
FastAPI dependencies.

The learner is identified by the X-Learner-Id header and the browsing session
by X-Session-Id. Both resolve to a LearnerContext owned by the application's
LearnerContextRegistry (created in the lifespan handler, see main.py).
"""

from fastapi import Depends, Header, Request

from hsk_tutor.services.learner_context import LearnerContext, LearnerContextRegistry

# Ids become part of Redis keys and SCAN patterns: no separators, no glob characters
IDENTIFIER_PATTERN = r"^[A-Za-z0-9_-]+$"


def get_registry(request: Request) -> LearnerContextRegistry:
    """Get the application's learner context registry."""
    return request.app.state.registry


def get_learner_context(
    x_learner_id: str = Header("anonymous", max_length=64, pattern=IDENTIFIER_PATTERN),
    x_session_id: str = Header("default", max_length=64, pattern=IDENTIFIER_PATTERN),
    registry: LearnerContextRegistry = Depends(get_registry),
) -> LearnerContext:
    """Get (or create) the context for the requesting learner session."""
    return registry.get(x_learner_id, x_session_id)
