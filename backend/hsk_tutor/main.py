"""
HSK Tutor API

FastAPI application serving HSK study content to the learner frontend:
pooled vocabulary and writing characters, conversations, dictionary lookups,
spaced repetition review and the timed mock exam.

Run with:
    uvicorn hsk_tutor.main:app --reload

Learners identify themselves with the X-Learner-Id header and their browser
session with X-Session-Id.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hsk_tutor.config import settings
from hsk_tutor.db.redis import close_redis_pool
from hsk_tutor.middleware import setup_error_handling, setup_rate_limiting
from hsk_tutor.routers import content, exam, history, lookup, review, session
from hsk_tutor.services.content.provider import ContentProvider, GeminiContentProvider
from hsk_tutor.services.learner_context import LearnerContextRegistry

logger = logging.getLogger(__name__)


def create_app(
    provider: Optional[ContentProvider] = None,
    registry: Optional[LearnerContextRegistry] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        provider: Content provider (default: GeminiContentProvider)
        registry: Pre-built learner context registry (default: one per app)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.registry = registry or LearnerContextRegistry(
            provider or GeminiContentProvider()
        )
        logger.info(f"{settings.APP_NAME} started")
        yield
        # Stop exam countdowns before the event loop goes away
        app.state.registry.close_all()
        await close_redis_pool()
        logger.info(f"{settings.APP_NAME} stopped")

    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_error_handling(app, debug=settings.DEBUG)
    setup_rate_limiting(app, enabled=settings.RATE_LIMIT_ENABLED)

    app.include_router(content.router)
    app.include_router(lookup.router)
    app.include_router(review.router)
    app.include_router(exam.router)
    app.include_router(history.router)
    app.include_router(session.router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "app": settings.APP_NAME}

    return app


app = create_app()
