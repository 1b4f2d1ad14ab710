"""
Lookup API Router

Endpoints:
- GET /api/lookup/dictionary - Dictionary entry for a word (cached per session)
- POST /api/lookup/translate - Translate text between Chinese and Vietnamese
"""

from fastapi import APIRouter, Depends, Query, Request

from hsk_tutor.dependencies import get_learner_context
from hsk_tutor.middleware.rate_limit import limit_llm
from hsk_tutor.models.content import TranslateRequest, TranslationResult
from hsk_tutor.services.learner_context import LearnerContext

router = APIRouter(prefix="/api/lookup", tags=["lookup"])


@router.get("/dictionary", response_model=TranslationResult)
@limit_llm
async def lookup_word(
    request: Request,
    term: str = Query(..., min_length=1, max_length=100),
    context: LearnerContext = Depends(get_learner_context),
) -> TranslationResult:
    """Look up a word; repeated lookups in a session are served from cache."""
    return await context.lookup.lookup(term, context.session_store)


@router.post("/translate", response_model=TranslationResult)
@limit_llm
async def translate(
    request: Request,
    body: TranslateRequest,
    context: LearnerContext = Depends(get_learner_context),
) -> TranslationResult:
    """Translate free text. Translations are never cached."""
    return await context.lookup.translate(body.text)
