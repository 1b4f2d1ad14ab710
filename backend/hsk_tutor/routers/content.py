"""
Content API Router

Endpoints for pooled content (vocabulary, writing characters), sample
conversations and keyword writing prompts.

Endpoints:
- GET /api/content/{kind}/{level}/page - One page of a vocabulary or writing pool
- GET /api/content/{kind}/{level}/next - Next vocabulary or writing item of the learner's shuffled cursor
- DELETE /api/content/{kind}/{level} - Drop a persisted pool (conversations included)
- GET /api/content/conversation/{level} - Conversation (cached unless a topic is given)
- POST /api/content/conversation/continue - Generate the next turns of a conversation
- GET /api/content/writing/keyword - Single practice character for a keyword

Pools are stored in the learner's session store by default; lifetime=durable
selects the store shared by all learners.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request

from hsk_tutor.config import settings
from hsk_tutor.dependencies import get_learner_context, get_registry
from hsk_tutor.enums import ContentKind, StorageLifetime
from hsk_tutor.middleware.error_handling import InvalidRequestError
from hsk_tutor.middleware.rate_limit import limit_llm
from hsk_tutor.models.base import SuccessResponse
from hsk_tutor.models.content import (
    ContentFingerprint,
    ConversationContinueRequest,
    ConversationResponse,
    NextItemResponse,
    PoolPage,
    WritingCharacter,
)
from hsk_tutor.services.learner_context import LearnerContext, LearnerContextRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/content", tags=["content"])

# Kinds whose pools are served item by item (pages and cursors)
ITEM_KINDS = {ContentKind.VOCABULARY, ContentKind.WRITING_CHARACTER}

# Kinds with a persisted level pool; conversations are served whole
POOLED_KINDS = ITEM_KINDS | {ContentKind.CONVERSATION}


def _pooled_fingerprint(
    kind: ContentKind, level: int, allowed: set[ContentKind] = ITEM_KINDS
) -> ContentFingerprint:
    if kind not in allowed:
        raise InvalidRequestError(
            f"{kind.value} is not served from a pool here",
            details={"allowed_kinds": sorted(k.value for k in allowed)},
        )
    return ContentFingerprint(kind=kind, level=level)


# ===========================================
# Pools
# ===========================================


@router.get("/{kind}/{level}/page", response_model=PoolPage)
@limit_llm
async def get_page(
    request: Request,
    kind: ContentKind,
    level: int = Path(..., ge=1, le=6),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    lifetime: StorageLifetime = Query(StorageLifetime.SESSION),
    context: LearnerContext = Depends(get_learner_context),
    registry: LearnerContextRegistry = Depends(get_registry),
) -> PoolPage:
    """
    Get one page of a pool.

    Only the first request for a cold pool reaches the provider; every other
    page is sliced locally.
    """
    fingerprint = _pooled_fingerprint(kind, level)
    page_size = page_size or settings.VOCABULARY_PAGE_SIZE
    store = registry.store_for(context, lifetime)

    result = await registry.pool_cache.get_page(fingerprint, page, page_size, store)

    return PoolPage(
        kind=kind,
        level=level,
        items=[item.payload for item in result.items],
        total=result.total,
        page=page,
        page_size=page_size,
        has_more=result.has_more,
        empty=result.total == 0,
    )


@router.get("/{kind}/{level}/next", response_model=NextItemResponse)
@limit_llm
async def get_next(
    request: Request,
    kind: ContentKind,
    level: int = Path(..., ge=1, le=6),
    lifetime: StorageLifetime = Query(StorageLifetime.SESSION),
    context: LearnerContext = Depends(get_learner_context),
    registry: LearnerContextRegistry = Depends(get_registry),
) -> NextItemResponse:
    """Get the next item of the learner's shuffled pass through a pool."""
    fingerprint = _pooled_fingerprint(kind, level)
    store = registry.store_for(context, lifetime)
    cursor = context.cursor_for(fingerprint, store)

    item = await registry.pool_cache.get_next(cursor, store)

    return NextItemResponse(
        kind=kind,
        level=level,
        index=cursor.index,
        item=item.payload if item is not None else None,
        empty=item is None,
    )


@router.delete("/{kind}/{level}", response_model=SuccessResponse)
async def invalidate_pool(
    kind: ContentKind,
    level: int = Path(..., ge=1, le=6),
    lifetime: StorageLifetime = Query(StorageLifetime.SESSION),
    context: LearnerContext = Depends(get_learner_context),
    registry: LearnerContextRegistry = Depends(get_registry),
) -> SuccessResponse:
    """Drop a persisted pool; the next read fetches a new one."""
    fingerprint = _pooled_fingerprint(kind, level, allowed=POOLED_KINDS)
    store = registry.store_for(context, lifetime)
    await registry.pool_cache.invalidate(fingerprint, store)
    return SuccessResponse(message=f"Pool {fingerprint.storage_key} invalidated")


# ===========================================
# Conversations
# ===========================================


@router.post("/conversation/continue", response_model=ConversationResponse)
@limit_llm
async def continue_conversation(
    request: Request,
    body: ConversationContinueRequest,
    context: LearnerContext = Depends(get_learner_context),
) -> ConversationResponse:
    """Generate the next 2-4 turns of an existing conversation."""
    lines = await context.conversations.continue_conversation(body.lines, body.level)
    topic = body.lines[-1].topic if body.lines else None
    return ConversationResponse(level=body.level, topic=topic, lines=lines, empty=not lines)


@router.get("/conversation/{level}", response_model=ConversationResponse)
@limit_llm
async def get_conversation(
    request: Request,
    level: int = Path(..., ge=1, le=6),
    topic: Optional[str] = Query(None, max_length=200),
    lifetime: StorageLifetime = Query(StorageLifetime.SESSION),
    context: LearnerContext = Depends(get_learner_context),
    registry: LearnerContextRegistry = Depends(get_registry),
) -> ConversationResponse:
    """Get a sample conversation; a topic always yields a fresh one."""
    store = registry.store_for(context, lifetime)
    lines = await context.conversations.get_conversation(level, store, topic=topic)
    return ConversationResponse(
        level=level,
        topic=lines[0].topic if lines else topic,
        lines=lines,
        empty=not lines,
    )


# ===========================================
# Writing
# ===========================================


@router.get("/writing/keyword", response_model=WritingCharacter)
@limit_llm
async def writing_for_keyword(
    request: Request,
    q: str = Query(..., min_length=1, max_length=50, description="Vietnamese or Chinese keyword"),
    registry: LearnerContextRegistry = Depends(get_registry),
) -> WritingCharacter:
    """Get one practice character related to a keyword."""
    return await registry.writing.character_for_keyword(q)
