"""
Content delivery services.

- provider.py: LLM-backed content provider
- validation.py: Per-kind structural validation of generated items
- pool_cache.py: Fetch-once / consume-many pool cache
- conversation.py, writing.py, lookup.py: Features built on the provider
"""

from hsk_tutor.services.content.conversation import ConversationService
from hsk_tutor.services.content.lookup import LookupService
from hsk_tutor.services.content.pool_cache import (
    ContentPoolCache,
    PageSlice,
    PoolCursor,
    slice_page,
)
from hsk_tutor.services.content.provider import ContentProvider, GeminiContentProvider
from hsk_tutor.services.content.writing import WritingPromptService

__all__ = [
    "ContentPoolCache",
    "ContentProvider",
    "ConversationService",
    "GeminiContentProvider",
    "LookupService",
    "PageSlice",
    "PoolCursor",
    "WritingPromptService",
    "slice_page",
]
