"""
Writing Prompt Service

Picks a single practice character for a learner's free-text keyword
(Vietnamese or Chinese). Keyword prompts are never cached; pooled practice
characters per level go through the pool cache instead.
"""

import logging

from hsk_tutor.enums import ContentKind
from hsk_tutor.middleware.error_handling import ContentFetchFailed, InvalidRequestError
from hsk_tutor.models.content import WritingCharacter
from hsk_tutor.services.content.provider import ContentProvider
from hsk_tutor.services.content.validation import validate_item

logger = logging.getLogger(__name__)


class WritingPromptService:
    def __init__(self, provider: ContentProvider):
        self.provider = provider

    async def character_for_keyword(self, keyword: str) -> WritingCharacter:
        """
        Return one practice character related to a keyword.

        If the provider answers with a multi-character word, only its first
        character is kept.

        Raises:
            InvalidRequestError: Empty keyword.
            ContentFetchFailed: The provider failed or returned nothing usable.
        """
        keyword = keyword.strip()
        if not keyword:
            raise InvalidRequestError("Keyword must not be empty")

        try:
            raw_items = await self.provider.request(
                ContentKind.WRITING_CHARACTER, None, 1, topic=keyword
            )
        except ContentFetchFailed:
            raise
        except Exception as e:
            raise ContentFetchFailed("Failed to fetch writing prompt") from e

        for raw in raw_items:
            if isinstance(raw, dict) and isinstance(raw.get("hanzi"), str):
                hanzi = raw["hanzi"].strip()
                if len(hanzi) > 1:
                    logger.info(f"Keyword {keyword!r} gave {hanzi!r}, keeping {hanzi[0]!r}")
                    raw = {**raw, "hanzi": hanzi[0]}
            payload = validate_item(ContentKind.WRITING_CHARACTER, raw)
            if payload is not None:
                return WritingCharacter.model_validate(payload)

        raise ContentFetchFailed(f"No usable writing character for {keyword!r}")
