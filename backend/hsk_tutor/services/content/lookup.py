"""
Lookup Service

Dictionary lookups and free-text translation.

Dictionary entries are cached in the learner's session store, one key per
looked-up term, so repeating a lookup within a session costs no provider
call. Translations are never cached. Both are recorded to history.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from hsk_tutor.db.redis import KeyValueStore
from hsk_tutor.enums import ContentKind, HistoryKind
from hsk_tutor.middleware.error_handling import (
    ContentFetchFailed,
    InvalidRequestError,
    PersistenceFailed,
)
from hsk_tutor.models.content import TranslationResult
from hsk_tutor.services.content.provider import ContentProvider
from hsk_tutor.services.content.validation import validate_items
from hsk_tutor.services.learning.history import HistoryService

logger = logging.getLogger(__name__)


def dictionary_key(term: str) -> str:
    return f"dictionary-entry:{term}"


class LookupService:
    """Dictionary and translation lookups for one learner."""

    def __init__(self, provider: ContentProvider, history: Optional[HistoryService] = None):
        self.provider = provider
        self.history = history

    async def lookup(self, term: str, session_store: KeyValueStore) -> TranslationResult:
        """
        Look up a single word (Chinese or Vietnamese).

        Cache failures are logged and the lookup falls through to the provider.

        Raises:
            InvalidRequestError: Empty term.
            ContentFetchFailed: The provider failed or returned no usable entry.
        """
        term = term.strip()
        if not term:
            raise InvalidRequestError("Lookup term must not be empty")

        entry = await self._cached_entry(term, session_store)
        if entry is None:
            entry = await self._generate(ContentKind.DICTIONARY_ENTRY, term)
            try:
                await session_store.set(dictionary_key(term), entry.model_dump(mode="json"))
            except PersistenceFailed as e:
                logger.warning(f"Could not cache dictionary entry for {term!r}: {e}")

        await self._record(HistoryKind.DICTIONARY, term, entry)
        return entry

    async def translate(self, text: str) -> TranslationResult:
        """
        Translate text into Chinese or Vietnamese (the opposite of its language).

        Raises:
            InvalidRequestError: Empty text.
            ContentFetchFailed: The provider failed or returned no usable result.
        """
        text = text.strip()
        if not text:
            raise InvalidRequestError("Text to translate must not be empty")

        result = await self._generate(ContentKind.TRANSLATION, text)
        await self._record(HistoryKind.TRANSLATION, text, result)
        return result

    async def _cached_entry(
        self, term: str, session_store: KeyValueStore
    ) -> Optional[TranslationResult]:
        try:
            data = await session_store.get(dictionary_key(term))
        except PersistenceFailed as e:
            logger.warning(f"Could not read cached dictionary entry for {term!r}: {e}")
            return None

        if data is None:
            return None

        try:
            return TranslationResult.model_validate(data)
        except ValidationError:
            logger.warning(f"Ignoring unreadable cached dictionary entry for {term!r}")
            return None

    async def _generate(self, kind: ContentKind, text: str) -> TranslationResult:
        try:
            raw_items = await self.provider.request(kind, None, 1, topic=text)
        except ContentFetchFailed:
            raise
        except Exception as e:
            raise ContentFetchFailed(f"Failed to generate {kind.value}") from e

        payloads = validate_items(kind, raw_items)
        if not payloads:
            raise ContentFetchFailed(f"Provider returned no usable {kind.value}")
        return TranslationResult.model_validate(payloads[0])

    async def _record(self, kind: HistoryKind, summary: str, result: TranslationResult) -> None:
        if self.history is None:
            return
        try:
            await self.history.add_item(kind, summary, result.model_dump(mode="json"))
        except PersistenceFailed as e:
            logger.warning(f"Could not record {kind.value} to history: {e}")
