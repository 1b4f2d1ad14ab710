"""
Structural validation of generated content.

Generated batches routinely contain a few malformed items. Each item is
validated against the payload model for its kind plus kind-specific rules;
failing items are discarded (never repaired) and the discard count is logged.

Kind-specific rules:
- writing_character: hanzi must be exactly one character
- exam_question: exactly EXAM_OPTION_COUNT options, correct_answer among them
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from hsk_tutor.config import settings
from hsk_tutor.enums import ContentKind
from hsk_tutor.models.content import PAYLOAD_MODELS, ExamQuestion, WritingCharacter

logger = logging.getLogger(__name__)


def _check_writing_character(item: WritingCharacter) -> Optional[str]:
    if len(item.hanzi) != 1:
        return f"hanzi {item.hanzi!r} is not a single character"
    return None


def _check_exam_question(item: ExamQuestion) -> Optional[str]:
    if len(item.options) != settings.EXAM_OPTION_COUNT:
        return f"expected {settings.EXAM_OPTION_COUNT} options, got {len(item.options)}"
    if item.correct_answer not in item.options:
        return "correct_answer is not one of the options"
    return None


_CHECKS = {
    ContentKind.WRITING_CHARACTER: _check_writing_character,
    ContentKind.EXAM_QUESTION: _check_exam_question,
}


def validate_item(kind: ContentKind, raw: Any) -> Optional[dict[str, Any]]:
    """
    Validate one raw item.

    Returns:
        The normalized payload dict, or None if the item is invalid.
    """
    if not isinstance(raw, dict):
        return None

    model = PAYLOAD_MODELS[kind]
    try:
        item = model.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Discarding {kind.value} item: {e.error_count()} validation error(s)")
        return None

    check = _CHECKS.get(kind)
    if check is not None:
        problem = check(item)
        if problem:
            logger.debug(f"Discarding {kind.value} item: {problem}")
            return None

    return item.model_dump(mode="json")


def validate_items(
    kind: ContentKind,
    raw_items: list[Any],
    level: Optional[int] = None,
) -> list[dict[str, Any]]:
    """
    Validate a generated batch, discarding invalid items.

    Args:
        kind: Content kind of the batch
        raw_items: Items as returned by the provider
        level: Requested level, filled into vocabulary items that omit it

    Returns:
        Valid payloads in their original order (possibly empty).
    """
    valid = []
    for raw in raw_items:
        if kind == ContentKind.VOCABULARY and isinstance(raw, dict) and level is not None:
            raw = {**raw, "level": raw.get("level") or level}
        payload = validate_item(kind, raw)
        if payload is not None:
            valid.append(payload)

    discarded = len(raw_items) - len(valid)
    if discarded:
        logger.info(f"Discarded {discarded}/{len(raw_items)} invalid {kind.value} item(s)")

    return valid
