"""LLM client package."""

from hsk_tutor.services.llm.client import (
    LLMClient,
    build_messages,
    get_llm_client,
    reset_llm_client,
)

__all__ = ["LLMClient", "build_messages", "get_llm_client", "reset_llm_client"]
