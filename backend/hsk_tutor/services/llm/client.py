"""
Unified LLM Client supporting multiple providers via LiteLLM.

LiteLLM provides a unified interface to 100+ LLM providers using
the format "provider/model-name". Key features:
- Content-kind-based model selection
- Built-in cost tracking via LLMUsage
- Automatic retries with exponential backoff
- Native async support

See: https://docs.litellm.ai/

Usage:
    from hsk_tutor.enums import ContentKind
    from hsk_tutor.services.llm import get_llm_client

    client = get_llm_client()

    # Async completion with usage tracking
    data, usage = await client.complete(
        kind=ContentKind.VOCABULARY,
        messages=[{"role": "user", "content": "Generate..."}],
        json_mode=True,
    )
    print(f"Cost: ${usage.total_cost:.4f}")
"""

import json
import logging
import os
import time
from typing import Any, Optional, Union

import litellm
from litellm import acompletion
from tenacity import retry, stop_after_attempt, wait_exponential

from hsk_tutor.config.settings import settings
from hsk_tutor.enums import ContentKind
from hsk_tutor.models.llm_usage import (
    LLMUsage,
    create_error_usage,
    extract_usage_from_response,
)

logger = logging.getLogger(__name__)

# Configure LiteLLM
litellm.drop_params = True  # Drop unsupported params instead of erroring
if settings.DEBUG:
    os.environ["LITELLM_LOG"] = "DEBUG"


def build_messages(
    prompt: str,
    system_prompt: Optional[str] = None,
) -> list[dict[str, str]]:
    """
    Build messages list from prompt and optional system prompt.

    Args:
        prompt: User prompt text
        system_prompt: Optional system prompt

    Returns:
        List of message dicts for LLM API
    """
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence some models add in JSON mode."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


class LLMClient:
    """
    LLM client with content-kind-based model selection and usage tracking.

    Every content kind uses TEXT_MODEL unless mapped in MODELS.

    Attributes:
        MODELS: ContentKind -> model override mapping
    """

    MODELS: dict[ContentKind, str] = {}

    def __init__(self):
        """Initialize the LLM client and validate API keys."""
        self._validate_api_keys()

    def _validate_api_keys(self):
        """Warn when no provider API key is configured."""
        available_keys = []

        if os.getenv("GEMINI_API_KEY") or settings.GEMINI_API_KEY:
            available_keys.append("Google/Gemini")
        if os.getenv("OPENAI_API_KEY") or settings.OPENAI_API_KEY:
            available_keys.append("OpenAI")

        if not available_keys:
            logger.warning(
                "No LLM API keys configured. Set at least one of: "
                "GEMINI_API_KEY, OPENAI_API_KEY"
            )
        else:
            logger.info(f"LLM client initialized with providers: {available_keys}")

    def get_model_for_kind(self, kind: Union[ContentKind, str]) -> str:
        """
        Get the configured model for a content kind.

        Returns:
            Model identifier in LiteLLM format (provider/model-name)
        """
        if isinstance(kind, str):
            try:
                kind = ContentKind(kind)
            except ValueError:
                logger.warning(f"Unknown content kind: {kind}, using default model")
                return settings.TEXT_MODEL
        return self.MODELS.get(kind, settings.TEXT_MODEL)

    @retry(
        stop=stop_after_attempt(settings.LLM_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        reraise=True,
    )
    async def complete(
        self,
        kind: Union[ContentKind, str],
        messages: list[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        model: Optional[str] = None,
    ) -> tuple[Union[str, Any], LLMUsage]:
        """
        Generate a completion using the model configured for the content kind.

        Args:
            kind: ContentKind being generated, for model selection and attribution
            messages: Chat messages in OpenAI format
            temperature: Sampling temperature (default: settings.LLM_TEMPERATURE)
            max_tokens: Maximum tokens in response (default: settings.LLM_MAX_TOKENS)
            json_mode: Request structured JSON output and parse response as JSON.
                Returns parsed dict/list. JSONDecodeError triggers retry.
            model: Optional model override

        Returns:
            Tuple of (response_text or parsed JSON if json_mode, LLMUsage)

        Raises:
            json.JSONDecodeError: If json_mode=True and response is not valid JSON
                after all retries
            Exception: If completion fails after retries
        """
        model = model or self.get_model_for_kind(kind)
        kind_name = kind.value if isinstance(kind, ContentKind) else str(kind)

        kwargs = {
            "model": model,
            "messages": messages,
            "temperature": settings.LLM_TEMPERATURE if temperature is None else temperature,
            "max_tokens": max_tokens or settings.LLM_MAX_TOKENS,
        }

        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        start_time = time.perf_counter()

        try:
            response = await acompletion(**kwargs)
            latency_ms = int((time.perf_counter() - start_time) * 1000)

            usage = extract_usage_from_response(
                response=response,
                model=model,
                latency_ms=latency_ms,
                content_kind=kind_name,
            )

            logger.debug(
                f"LLM completion [{model}] {kind_name} - Cost: ${usage.total_cost:.4f}, "
                f"Tokens: {usage.total_tokens}, Latency: {latency_ms}ms"
            )

            content = response.choices[0].message.content or ""

            if json_mode:
                # JSONDecodeError will trigger @retry
                content = json.loads(strip_code_fences(content))

            return content, usage

        except json.JSONDecodeError:
            logger.warning(f"JSON decode error, will retry (model={model})")
            raise
        except Exception as e:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            logger.error(f"LLM completion failed: {e} (model={model})")

            usage = create_error_usage(
                model=model,
                latency_ms=latency_ms,
                error_message=str(e),
                content_kind=kind_name,
            )
            logger.debug(f"Failed request usage: {usage.to_dict()}")
            raise


# Singleton instance
_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """
    Get or create singleton LLM client.

    Returns:
        Shared LLMClient instance
    """
    global _client
    if _client is None:
        _client = LLMClient()
    return _client


def reset_llm_client():
    """Reset the singleton client (useful for testing)."""
    global _client
    _client = None
