"""
LLM Usage and Cost Tracking Types

Defines the LLMUsage dataclass and helper functions for extracting
cost/token information from LiteLLM responses.

Usage:
    from hsk_tutor.models.llm_usage import LLMUsage, extract_usage_from_response

    usage = extract_usage_from_response(
        response=litellm_response,
        model="gemini/gemini-2.5-flash",
        latency_ms=1234,
        content_kind="vocabulary",
    )
"""

import logging
import uuid
from dataclasses import asdict, dataclass, field
from typing import Optional

import litellm

logger = logging.getLogger(__name__)


@dataclass
class LLMUsage:
    """
    Structured LLM usage data returned from completion calls.

    Attributes:
        request_id: Unique identifier for this request (auto-generated UUID)
        model: Full model identifier (e.g., "gemini/gemini-2.5-flash")
        provider: Extracted provider name (e.g., "gemini", "openai")
        content_kind: Kind of content the request generated
        prompt_tokens: Number of input tokens
        completion_tokens: Number of output tokens
        total_tokens: Total tokens used
        cost_usd: Total cost in USD
        latency_ms: Request latency in milliseconds
        success: Whether the request succeeded
        error_message: Error message if request failed
    """

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    model: str = ""
    provider: str = ""
    content_kind: Optional[str] = None

    # Token usage
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    # Cost in USD
    cost_usd: Optional[float] = None

    # Performance
    latency_ms: Optional[int] = None
    success: bool = True
    error_message: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for logging or serialization."""
        return asdict(self)

    @property
    def total_cost(self) -> float:
        """Return total cost, defaulting to 0 if not available."""
        return self.cost_usd or 0.0

    def __str__(self) -> str:
        cost_str = f"${self.cost_usd:.4f}" if self.cost_usd else "N/A"
        tokens_str = str(self.total_tokens) if self.total_tokens else "N/A"
        return f"LLMUsage({self.model}, {self.content_kind}, cost={cost_str}, tokens={tokens_str})"


def extract_provider(model: str) -> str:
    """
    Extract provider name from model identifier.

    Args:
        model: Full model identifier (e.g., "gemini/gemini-2.5-flash")

    Returns:
        Provider name (e.g., "gemini") or "unknown" if not parseable
    """
    if "/" in model:
        return model.split("/")[0]
    return "unknown"


def extract_usage_from_response(
    response,
    model: str,
    latency_ms: int,
    content_kind: Optional[str] = None,
) -> LLMUsage:
    """
    Extract usage and cost information from a LiteLLM response.

    Args:
        response: LiteLLM response object
        model: Model identifier used for the request
        latency_ms: Measured latency in milliseconds
        content_kind: Optional content kind for attribution

    Returns:
        LLMUsage dataclass populated with extracted information
    """
    usage = LLMUsage(
        model=model,
        provider=extract_provider(model),
        content_kind=content_kind,
        latency_ms=latency_ms,
    )

    if getattr(response, "usage", None):
        usage.prompt_tokens = getattr(response.usage, "prompt_tokens", None)
        usage.completion_tokens = getattr(response.usage, "completion_tokens", None)
        usage.total_tokens = getattr(response.usage, "total_tokens", None)

    hidden = getattr(response, "_hidden_params", None)
    if isinstance(hidden, dict):
        usage.cost_usd = hidden.get("response_cost")

    # Fallback: calculate cost using litellm.completion_cost if not in response
    if usage.cost_usd is None and usage.total_tokens:
        try:
            usage.cost_usd = litellm.completion_cost(completion_response=response, model=model)
        except Exception as e:
            logger.debug(f"Cost calculation not available for {model}: {e}")

    return usage


def create_error_usage(
    model: str,
    latency_ms: int,
    error_message: str,
    content_kind: Optional[str] = None,
) -> LLMUsage:
    """
    Create an LLMUsage record for a failed request.

    Returns:
        LLMUsage with success=False and error details
    """
    return LLMUsage(
        model=model,
        provider=extract_provider(model),
        content_kind=content_kind,
        latency_ms=latency_ms,
        success=False,
        error_message=error_message,
    )
