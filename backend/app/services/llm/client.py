"""
Unified LLM Client supporting multiple providers via LiteLLM.

LiteLLM provides a unified interface to 100+ LLM providers using
the format "provider/model-name". Key features used here:
- Native async completions
- JSON response mode
- Built-in token/cost reporting via LLMUsage

This client deliberately does NOT retry. Retry policy belongs to the
processing queue, which decides from the classified error whether a job
is re-attempted.

See: https://docs.litellm.ai/

Usage:
    from app.services.llm import get_llm_client

    client = get_llm_client()
    result = await client.complete(
        messages=[{"role": "user", "content": "Summarize..."}],
        json_mode=True,
        content_id="uuid-here",
    )
    print(f"Cost: ${result.usage.total_cost:.4f}")
"""

import logging
import os
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import litellm
from litellm import acompletion

from app.config.processing import processing_settings
from app.config.settings import settings
from app.models.llm_usage import (
    LLMUsage,
    create_error_usage,
    extract_usage_from_response,
)

logger = logging.getLogger(__name__)

# Configure LiteLLM
litellm.drop_params = True  # Drop unsupported params instead of erroring
if settings.DEBUG:
    os.environ["LITELLM_LOG"] = "DEBUG"

CONTENT_GENERATION_OPERATION = "content_generation"


@dataclass
class CompletionResult:
    """
    Raw completion returned to the caller.

    Attributes:
        text: Message content, None if the provider returned nothing
        finish_reason: Provider finish reason ("stop", "length", "content_filter", ...)
        usage: Token and cost accounting
    """

    text: Optional[str]
    finish_reason: Optional[str]
    usage: LLMUsage


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


def _adjust_temperature_for_model(model: str, temperature: float) -> float:
    """
    Adjust temperature based on model requirements.

    Gemini 3 models require temperature=1.0 to avoid infinite loops and
    degraded reasoning performance.
    """
    if "gemini-3" in model.lower():
        return 1.0
    return temperature


class LLMClient:
    """
    Thin async wrapper over litellm.acompletion with usage tracking.

    Attributes:
        model: Model identifier in LiteLLM format (provider/model-name)
        temperature: Default sampling temperature
        max_tokens: Default maximum tokens in the response
        timeout: Per-call timeout in seconds
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        self.model = model or processing_settings.MODEL_CONTENT_GENERATION or settings.TEXT_MODEL
        self.temperature = (
            temperature
            if temperature is not None
            else processing_settings.GENERATION_TEMPERATURE
        )
        self.max_tokens = max_tokens or processing_settings.GENERATION_MAX_TOKENS
        self.timeout = timeout or processing_settings.LLM_TIMEOUT_SECONDS
        self._validate_api_keys()

    def _validate_api_keys(self) -> None:
        """Warn when no provider key is configured."""
        available_keys = []

        if os.getenv("GEMINI_API_KEY") or settings.GEMINI_API_KEY:
            available_keys.append("Google/Gemini")
        if os.getenv("OPENAI_API_KEY") or settings.OPENAI_API_KEY:
            available_keys.append("OpenAI")
        if os.getenv("ANTHROPIC_API_KEY") or settings.ANTHROPIC_API_KEY:
            available_keys.append("Anthropic")

        if not available_keys:
            logger.warning(
                "No LLM API keys configured. Set at least one of: "
                "GEMINI_API_KEY, OPENAI_API_KEY, ANTHROPIC_API_KEY"
            )
        else:
            logger.info(f"LLM client initialized with providers: {available_keys}")

    async def complete(
        self,
        messages: list[dict],
        json_mode: bool = False,
        content_id: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        operation: str = CONTENT_GENERATION_OPERATION,
    ) -> CompletionResult:
        """
        Generate a completion.

        Args:
            messages: Chat messages in OpenAI format
            json_mode: Request structured JSON output (text is returned undecoded)
            content_id: Content id for cost attribution
            temperature: Override the default temperature
            max_tokens: Override the default max tokens
            operation: Operation name for cost attribution

        Returns:
            CompletionResult with raw text, finish reason, and usage

        Raises:
            litellm exceptions: Propagated unchanged for classification upstream
        """
        model = self.model
        kwargs = {
            "model": model,
            "messages": messages,
            "temperature": _adjust_temperature_for_model(
                model, self.temperature if temperature is None else temperature
            ),
            "max_tokens": max_tokens or self.max_tokens,
            "timeout": self.timeout,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        start_time = time.perf_counter()

        try:
            response = await acompletion(**kwargs)
        except Exception as e:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            usage = create_error_usage(
                model=model,
                latency_ms=latency_ms,
                error_message=str(e),
                content_id=content_id,
                operation=operation,
            )
            logger.error(
                f"LLM completion failed after {latency_ms}ms: {e} (model={model})",
                extra={"llm_usage": usage.to_dict()},
            )
            raise

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        usage = extract_usage_from_response(
            response=response,
            model=model,
            latency_ms=latency_ms,
            content_id=content_id,
            operation=operation,
        )
        logger.debug(
            f"LLM completion [{model}] - Cost: ${usage.total_cost:.4f}, "
            f"Tokens: {usage.total_tokens}, Latency: {latency_ms}ms"
        )

        choices = getattr(response, "choices", None) or []
        if not choices:
            return CompletionResult(text=None, finish_reason=None, usage=usage)

        choice = choices[0]
        return CompletionResult(
            text=choice.message.content,
            finish_reason=getattr(choice, "finish_reason", None),
            usage=usage,
        )


@lru_cache()
def get_llm_client() -> LLMClient:
    """Get cached LLM client configured from settings."""
    return LLMClient()
