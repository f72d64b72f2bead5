"""
LLM Service Module

Provides a unified interface to multiple LLM providers via LiteLLM.

Key Components:
- client.py: LLMClient with an async completion method returning raw text,
  finish reason, and LLMUsage for cost tracking

Usage:
    from app.services.llm import get_llm_client, build_messages

    client = get_llm_client()
    result = await client.complete(
        messages=build_messages("Summarize this..."),
        json_mode=True,
        content_id="uuid",
    )
    print(f"Tokens: {result.usage.total_tokens}")
"""

from app.models.llm_usage import LLMUsage
from app.services.llm.client import (
    CompletionResult,
    LLMClient,
    build_messages,
    get_llm_client,
)

__all__ = [
    "CompletionResult",
    "LLMClient",
    "LLMUsage",
    "build_messages",
    "get_llm_client",
]
