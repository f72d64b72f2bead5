"""
Unit tests for the LiteLLM client wrapper and usage extraction.

litellm.acompletion is patched; no network calls are made.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from litellm import exceptions as llm_exceptions

from app.models.llm_usage import extract_provider, extract_usage_from_response
from app.services.llm.client import LLMClient, build_messages


def make_response(content, finish_reason="stop", total_tokens=1500, cost=0.0123):
    return SimpleNamespace(
        choices=[
            SimpleNamespace(
                message=SimpleNamespace(content=content),
                finish_reason=finish_reason,
            )
        ],
        usage=SimpleNamespace(
            prompt_tokens=total_tokens - 500,
            completion_tokens=500,
            total_tokens=total_tokens,
        ),
        _hidden_params={"response_cost": cost},
    )


@pytest.fixture
def client() -> LLMClient:
    return LLMClient(model="gemini/gemini-2.5-pro", temperature=0.3, max_tokens=4096, timeout=60)


# =============================================================================
# Completion calls
# =============================================================================


class TestComplete:
    """Tests for LLMClient.complete."""

    @pytest.mark.asyncio
    async def test_returns_text_and_usage(self, client):
        with patch(
            "app.services.llm.client.acompletion",
            new_callable=AsyncMock,
            return_value=make_response('{"quickSummary": []}'),
        ):
            result = await client.complete(
                messages=build_messages("Summarize"), content_id="content-1"
            )

        assert result.text == '{"quickSummary": []}'
        assert result.finish_reason == "stop"
        assert result.usage.total_tokens == 1500
        assert result.usage.cost_usd == pytest.approx(0.0123)
        assert result.usage.content_id == "content-1"
        assert result.usage.provider == "gemini"

    @pytest.mark.asyncio
    async def test_json_mode_sets_response_format(self, client):
        with patch(
            "app.services.llm.client.acompletion",
            new_callable=AsyncMock,
            return_value=make_response("{}"),
        ) as mock_completion:
            await client.complete(messages=build_messages("Summarize"), json_mode=True)

        kwargs = mock_completion.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["model"] == "gemini/gemini-2.5-pro"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 4096
        assert kwargs["timeout"] == 60

    @pytest.mark.asyncio
    async def test_plain_mode_omits_response_format(self, client):
        with patch(
            "app.services.llm.client.acompletion",
            new_callable=AsyncMock,
            return_value=make_response("hello"),
        ) as mock_completion:
            await client.complete(messages=build_messages("Say hello"))

        assert "response_format" not in mock_completion.call_args.kwargs

    @pytest.mark.asyncio
    async def test_gemini_3_forces_temperature(self):
        client = LLMClient(model="gemini/gemini-3-pro-preview", temperature=0.2)
        with patch(
            "app.services.llm.client.acompletion",
            new_callable=AsyncMock,
            return_value=make_response("{}"),
        ) as mock_completion:
            await client.complete(messages=build_messages("Summarize"))

        assert mock_completion.call_args.kwargs["temperature"] == 1.0

    @pytest.mark.asyncio
    async def test_content_filter_finish_reason_passed_through(self, client):
        with patch(
            "app.services.llm.client.acompletion",
            new_callable=AsyncMock,
            return_value=make_response(None, finish_reason="content_filter"),
        ):
            result = await client.complete(messages=build_messages("Summarize"))

        assert result.text is None
        assert result.finish_reason == "content_filter"

    @pytest.mark.asyncio
    async def test_no_choices(self, client):
        response = make_response("unused")
        response.choices = []
        with patch(
            "app.services.llm.client.acompletion",
            new_callable=AsyncMock,
            return_value=response,
        ):
            result = await client.complete(messages=build_messages("Summarize"))

        assert result.text is None
        assert result.finish_reason is None

    @pytest.mark.asyncio
    async def test_provider_errors_propagate_unchanged(self, client):
        error = llm_exceptions.RateLimitError(
            message="quota", llm_provider="gemini", model="gemini/gemini-2.5-pro"
        )
        with patch(
            "app.services.llm.client.acompletion",
            new_callable=AsyncMock,
            side_effect=error,
        ) as mock_completion:
            with pytest.raises(llm_exceptions.RateLimitError):
                await client.complete(messages=build_messages("Summarize"))

        assert mock_completion.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_call_logs_usage_record(self, client, caplog):
        error = llm_exceptions.RateLimitError(
            message="quota exhausted", llm_provider="gemini", model="gemini/gemini-2.5-pro"
        )
        with patch(
            "app.services.llm.client.acompletion",
            new_callable=AsyncMock,
            side_effect=error,
        ):
            with caplog.at_level("ERROR", logger="app.services.llm.client"):
                with pytest.raises(llm_exceptions.RateLimitError):
                    await client.complete(
                        messages=build_messages("Summarize"),
                        content_id="content-1",
                        operation="content_generation",
                    )

        record = next(r for r in caplog.records if r.levelname == "ERROR")
        assert record.llm_usage["success"] is False
        assert record.llm_usage["provider"] == "gemini"
        assert record.llm_usage["content_id"] == "content-1"
        assert record.llm_usage["operation"] == "content_generation"
        assert "quota exhausted" in record.llm_usage["error_message"]


# =============================================================================
# Helpers
# =============================================================================


class TestHelpers:
    """Tests for message building and usage extraction."""

    def test_build_messages_with_system_prompt(self):
        messages = build_messages("Question?", system_prompt="Be concise.")

        assert messages == [
            {"role": "system", "content": "Be concise."},
            {"role": "user", "content": "Question?"},
        ]

    def test_build_messages_without_system_prompt(self):
        assert build_messages("Question?") == [{"role": "user", "content": "Question?"}]

    @pytest.mark.parametrize(
        "model,provider",
        [
            ("gemini/gemini-2.5-pro", "gemini"),
            ("openai/gpt-4o", "openai"),
            ("gpt-4o", "unknown"),
        ],
    )
    def test_extract_provider(self, model, provider):
        assert extract_provider(model) == provider

    def test_usage_without_token_counts(self):
        response = SimpleNamespace(usage=None, _hidden_params={})

        usage = extract_usage_from_response(
            response, model="gemini/gemini-2.5-pro", latency_ms=12
        )

        assert usage.total_tokens is None
        assert usage.cost_usd is None
        assert usage.total_cost == 0.0
        assert usage.latency_ms == 12
