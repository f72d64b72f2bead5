"""
Unit tests for generation error classification.
"""

import asyncio

import pytest
from litellm import exceptions as llm_exceptions

from app.enums.processing import GenerationErrorCode
from app.services.processing.errors import (
    ContextTooLongError,
    ForbiddenError,
    InvalidRequestError,
    RateLimitExceededError,
    SafetyBlockedError,
    ServerError,
    UnauthorizedError,
    UnknownGenerationError,
    ValidationFailedError,
    classify_error,
)


class ProviderHTTPError(Exception):
    """Exception carrying an HTTP status code, like most SDK errors."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def llm_error(cls, message: str = "provider said no"):
    return cls(message=message, model="gemini/gemini-2.5-pro", llm_provider="gemini")


# =============================================================================
# LiteLLM exceptions
# =============================================================================


class TestClassifyLiteLLMErrors:
    """Tests for mapping litellm exception classes."""

    @pytest.mark.parametrize(
        "exc_cls,expected",
        [
            (llm_exceptions.AuthenticationError, UnauthorizedError),
            (llm_exceptions.RateLimitError, RateLimitExceededError),
            (llm_exceptions.ServiceUnavailableError, ServerError),
            (llm_exceptions.ContextWindowExceededError, ContextTooLongError),
            (llm_exceptions.ContentPolicyViolationError, SafetyBlockedError),
            (llm_exceptions.BadRequestError, InvalidRequestError),
        ],
    )
    def test_maps_exception_class(self, exc_cls, expected):
        error = classify_error(llm_error(exc_cls))

        assert type(error) is expected

    def test_message_keeps_provider_detail(self):
        error = classify_error(llm_error(llm_exceptions.RateLimitError, "quota for minute"))

        assert error.message.startswith("API rate limit exceeded: ")
        assert "quota for minute" in error.message
        assert error.details["cause"] == "RateLimitError"


# =============================================================================
# Status codes and keywords
# =============================================================================


class TestClassifyByStatusAndMessage:
    """Tests for exceptions outside the litellm hierarchy."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (400, InvalidRequestError),
            (401, UnauthorizedError),
            (403, ForbiddenError),
            (429, RateLimitExceededError),
            (500, ServerError),
            (502, ServerError),
            (503, ServerError),
        ],
    )
    def test_maps_status_code(self, status, expected):
        error = classify_error(ProviderHTTPError("request failed", status))

        assert type(error) is expected

    def test_server_error_keeps_actual_status(self):
        error = classify_error(ProviderHTTPError("bad gateway", 502))

        assert error.status_code == 502

    def test_safety_keyword_beats_status(self):
        error = classify_error(ProviderHTTPError("Response blocked due to SAFETY", 400))

        assert isinstance(error, SafetyBlockedError)

    def test_context_keyword(self):
        error = classify_error(RuntimeError("Input exceeds maximum context length"))

        assert isinstance(error, ContextTooLongError)

    def test_timeout_is_server_error(self):
        error = classify_error(asyncio.TimeoutError())

        assert isinstance(error, ServerError)
        assert error.message == "API request timed out"

    def test_unclassified_error_is_retryable(self):
        error = classify_error(RuntimeError("socket hiccup"))

        assert isinstance(error, UnknownGenerationError)
        assert error.retryable is True
        assert error.message == "socket hiccup"

    def test_generation_errors_pass_through(self):
        original = ValidationFailedError("Content validation failed: too few bullets")

        assert classify_error(original) is original


# =============================================================================
# Retry and halt flags
# =============================================================================


class TestErrorFlags:
    """Tests for the flags the queue acts on."""

    @pytest.mark.parametrize(
        "error_cls,retryable,halts",
        [
            (InvalidRequestError, False, False),
            (UnauthorizedError, False, True),
            (ForbiddenError, False, False),
            (RateLimitExceededError, True, False),
            (ServerError, True, False),
            (SafetyBlockedError, False, False),
            (ContextTooLongError, False, False),
            (ValidationFailedError, False, False),
            (UnknownGenerationError, True, False),
        ],
    )
    def test_flags(self, error_cls, retryable, halts):
        error = error_cls("failure")

        assert error.retryable is retryable
        assert error.halts_pipeline is halts

    def test_retryable_can_be_overridden(self):
        error = ServerError("maintenance window", retryable=False)

        assert error.retryable is False
        assert ServerError.retryable is True

    def test_repr_includes_code(self):
        error = SafetyBlockedError("blocked")

        assert GenerationErrorCode.SAFETY_BLOCKED.value in repr(error)
