"""
Generation Error Taxonomy

Every failure inside a processor invocation is converted into a
GenerationError subclass before it reaches the queue. The queue never
inspects anything except `retryable` (should the job be re-attempted) and
`halts_pipeline` (should the queue stop admitting jobs altogether).

Classification order in classify_error():
1. Already a GenerationError -> returned unchanged
2. LiteLLM exception classes (most specific first)
3. Message keywords (safety filters, context length)
4. HTTP status code carried by the exception
5. Anything else -> UnknownGenerationError (retryable)

Usage:
    from app.services.processing.errors import classify_error

    try:
        await llm_client.complete(...)
    except Exception as e:
        raise classify_error(e) from e
"""

import asyncio
from typing import Any, Optional

from litellm import exceptions as llm_exceptions

from app.enums.processing import GenerationErrorCode


class GenerationError(Exception):
    """
    Base exception for content generation failures.

    Provides consistent error handling with:
    - Error code for categorization
    - Optional HTTP status code from the provider
    - Retry and halt classification for the queue
    - Optional details for debugging

    Example:
        raise ServerError("Gemini API server error", status_code=503)
    """

    error_code: GenerationErrorCode = GenerationErrorCode.UNKNOWN_ERROR
    status_code: Optional[int] = None
    retryable: bool = False
    halts_pipeline: bool = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable
        self.details = details or {}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.error_code.value}, "
            f"retryable={self.retryable}, message={self.message!r})"
        )


class InvalidRequestError(GenerationError):
    """Malformed input to the generative service."""

    error_code = GenerationErrorCode.INVALID_REQUEST
    status_code = 400


class UnauthorizedError(GenerationError):
    """Bad credentials. Every further call would fail the same way."""

    error_code = GenerationErrorCode.INVALID_API_KEY
    status_code = 401
    halts_pipeline = True


class ForbiddenError(GenerationError):
    error_code = GenerationErrorCode.ACCESS_FORBIDDEN
    status_code = 403


class RateLimitExceededError(GenerationError):
    """The provider rejected the call despite local pacing."""

    error_code = GenerationErrorCode.RATE_LIMIT_EXCEEDED
    status_code = 429
    retryable = True


class ServerError(GenerationError):
    """Provider-side or transport fault (5xx, timeouts, dropped connections)."""

    error_code = GenerationErrorCode.SERVER_ERROR
    status_code = 500
    retryable = True


class SafetyBlockedError(GenerationError):
    """Content rejected by the provider's policy filters; needs a human."""

    error_code = GenerationErrorCode.SAFETY_BLOCKED
    status_code = 400


class ContextTooLongError(GenerationError):
    """Input exceeds the provider's context window."""

    error_code = GenerationErrorCode.CONTEXT_TOO_LONG
    status_code = 400


class MalformedResponseError(GenerationError):
    error_code = GenerationErrorCode.INVALID_JSON


class EmptyResponseError(GenerationError):
    error_code = GenerationErrorCode.EMPTY_RESPONSE


class ValidationFailedError(GenerationError):
    """Parsed content missed its structural targets."""

    error_code = GenerationErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, validation_result=None, **kwargs):
        super().__init__(message, **kwargs)
        self.validation_result = validation_result


class ContentNotFoundError(GenerationError):
    error_code = GenerationErrorCode.CONTENT_NOT_FOUND
    status_code = 404


class InvalidContentError(GenerationError):
    """Stored content failed pre-flight checks (empty title, short transcript...)."""

    error_code = GenerationErrorCode.INVALID_CONTENT


class QuotaExceededError(GenerationError):
    """Local daily cap reached. Hard stop until the next UTC day."""

    error_code = GenerationErrorCode.DAILY_LIMIT_EXCEEDED
    status_code = 429
    halts_pipeline = True


class JobCancelledError(GenerationError):
    error_code = GenerationErrorCode.JOB_CANCELLED


class UnknownGenerationError(GenerationError):
    """Unclassified fault; treated as transient."""

    error_code = GenerationErrorCode.UNKNOWN_ERROR
    retryable = True


# =============================================================================
# Queue errors (caller mistakes, never attached to a job)
# =============================================================================


class QueueError(Exception):
    """Base exception for processing queue misuse."""


class JobNotFoundError(QueueError):
    def __init__(self, job_id: str):
        super().__init__(f"Processing job not found: {job_id}")
        self.job_id = job_id


class JobAlreadyActiveError(QueueError):
    """A content item already has a pending, processing, or retrying job."""

    def __init__(self, content_id: str, job_id: str):
        super().__init__(
            f"Content {content_id} already has an active processing job ({job_id})"
        )
        self.content_id = content_id
        self.job_id = job_id


# =============================================================================
# Classification
# =============================================================================

# Checked in order: subclasses must precede their parents
# (ContextWindowExceededError and ContentPolicyViolationError are BadRequestErrors).
_LITELLM_ERROR_MAP: list[tuple[type[Exception], type[GenerationError], str]] = [
    (
        llm_exceptions.ContextWindowExceededError,
        ContextTooLongError,
        "Content exceeds model context limit",
    ),
    (
        llm_exceptions.ContentPolicyViolationError,
        SafetyBlockedError,
        "Content blocked by safety filters",
    ),
    (llm_exceptions.AuthenticationError, UnauthorizedError, "Invalid API key"),
    (llm_exceptions.PermissionDeniedError, ForbiddenError, "API access forbidden"),
    (llm_exceptions.RateLimitError, RateLimitExceededError, "API rate limit exceeded"),
    (llm_exceptions.Timeout, ServerError, "API request timed out"),
    (llm_exceptions.APIConnectionError, ServerError, "API connection failed"),
    (llm_exceptions.ServiceUnavailableError, ServerError, "API service unavailable"),
    (llm_exceptions.InternalServerError, ServerError, "API server error"),
    (llm_exceptions.BadRequestError, InvalidRequestError, "Invalid request to API"),
]

_STATUS_ERROR_MAP: dict[int, tuple[type[GenerationError], str]] = {
    400: (InvalidRequestError, "Invalid request to API"),
    401: (UnauthorizedError, "Invalid API key"),
    403: (ForbiddenError, "API access forbidden"),
    429: (RateLimitExceededError, "API rate limit exceeded"),
}

_SAFETY_KEYWORDS = ("SAFETY", "blocked")
_CONTEXT_KEYWORDS = ("context length", "token limit")


def _with_cause(error_cls: type[GenerationError], summary: str, exc: Exception):
    detail = str(exc).strip()
    message = f"{summary}: {detail}" if detail else summary
    return error_cls(message, details={"cause": type(exc).__name__})


def classify_error(exc: BaseException) -> GenerationError:
    """
    Convert any exception raised during processing into a GenerationError.

    Args:
        exc: Exception raised by a pipeline stage or the provider client

    Returns:
        GenerationError subclass with retry/halt classification
    """
    if isinstance(exc, GenerationError):
        return exc

    if isinstance(exc, asyncio.TimeoutError):
        return _with_cause(ServerError, "API request timed out", exc)

    for exc_type, error_cls, summary in _LITELLM_ERROR_MAP:
        if isinstance(exc, exc_type):
            return _with_cause(error_cls, summary, exc)

    message = str(exc)

    # Keyword checks run before generic status mapping: a 400 carrying a
    # safety verdict is a SafetyBlockedError, not an InvalidRequestError.
    if any(keyword in message for keyword in _SAFETY_KEYWORDS):
        return _with_cause(SafetyBlockedError, "Content blocked by safety filters", exc)
    if any(keyword in message.lower() for keyword in _CONTEXT_KEYWORDS):
        return _with_cause(ContextTooLongError, "Content exceeds model context limit", exc)

    status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if isinstance(status, int):
        if status in _STATUS_ERROR_MAP:
            error_cls, summary = _STATUS_ERROR_MAP[status]
            return _with_cause(error_cls, summary, exc)
        if status >= 500:
            error = _with_cause(ServerError, "API server error", exc)
            error.status_code = status
            return error

    return UnknownGenerationError(message or type(exc).__name__)
