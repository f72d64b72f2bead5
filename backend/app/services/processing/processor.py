"""
Content Processor

Runs one generation attempt for one content item. Each invocation is a
linear pass through the stages below, reporting a progress checkpoint as
each stage finishes:

    fetch_input (10) -> build_prompt (20) -> await_rate_limit (30)
    -> call_service (70) -> parse (80) -> validate (90) -> persist (95)

The processor never retries. Every exception raised by a stage is
converted by classify_error() into a GenerationError and re-raised, so the
caller (the processing queue) only has to look at `retryable` and
`halts_pipeline` to decide what happens next.

Cancellation:
    A cancel request is honoured at two points: before the service call
    (nothing has been billed yet) and after validation, just before
    persisting. An in-flight service call is always allowed to finish; its
    result is dropped if the job was cancelled in the meantime.

Usage:
    from app.services.processing.processor import ContentProcessor

    processor = ContentProcessor(store, llm_client, rate_limiter)
    content = await processor.process(content_id, progress_callback=print)
"""

import logging
from typing import Callable, Optional

from app.config.processing import processing_settings
from app.enums.processing import ProcessingStage
from app.models.content import GeneratedContent
from app.services.clock import Clock, SystemClock
from app.services.llm.client import CONTENT_GENERATION_OPERATION, LLMClient, build_messages
from app.services.processing.errors import (
    ContentNotFoundError,
    InvalidContentError,
    JobCancelledError,
    SafetyBlockedError,
    ValidationFailedError,
    classify_error,
)
from app.services.processing.parser import parse_generation_response
from app.services.processing.prompts import build_generation_prompt
from app.services.processing.rate_limiter import RateLimiter
from app.services.processing.validation import (
    score_content_quality,
    validate_generated_content,
    validate_generation_request,
)
from app.services.storage import ContentStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
CancelCheck = Callable[[], bool]

CONTENT_FILTER_FINISH_REASON = "content_filter"


class ContentProcessor:
    """
    Single-attempt generation pipeline for one content item.

    Attributes:
        store: Content store used to fetch input and persist output
        llm_client: Client for the generative service
        rate_limiter: Shared limiter guarding outbound calls
        content_version: Version stamped on generated content
    """

    def __init__(
        self,
        store: ContentStore,
        llm_client: LLMClient,
        rate_limiter: RateLimiter,
        content_version: Optional[int] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.llm_client = llm_client
        self.rate_limiter = rate_limiter
        self.content_version = content_version or processing_settings.CONTENT_VERSION
        self._clock = clock or SystemClock()

    async def process(
        self,
        content_id: str,
        progress_callback: Optional[ProgressCallback] = None,
        is_cancelled: Optional[CancelCheck] = None,
    ) -> GeneratedContent:
        """
        Generate, validate, and persist learning material for a content item.

        Args:
            content_id: Content item to process
            progress_callback: Receives each stage checkpoint (0-99)
            is_cancelled: Polled before the service call and before persisting

        Returns:
            The persisted GeneratedContent

        Raises:
            GenerationError: Classified failure of any stage
        """
        try:
            return await self._run(content_id, progress_callback, is_cancelled)
        except Exception as e:
            error = classify_error(e)
            logger.info(
                f"Processing attempt for {content_id} failed: {error!r}"
            )
            if error is e:
                raise
            raise error from e

    async def _run(
        self,
        content_id: str,
        progress_callback: Optional[ProgressCallback],
        is_cancelled: Optional[CancelCheck],
    ) -> GeneratedContent:
        start = self._clock.monotonic()

        def checkpoint(stage: ProcessingStage) -> None:
            logger.debug(f"[{content_id}] {stage.value} done ({stage.progress}%)")
            if progress_callback:
                progress_callback(stage.progress)

        def check_cancelled() -> None:
            if is_cancelled and is_cancelled():
                raise JobCancelledError(f"Processing of {content_id} was cancelled")

        # Fetch input and run pre-flight checks
        request = await self.store.fetch_content_for_processing(content_id)
        if request is None:
            raise ContentNotFoundError(f"Content not found: {content_id}")

        input_check = validate_generation_request(request)
        if not input_check.is_valid:
            raise InvalidContentError(
                f"Invalid content: {'; '.join(input_check.errors)}",
                details={"errors": input_check.errors},
            )
        checkpoint(ProcessingStage.FETCH_INPUT)

        messages = build_messages(build_generation_prompt(request))
        checkpoint(ProcessingStage.BUILD_PROMPT)

        check_cancelled()
        await self.rate_limiter.acquire()
        checkpoint(ProcessingStage.AWAIT_RATE_LIMIT)

        result = await self.llm_client.complete(
            messages=messages,
            json_mode=True,
            content_id=content_id,
            operation=CONTENT_GENERATION_OPERATION,
        )
        if result.finish_reason == CONTENT_FILTER_FINISH_REASON:
            raise SafetyBlockedError("Content blocked by safety filters")
        checkpoint(ProcessingStage.CALL_SERVICE)

        content = parse_generation_response(
            result.text,
            model_identifier=self.llm_client.model,
            content_version=self.content_version,
        )
        checkpoint(ProcessingStage.PARSE)

        validation = validate_generated_content(content, request.duration_hours)
        if not validation.is_valid:
            raise ValidationFailedError(
                f"Content validation failed: {'; '.join(validation.errors)}",
                validation_result=validation,
            )
        for warning in validation.warnings:
            logger.warning(f"[{content_id}] {warning}")

        quality = score_content_quality(content, request.duration_hours)
        logger.info(f"[{content_id}] Content quality score: {quality.score}/100")
        checkpoint(ProcessingStage.VALIDATE)

        check_cancelled()
        content.metadata.processing_time_ms = int((self._clock.monotonic() - start) * 1000)
        content.metadata.total_tokens = result.usage.total_tokens
        await self.store.save_generated_content(content_id, content)
        checkpoint(ProcessingStage.PERSIST)

        logger.info(
            f"Generated {len(content.questions)} questions for {content_id} "
            f"in {content.metadata.processing_time_ms}ms"
        )
        return content
