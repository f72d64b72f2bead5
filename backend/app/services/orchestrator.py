"""
Processing Orchestrator

Content-level operations on top of the processing queue: pre-flight checks
before submission, bulk submission of pending content, manual retries,
statistics, and recovery of content left in the processing state by a
crashed run.

The orchestrator never retries anything itself; it only decides what gets
submitted to the queue and keeps the stored processing status consistent
with those decisions.

Usage:
    from app.services.factory import build_processing_queue
    from app.services.orchestrator import ProcessingOrchestrator

    queue = build_processing_queue(store)
    orchestrator = ProcessingOrchestrator(store, queue)
    job_id = await orchestrator.process_content(content_id)
"""

import logging
from datetime import timedelta
from typing import Optional

from app.config.processing import processing_settings
from app.enums.content import ContentSource, ProcessingStatus
from app.models.processing import (
    BatchSubmitResult,
    CleanupResult,
    PendingRunResult,
    ProcessingOverview,
    ProcessingStats,
)
from app.services.clock import Clock, SystemClock
from app.services.processing.errors import (
    ContentNotFoundError,
    InvalidContentError,
    JobAlreadyActiveError,
)
from app.services.processing.validation import validate_generation_request
from app.services.queue import ProcessingQueue
from app.services.storage import ContentStore

logger = logging.getLogger(__name__)

RECENT_JOBS_LIMIT = 10


class ProcessingOrchestrator:
    """Submits content to a ProcessingQueue and reports on stored content."""

    def __init__(
        self,
        store: ContentStore,
        queue: ProcessingQueue,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.queue = queue
        self._clock = clock or SystemClock()
        self._processing_pending = False

    async def process_content(self, content_id: str) -> str:
        """
        Check a content item and submit it for processing.

        Content that fails the pre-flight check is marked failed in the
        store and never reaches the queue.

        Args:
            content_id: Content item to process

        Returns:
            Id of the new processing job

        Raises:
            ContentNotFoundError: If the content does not exist
            InvalidContentError: If the content fails pre-flight checks
            JobAlreadyActiveError: If the content already has an active job
        """
        request = await self.store.fetch_content_for_processing(content_id)
        if request is None:
            raise ContentNotFoundError(f"Content not found or not processable: {content_id}")

        validation = validate_generation_request(request)
        if not validation.is_valid:
            message = "; ".join(validation.errors)
            await self.store.update_processing_status(
                content_id, ProcessingStatus.FAILED, message
            )
            logger.warning(f"Content {content_id} failed pre-flight checks: {message}")
            raise InvalidContentError(
                f"Content validation failed: {message}",
                details={"errors": validation.errors},
            )

        return self.queue.submit(content_id)

    async def add_and_process_content(
        self,
        title: str,
        transcript: str,
        duration_hours: float,
        source: ContentSource = ContentSource.OTHER,
        source_url: str = "",
    ) -> tuple[str, str]:
        """
        Register new content and submit it.

        Returns:
            Tuple of (content_id, job_id)
        """
        content_id = await self.store.add_content(
            title=title,
            transcript=transcript,
            duration_hours=duration_hours,
            source=source,
            source_url=source_url,
        )
        job_id = await self.process_content(content_id)
        return content_id, job_id

    async def process_all_pending(self) -> PendingRunResult:
        """
        Submit every content item whose stored status is pending.

        A call made while a previous call is still submitting returns
        immediately with already_processing set.
        """
        if self._processing_pending:
            return PendingRunResult(already_processing=True)

        self._processing_pending = True
        result = PendingRunResult()
        try:
            content_ids = await self.store.get_pending_content_ids()
            logger.info(f"Found {len(content_ids)} pending content items")

            for content_id in content_ids:
                if self.queue.active_job_id(content_id):
                    continue
                try:
                    await self.process_content(content_id)
                    result.started += 1
                except Exception as e:
                    logger.error(f"Failed to start processing for {content_id}: {e}")
                    result.failed += 1
            return result
        finally:
            self._processing_pending = False

    async def batch_process_content(self, content_ids: list[str]) -> BatchSubmitResult:
        """
        Reset and submit several content items.

        Returns:
            BatchSubmitResult with job ids queued and content ids that could
            not be submitted
        """
        result = BatchSubmitResult()
        for content_id in content_ids:
            try:
                job_id = await self.retry_failed_content(content_id)
                result.queued.append(job_id)
            except Exception as e:
                logger.error(f"Failed to queue content {content_id}: {e}")
                result.failed.append(content_id)
        return result

    async def retry_failed_content(self, content_id: str) -> str:
        """
        Reset a content item to pending and submit it again.

        Raises:
            JobAlreadyActiveError: If the content already has an active job
        """
        active = self.queue.active_job_id(content_id)
        if active:
            raise JobAlreadyActiveError(content_id, active)
        await self.store.update_processing_status(content_id, ProcessingStatus.PENDING)
        return self.queue.submit(content_id)

    async def get_processing_stats(self) -> ProcessingStats:
        return await self.store.get_processing_stats()

    async def get_processing_overview(self) -> ProcessingOverview:
        jobs = self.queue.list_jobs()
        return ProcessingOverview(
            stats=await self.store.get_processing_stats(),
            queue=self.queue.stats(),
            recent_jobs=jobs[-RECENT_JOBS_LIMIT:],
        )

    async def cleanup_stuck_processing(
        self, older_than_minutes: Optional[int] = None
    ) -> CleanupResult:
        """
        Reset content stuck in the processing state back to pending.

        Content is considered stuck when its current attempt started more
        than older_than_minutes ago and this process has no active job for it.

        Args:
            older_than_minutes: Age threshold (default STUCK_PROCESSING_MINUTES)

        Returns:
            CleanupResult with the number of items reset and any errors
        """
        minutes = older_than_minutes or processing_settings.STUCK_PROCESSING_MINUTES
        cutoff = self._clock.now() - timedelta(minutes=minutes)
        result = CleanupResult()

        try:
            stuck_ids = await self.store.find_stuck_content_ids(cutoff)
        except Exception as e:
            result.errors.append(f"Error finding stuck content: {e}")
            return result

        for content_id in stuck_ids:
            if self.queue.active_job_id(content_id):
                continue
            try:
                await self.store.update_processing_status(content_id, ProcessingStatus.PENDING)
                result.reset_count += 1
            except Exception as e:
                result.errors.append(f"Failed to reset content {content_id}: {e}")

        if result.reset_count:
            logger.info(f"Reset {result.reset_count} stuck content items to pending")
        return result
