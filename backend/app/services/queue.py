"""
Processing Queue

In-process job queue that runs ContentProcessor attempts with bounded
concurrency and owns all retry policy.

Job lifecycle:
    pending -> processing -> completed
                          -> retrying -> pending (re-inserted at the front)
                          -> failed

Rules:
- At most `max_concurrent` jobs are processing at any moment
- Retryable failures are re-attempted after base_delay * 2^(k-1) seconds
  (2s, 4s, 8s with the defaults) until retry_count reaches max_retries
- Non-retryable failures fail the job immediately with retry_count unchanged
- Retries jump ahead of fresh submissions
- Completed and failed jobs never change again; only the newest
  `history_limit` of them are kept for lookups
- A job cancelled mid-attempt fails as JOB_CANCELLED whatever the attempt
  itself raised
- Only one active job per content item; a second submit is rejected
- Errors with halts_pipeline (bad credentials, daily quota) stop the queue
  from starting further jobs until resume() is called

Concurrency model:
    All bookkeeping (job records, pending deque, processing set) is mutated
    only by synchronous methods running on the event loop, so no lock is
    needed. Processor attempts run as asyncio tasks; retry re-insertion goes
    through the injected Scheduler rather than ad hoc sleeps.

Storage boundary:
    The queue reports `processing` when an attempt starts and `failed` (with
    the error message) when a job fails for good. The processor's persist
    stage marks content `completed`. `retrying` is never reported.

Usage:
    from app.services.queue import ProcessingQueue

    queue = ProcessingQueue(processor, store=store)
    job_id = queue.submit(content_id)
    job = await queue.wait_for(job_id)
    print(job.status, job.error)
"""

import asyncio
import logging
import uuid
from collections import deque
from datetime import timedelta
from functools import partial
from typing import Optional

from app.config.processing import processing_settings
from app.enums.content import ProcessingStatus
from app.enums.processing import GenerationErrorCode, JobStatus
from app.models.processing import ProcessingJob, QueueStats
from app.services.clock import Clock, LoopScheduler, Scheduler, SystemClock
from app.services.processing.errors import (
    GenerationError,
    JobAlreadyActiveError,
    JobCancelledError,
    JobNotFoundError,
    classify_error,
)
from app.services.processing.processor import ContentProcessor
from app.services.storage import ContentStore

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Job cancelled"


class ProcessingQueue:
    """
    Bounded-concurrency job queue with exponential-backoff retries.

    Attributes:
        max_concurrent: Maximum jobs in the processing state at once
        max_retries: Upper bound on retry_count
        base_delay: Backoff delay in seconds before the first retry
    """

    def __init__(
        self,
        processor: ContentProcessor,
        store: Optional[ContentStore] = None,
        max_concurrent: Optional[int] = None,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        estimated_job_seconds: Optional[float] = None,
        history_limit: Optional[int] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.processor = processor
        self.store = store
        self.max_concurrent = max_concurrent or processing_settings.MAX_CONCURRENT_JOBS
        self.max_retries = (
            max_retries if max_retries is not None else processing_settings.MAX_RETRIES
        )
        self.base_delay = (
            base_delay if base_delay is not None
            else processing_settings.RETRY_BASE_DELAY_SECONDS
        )
        self.estimated_job_seconds = (
            estimated_job_seconds or processing_settings.ESTIMATED_JOB_SECONDS
        )
        self.history_limit = history_limit or processing_settings.JOB_HISTORY_LIMIT
        self._clock = clock or SystemClock()
        self._scheduler = scheduler or LoopScheduler()

        self._jobs: dict[str, ProcessingJob] = {}
        self._pending: deque[str] = deque()
        self._processing: set[str] = set()
        self._active_by_content: dict[str, str] = {}
        self._cancel_requested: set[str] = set()
        self._done_events: dict[str, asyncio.Event] = {}
        self._finished: deque[str] = deque()
        self._tasks: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

        self._halt_reason: Optional[str] = None
        self._completed_seconds = 0.0
        self._completed_count = 0

    # =========================================================================
    # Public API
    # =========================================================================

    def submit(self, content_id: str) -> str:
        """
        Enqueue a content item and return the new job id.

        Must be called from within a running event loop. Returns without
        waiting for the job to start.

        Raises:
            JobAlreadyActiveError: If the content item already has an active job
        """
        existing = self._active_by_content.get(content_id)
        if existing is not None:
            raise JobAlreadyActiveError(content_id, existing)

        job = ProcessingJob(
            id=str(uuid.uuid4()),
            content_id=content_id,
            started_at=self._clock.now(),
        )
        self._jobs[job.id] = job
        self._done_events[job.id] = asyncio.Event()
        self._active_by_content[content_id] = job.id
        self._pending.append(job.id)

        if self._halt_reason:
            logger.warning(
                f"Queue halted ({self._halt_reason}); job {job.id} for {content_id} "
                f"will wait until resume()"
            )
        else:
            logger.info(f"Queued job {job.id} for content {content_id}")

        self._drain()
        return job.id

    def get_status(self, job_id: str) -> ProcessingJob:
        """
        Snapshot of a job.

        Raises:
            JobNotFoundError: If no job has this id
        """
        return self._get(job_id).model_copy()

    def get_job(self, job_id: str) -> Optional[ProcessingJob]:
        job = self._jobs.get(job_id)
        return job.model_copy() if job else None

    def active_job_id(self, content_id: str) -> Optional[str]:
        """Id of the content item's pending, processing, or retrying job, if any."""
        return self._active_by_content.get(content_id)

    def list_jobs(self, status: Optional[JobStatus] = None) -> list[ProcessingJob]:
        jobs = [
            job.model_copy()
            for job in self._jobs.values()
            if status is None or job.status == status
        ]
        return sorted(jobs, key=lambda j: j.started_at)

    def stats(self) -> QueueStats:
        counts = {status: 0 for status in JobStatus}
        for job in self._jobs.values():
            counts[job.status] += 1
        return QueueStats(
            pending=counts[JobStatus.PENDING],
            processing=counts[JobStatus.PROCESSING],
            retrying=counts[JobStatus.RETRYING],
            completed=counts[JobStatus.COMPLETED],
            failed=counts[JobStatus.FAILED],
            halted=self._halt_reason is not None,
            halt_reason=self._halt_reason,
        )

    @property
    def halted(self) -> bool:
        return self._halt_reason is not None

    @property
    def processing_count(self) -> int:
        return len(self._processing)

    def retry_delay(self, retry_count: int) -> float:
        """Backoff before the retry_count-th retry (1-based)."""
        return self.base_delay * (2 ** (retry_count - 1))

    async def cancel(self, job_id: str) -> bool:
        """
        Cancel a job.

        Pending and retrying jobs fail immediately. A processing job keeps
        its in-flight service call; the processor drops the result and the
        job fails once the attempt returns.

        Returns:
            False if the job was already completed or failed

        Raises:
            JobNotFoundError: If no job has this id
        """
        job = self._get(job_id)
        if job.status.is_terminal:
            return False

        if job.status == JobStatus.PROCESSING:
            self._cancel_requested.add(job_id)
            logger.info(f"Cancellation requested for in-flight job {job_id}")
            return True

        if job.status == JobStatus.PENDING and job_id in self._pending:
            self._pending.remove(job_id)
        job.error = CANCELLED_MESSAGE
        job.error_code = GenerationErrorCode.JOB_CANCELLED.value
        self._finish(job, JobStatus.FAILED)
        logger.info(f"Cancelled job {job_id} for content {job.content_id}")
        self._drain()

        await self._report_status(job.content_id, ProcessingStatus.FAILED, CANCELLED_MESSAGE)
        return True

    def resume(self) -> None:
        """Clear a halt and start pending jobs again."""
        if self._halt_reason is None:
            return
        logger.info(f"Resuming processing queue (was halted: {self._halt_reason})")
        self._halt_reason = None
        self._drain()

    async def wait_for(self, job_id: str, timeout: Optional[float] = None) -> ProcessingJob:
        """
        Wait until a job is completed or failed.

        Raises:
            JobNotFoundError: If no job has this id
            asyncio.TimeoutError: If timeout elapses first
        """
        job = self._get(job_id)
        event = self._done_events[job_id]
        if timeout is None:
            await event.wait()
        else:
            await asyncio.wait_for(event.wait(), timeout)
        return job.model_copy()

    async def join(self) -> None:
        """
        Wait until nothing is processing or retrying and the pending list is
        empty (or the queue is halted, in which case pending jobs stay put).
        """
        await self._idle.wait()

    # =========================================================================
    # Scheduling
    # =========================================================================

    def _get(self, job_id: str) -> ProcessingJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def _drain(self) -> None:
        """Start pending jobs while slots are free and the queue is not halted."""
        while (
            self._halt_reason is None
            and self._pending
            and len(self._processing) < self.max_concurrent
        ):
            job = self._jobs[self._pending.popleft()]
            if job.status == JobStatus.PENDING:
                self._start(job)
        self._update_idle()

    def _start(self, job: ProcessingJob) -> None:
        job.status = JobStatus.PROCESSING
        job.progress = 0
        job.estimated_completion_at = self._clock.now() + timedelta(
            seconds=self._average_job_seconds()
        )
        self._processing.add(job.id)
        logger.info(
            f"Starting job {job.id} for content {job.content_id} "
            f"(attempt {job.retry_count + 1}, {len(self._processing)}/{self.max_concurrent} slots)"
        )

        task = asyncio.create_task(self._run_attempt(job.id), name=f"processing-job-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _requeue(self, job_id: str) -> None:
        """Scheduler callback: move a retrying job to the front of the pending list."""
        job = self._jobs.get(job_id)
        if job is None or job.status != JobStatus.RETRYING:
            return
        job.status = JobStatus.PENDING
        self._pending.appendleft(job_id)
        logger.debug(f"Re-queued job {job_id} for retry {job.retry_count}")
        self._drain()

    def _update_idle(self) -> None:
        busy = bool(self._processing) or any(
            job.status == JobStatus.RETRYING for job in self._jobs.values()
        )
        if not busy and (not self._pending or self._halt_reason is not None):
            self._idle.set()
        else:
            self._idle.clear()

    def _average_job_seconds(self) -> float:
        if self._completed_count:
            return self._completed_seconds / self._completed_count
        return self.estimated_job_seconds

    # =========================================================================
    # Attempt execution
    # =========================================================================

    async def _run_attempt(self, job_id: str) -> None:
        job = self._jobs[job_id]
        started = self._clock.monotonic()

        try:
            await self._report_status(job.content_id, ProcessingStatus.PROCESSING)
            await self.processor.process(
                job.content_id,
                progress_callback=partial(self._on_progress, job_id),
                is_cancelled=partial(self._is_cancel_requested, job_id),
            )
        except asyncio.CancelledError:
            self._processing.discard(job_id)
            raise
        except Exception as e:
            await self._on_failure(job, classify_error(e))
        else:
            self._completed_seconds += self._clock.monotonic() - started
            self._completed_count += 1
            self._on_success(job)

    def _on_progress(self, job_id: str, progress: int) -> None:
        job = self._jobs[job_id]
        if job.status == JobStatus.PROCESSING:
            job.progress = max(job.progress, min(progress, 99))

    def _is_cancel_requested(self, job_id: str) -> bool:
        return job_id in self._cancel_requested

    def _on_success(self, job: ProcessingJob) -> None:
        self._processing.discard(job.id)
        job.progress = 100
        job.error = None
        job.error_code = None
        self._finish(job, JobStatus.COMPLETED)
        logger.info(
            f"Job {job.id} completed for content {job.content_id} "
            f"after {job.retry_count} retries"
        )
        self._drain()

    async def _on_failure(self, job: ProcessingJob, error: GenerationError) -> None:
        if error.halts_pipeline and self._halt_reason is None:
            self._halt_reason = f"{error.error_code.value}: {error.message}"
            logger.error(f"Processing queue halted: {self._halt_reason}")

        if job.id in self._cancel_requested:
            logger.info(f"Job {job.id} was cancelled during its attempt ({error.error_code.value})")
            error = JobCancelledError(CANCELLED_MESSAGE)

        job.error = error.message
        job.error_code = error.error_code.value

        if error.retryable and job.retry_count < self.max_retries:
            job.retry_count += 1
            self._processing.discard(job.id)
            job.status = JobStatus.RETRYING
            job.estimated_completion_at = None
            delay = self.retry_delay(job.retry_count)
            logger.warning(
                f"Job {job.id} failed ({error.error_code.value}); retry "
                f"{job.retry_count}/{self.max_retries} in {delay:g}s: {error.message}"
            )
            self._scheduler.call_later(delay, partial(self._requeue, job.id))
            self._drain()
            return

        # Storage learns about the failure before the slot is released.
        await self._report_status(job.content_id, ProcessingStatus.FAILED, error.message)

        self._processing.discard(job.id)
        self._finish(job, JobStatus.FAILED)
        logger.error(
            f"Job {job.id} failed permanently for content {job.content_id} "
            f"after {job.retry_count} retries: {error.message}"
        )
        self._drain()

    def _finish(self, job: ProcessingJob, status: JobStatus) -> None:
        job.status = status
        job.completed_at = self._clock.now()
        job.estimated_completion_at = None
        self._cancel_requested.discard(job.id)
        if self._active_by_content.get(job.content_id) == job.id:
            del self._active_by_content[job.content_id]
        self._done_events[job.id].set()

        self._finished.append(job.id)
        while len(self._finished) > self.history_limit:
            evicted = self._finished.popleft()
            del self._jobs[evicted]
            del self._done_events[evicted]

    async def _report_status(
        self, content_id: str, status: ProcessingStatus, error: Optional[str] = None
    ) -> None:
        if self.store is None:
            return
        if status == ProcessingStatus.PROCESSING:
            await self.store.update_processing_status(content_id, status)
            return
        try:
            await self.store.update_processing_status(content_id, status, error)
        except Exception as e:
            logger.error(f"Failed to record {status.value} status for {content_id}: {e}")
