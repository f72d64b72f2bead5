"""
Unit tests for the processing orchestrator.
"""

import asyncio
from datetime import timedelta

import pytest

from app.enums.content import ProcessingStatus
from app.enums.processing import JobStatus
from app.services.orchestrator import ProcessingOrchestrator
from app.services.processing.errors import (
    ContentNotFoundError,
    InvalidContentError,
    JobAlreadyActiveError,
)
from app.services.processing.processor import ContentProcessor
from app.services.processing.rate_limiter import RateLimiter
from app.services.queue import ProcessingQueue
from app.services.storage import InMemoryContentStore
from tests.fakes import FakeLLMClient


class GatedPendingStore(InMemoryContentStore):
    """Store whose pending lookup blocks until released."""

    def __init__(self):
        super().__init__()
        self.pending_gate = asyncio.Event()

    async def get_pending_content_ids(self) -> list[str]:
        await self.pending_gate.wait()
        return await super().get_pending_content_ids()


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def llm_client(generation_reply) -> FakeLLMClient:
    return FakeLLMClient(default=generation_reply(1.0))


@pytest.fixture
def make_orchestrator(llm_client, fake_clock, fake_scheduler):
    def _make(store, **queue_kwargs) -> ProcessingOrchestrator:
        limiter = RateLimiter(
            requests_per_minute=1000, requests_per_day=10_000, clock=fake_clock
        )
        processor = ContentProcessor(store, llm_client, limiter, clock=fake_clock)
        queue = ProcessingQueue(
            processor, store=store, clock=fake_clock, scheduler=fake_scheduler, **queue_kwargs
        )
        return ProcessingOrchestrator(store, queue, clock=fake_clock)

    return _make


@pytest.fixture
def orchestrator(store, make_orchestrator) -> ProcessingOrchestrator:
    return make_orchestrator(store)


# =============================================================================
# Submission
# =============================================================================


class TestProcessContent:
    """Tests for single-item submission and pre-flight checks."""

    @pytest.mark.asyncio
    async def test_submits_valid_content(self, orchestrator, store, sample_content_fields):
        content_id = await store.add_content(**sample_content_fields)

        job_id = await orchestrator.process_content(content_id)
        job = await orchestrator.queue.wait_for(job_id)

        assert job.content_id == content_id
        assert job.status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_missing_content(self, orchestrator):
        with pytest.raises(ContentNotFoundError):
            await orchestrator.process_content("missing")

    @pytest.mark.asyncio
    async def test_invalid_content_marked_failed(
        self, orchestrator, store, llm_client, sample_content_fields
    ):
        content_id = await store.add_content(**{**sample_content_fields, "title": "  "})

        with pytest.raises(InvalidContentError) as exc_info:
            await orchestrator.process_content(content_id)

        record = store.records[content_id]
        assert record.processing_status == ProcessingStatus.FAILED.value
        assert record.processing_error
        assert exc_info.value.details["errors"]
        assert orchestrator.queue.list_jobs() == []
        assert llm_client.calls == []

    @pytest.mark.asyncio
    async def test_add_and_process(self, orchestrator, store, sample_content_fields):
        content_id, job_id = await orchestrator.add_and_process_content(**sample_content_fields)

        await orchestrator.queue.wait_for(job_id)

        assert store.records[content_id].processing_status == ProcessingStatus.COMPLETED.value
        assert store.records[content_id].request.title == sample_content_fields["title"]


# =============================================================================
# Bulk submission
# =============================================================================


class TestBulkSubmission:
    """Tests for process_all_pending and batch_process_content."""

    @pytest.mark.asyncio
    async def test_process_all_pending(self, orchestrator, store, sample_content_fields):
        ids = [
            await store.add_content(**{**sample_content_fields, "title": f"Episode {i}"})
            for i in range(3)
        ]
        await store.update_processing_status(ids[2], ProcessingStatus.COMPLETED)

        result = await orchestrator.process_all_pending()
        await orchestrator.queue.join()

        assert result.started == 2
        assert result.failed == 0
        assert result.already_processing is False
        assert {j.content_id for j in orchestrator.queue.list_jobs()} == set(ids[:2])

    @pytest.mark.asyncio
    async def test_process_all_pending_counts_invalid_items(
        self, orchestrator, store, sample_content_fields
    ):
        await store.add_content(**sample_content_fields)
        await store.add_content(**{**sample_content_fields, "transcript": "Too short."})

        result = await orchestrator.process_all_pending()
        await orchestrator.queue.join()

        assert result.started == 1
        assert result.failed == 1

    @pytest.mark.asyncio
    async def test_process_all_pending_skips_active_jobs(
        self, orchestrator, store, llm_client, sample_content_fields
    ):
        llm_client.gate = asyncio.Event()
        content_id = await store.add_content(**sample_content_fields)
        orchestrator.queue.submit(content_id)
        await store.update_processing_status(content_id, ProcessingStatus.PENDING)

        result = await orchestrator.process_all_pending()

        assert result.started == 0
        assert result.failed == 0
        llm_client.gate.set()
        await orchestrator.queue.join()

    @pytest.mark.asyncio
    async def test_concurrent_pending_run_is_rejected(
        self, make_orchestrator, sample_content_fields
    ):
        store = GatedPendingStore()
        orchestrator = make_orchestrator(store)
        await store.add_content(**sample_content_fields)

        first = asyncio.create_task(orchestrator.process_all_pending())
        await asyncio.sleep(0)
        second = await orchestrator.process_all_pending()

        store.pending_gate.set()
        first_result = await first
        await orchestrator.queue.join()

        assert second.already_processing is True
        assert second.started == 0
        assert first_result.started == 1

    @pytest.mark.asyncio
    async def test_batch_process(self, orchestrator, store, llm_client, sample_content_fields):
        llm_client.gate = asyncio.Event()
        busy = await store.add_content(**{**sample_content_fields, "title": "Busy"})
        idle = await store.add_content(**{**sample_content_fields, "title": "Idle"})
        orchestrator.queue.submit(busy)

        result = await orchestrator.batch_process_content([busy, idle])

        assert len(result.queued) == 1
        assert result.failed == [busy]
        llm_client.gate.set()
        await orchestrator.queue.join()


# =============================================================================
# Retry and recovery
# =============================================================================


class TestRetryAndCleanup:
    """Tests for manual retries and stuck-content recovery."""

    @pytest.mark.asyncio
    async def test_retry_failed_content(
        self, orchestrator, store, llm_client, generation_reply, sample_content_fields
    ):
        llm_client.replies = [generation_reply(1.0, bullets=2)]
        content_id = await store.add_content(**sample_content_fields)
        failed = await orchestrator.queue.wait_for(await orchestrator.process_content(content_id))
        assert failed.status == JobStatus.FAILED
        assert store.records[content_id].processing_status == ProcessingStatus.FAILED.value

        job_id = await orchestrator.retry_failed_content(content_id)
        job = await orchestrator.queue.wait_for(job_id)

        assert job_id != failed.id
        assert job.status == JobStatus.COMPLETED
        assert store.records[content_id].processing_error is None

    @pytest.mark.asyncio
    async def test_retry_rejects_active_job(
        self, orchestrator, store, llm_client, sample_content_fields
    ):
        llm_client.gate = asyncio.Event()
        content_id = await store.add_content(**sample_content_fields)
        orchestrator.queue.submit(content_id)

        with pytest.raises(JobAlreadyActiveError):
            await orchestrator.retry_failed_content(content_id)

        llm_client.gate.set()
        await orchestrator.queue.join()

    @pytest.mark.asyncio
    async def test_cleanup_resets_stuck_content(
        self, orchestrator, store, fake_clock, sample_content_fields
    ):
        stuck = await store.add_content(**{**sample_content_fields, "title": "Stuck"})
        recent = await store.add_content(**{**sample_content_fields, "title": "Recent"})
        for content_id in (stuck, recent):
            store.records[content_id].processing_status = ProcessingStatus.PROCESSING.value
        store.records[stuck].processing_started_at = fake_clock.now() - timedelta(hours=2)
        store.records[recent].processing_started_at = fake_clock.now() - timedelta(minutes=5)

        result = await orchestrator.cleanup_stuck_processing(older_than_minutes=60)

        assert result.reset_count == 1
        assert result.errors == []
        assert store.records[stuck].processing_status == ProcessingStatus.PENDING.value
        assert store.records[stuck].processing_started_at is None
        assert store.records[recent].processing_status == ProcessingStatus.PROCESSING.value

    @pytest.mark.asyncio
    async def test_cleanup_skips_content_with_active_job(
        self, orchestrator, store, llm_client, fake_clock, sample_content_fields
    ):
        llm_client.gate = asyncio.Event()
        content_id = await store.add_content(**sample_content_fields)
        orchestrator.queue.submit(content_id)
        for _ in range(10):
            await asyncio.sleep(0)
        assert store.records[content_id].processing_status == ProcessingStatus.PROCESSING.value
        store.records[content_id].processing_started_at = fake_clock.now() - timedelta(hours=2)

        result = await orchestrator.cleanup_stuck_processing(older_than_minutes=60)

        assert result.reset_count == 0
        llm_client.gate.set()
        await orchestrator.queue.join()


# =============================================================================
# Reporting
# =============================================================================


class TestReporting:
    """Tests for stats and overview."""

    @pytest.mark.asyncio
    async def test_overview(self, orchestrator, store, sample_content_fields):
        content_id = await store.add_content(**sample_content_fields)
        await store.add_content(**{**sample_content_fields, "title": "Later"})
        await orchestrator.queue.wait_for(await orchestrator.process_content(content_id))

        overview = await orchestrator.get_processing_overview()

        assert overview.stats.total_content == 2
        assert overview.stats.completed == 1
        assert overview.stats.pending == 1
        assert overview.stats.total_questions_generated == 12
        assert overview.queue.completed == 1
        assert [j.content_id for j in overview.recent_jobs] == [content_id]

    @pytest.mark.asyncio
    async def test_stats_passthrough(self, orchestrator, store, sample_content_fields):
        await store.add_content(**sample_content_fields)

        stats = await orchestrator.get_processing_stats()

        assert stats.total_content == 1
        assert stats.pending == 1
