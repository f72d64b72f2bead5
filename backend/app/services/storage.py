"""
Content Storage Service

The content store is the pipeline's only persistence collaborator. It is
specified here as a protocol with two implementations:

- InMemoryContentStore: process-local dict, used for tests and local runs
- SQLContentStore: PostgreSQL via async SQLAlchemy (app.db.models.Content)

Responsibilities:
- Load a ContentGenerationRequest by content id
- Persist generated summaries/questions plus derived analytics
- Update processing status (pending, processing, completed, failed)
- Report pending/stuck content and aggregate processing statistics

Status boundary:
    The queue's internal "retrying" state never reaches the store; it is
    reported as "processing". Only ProcessingStatus values are persisted.

Errors:
    Writes against an unknown content id raise ContentNotFoundError, and a
    stored row that cannot form a request raises InvalidContentError. Both
    are non-retryable, so the queue fails the job on its first attempt.

Usage:
    from app.services.storage import SQLContentStore

    store = SQLContentStore()
    request = await store.fetch_content_for_processing(content_id)
    await store.update_processing_status(content_id, ProcessingStatus.PROCESSING)
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.processing import processing_settings
from app.db.base import get_session_maker
from app.db.models import Content as DBContent
from app.enums.content import ContentSource, ProcessingStatus
from app.models.content import ContentGenerationRequest, GeneratedContent
from app.models.processing import ProcessingStats
from app.services.processing.errors import ContentNotFoundError, InvalidContentError

logger = logging.getLogger(__name__)


class ContentStore(Protocol):
    async def add_content(
        self,
        title: str,
        transcript: str,
        duration_hours: float,
        source: ContentSource = ContentSource.OTHER,
        source_url: str = "",
    ) -> str: ...

    async def fetch_content_for_processing(
        self, content_id: str
    ) -> Optional[ContentGenerationRequest]: ...

    async def save_generated_content(
        self, content_id: str, content: GeneratedContent
    ) -> None: ...

    async def update_processing_status(
        self,
        content_id: str,
        status: ProcessingStatus,
        error: Optional[str] = None,
    ) -> None: ...

    async def get_pending_content_ids(self) -> list[str]: ...

    async def find_stuck_content_ids(self, started_before: datetime) -> list[str]: ...

    async def get_processing_stats(self) -> ProcessingStats: ...


# =============================================================================
# Shared helpers
# =============================================================================


def build_content_analytics(content: GeneratedContent) -> dict[str, Any]:
    """
    Derive analytics columns stored alongside generated content.

    Returns:
        Dict with total_questions, average_difficulty, estimated_read_time_minutes
    """
    difficulties = [
        q.difficulty_level for q in content.questions if q.difficulty_level is not None
    ]
    average_difficulty = sum(difficulties) / len(difficulties) if difficulties else 0.0

    word_count = len(content.full_summary.split())
    read_minutes = math.ceil(word_count / processing_settings.READ_WORDS_PER_MINUTE)

    return {
        "total_questions": len(content.questions),
        "average_difficulty": average_difficulty,
        "estimated_read_time_minutes": read_minutes,
    }


def serialize_questions(content: GeneratedContent) -> list[dict[str, Any]]:
    return [q.model_dump(mode="json") for q in content.questions]


def _status_fields(
    status: ProcessingStatus, error: Optional[str], now: datetime
) -> dict[str, Any]:
    """Column updates implied by a status transition."""
    if error:
        return {
            "processing_status": ProcessingStatus.FAILED.value,
            "processing_error": error,
        }

    fields: dict[str, Any] = {"processing_status": status.value}
    if status == ProcessingStatus.PROCESSING:
        fields.update(processed_at=None, processing_started_at=now, processing_error=None)
    elif status == ProcessingStatus.COMPLETED:
        fields.update(processed_at=now, processing_error=None)
    elif status == ProcessingStatus.PENDING:
        fields.update(processing_started_at=None, processing_error=None)
    return fields


def _compute_stats(rows: list[tuple[str, int, datetime, Optional[datetime]]]) -> ProcessingStats:
    stats = ProcessingStats(total_content=len(rows))
    total_processing_seconds = 0.0
    processed_count = 0

    for status, total_questions, created_at, processed_at in rows:
        if status == ProcessingStatus.PENDING.value:
            stats.pending += 1
        elif status == ProcessingStatus.PROCESSING.value:
            stats.processing += 1
        elif status == ProcessingStatus.FAILED.value:
            stats.failed += 1
        elif status == ProcessingStatus.COMPLETED.value:
            stats.completed += 1
            stats.total_questions_generated += total_questions or 0
            if created_at and processed_at:
                total_processing_seconds += (processed_at - created_at).total_seconds()
                processed_count += 1

    if processed_count:
        stats.avg_processing_time_hours = total_processing_seconds / processed_count / 3600
    return stats


# =============================================================================
# In-memory implementation
# =============================================================================


@dataclass
class ContentRecord:
    """In-memory equivalent of a content table row."""

    request: ContentGenerationRequest
    source_url: str = ""
    processing_status: str = ProcessingStatus.PENDING.value
    processing_error: Optional[str] = None
    quick_summary: Optional[str] = None
    full_summary: Optional[str] = None
    questions: Optional[list[dict[str, Any]]] = None
    content_version: int = 1
    total_questions: int = 0
    average_difficulty: float = 0.0
    estimated_read_time_minutes: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processing_started_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


class InMemoryContentStore:
    """Content store backed by a dict, keyed by content id."""

    def __init__(self):
        self.records: dict[str, ContentRecord] = {}
        self.status_history: list[tuple[str, ProcessingStatus, Optional[str]]] = []

    async def add_content(
        self,
        title: str,
        transcript: str,
        duration_hours: float,
        source: ContentSource = ContentSource.OTHER,
        source_url: str = "",
        content_id: Optional[str] = None,
    ) -> str:
        """Register content for processing and return its id."""
        content_id = content_id or str(uuid.uuid4())
        request = ContentGenerationRequest(
            content_id=content_id,
            title=title,
            transcript=transcript,
            duration_hours=duration_hours,
            source=source,
        )
        self.records[content_id] = ContentRecord(request=request, source_url=source_url)
        return content_id

    async def fetch_content_for_processing(
        self, content_id: str
    ) -> Optional[ContentGenerationRequest]:
        record = self.records.get(content_id)
        return record.request if record else None

    async def save_generated_content(
        self, content_id: str, content: GeneratedContent
    ) -> None:
        record = self.records.get(content_id)
        if record is None:
            raise ContentNotFoundError(f"Content not found: {content_id}")

        analytics = build_content_analytics(content)
        record.quick_summary = content.quick_summary
        record.full_summary = content.full_summary
        record.questions = serialize_questions(content)
        record.content_version = content.metadata.content_version
        record.total_questions = analytics["total_questions"]
        record.average_difficulty = analytics["average_difficulty"]
        record.estimated_read_time_minutes = analytics["estimated_read_time_minutes"]
        record.processing_status = ProcessingStatus.COMPLETED.value
        record.processing_error = None
        record.processed_at = datetime.now(timezone.utc)

    async def update_processing_status(
        self,
        content_id: str,
        status: ProcessingStatus,
        error: Optional[str] = None,
    ) -> None:
        record = self.records.get(content_id)
        if record is None:
            raise ContentNotFoundError(f"Content not found: {content_id}")

        self.status_history.append((content_id, status, error))
        for name, value in _status_fields(status, error, datetime.now(timezone.utc)).items():
            setattr(record, name, value)

    async def get_pending_content_ids(self) -> list[str]:
        pending = [
            r for r in self.records.values()
            if r.processing_status == ProcessingStatus.PENDING.value
        ]
        pending.sort(key=lambda r: r.created_at)
        return [r.request.content_id for r in pending]

    async def find_stuck_content_ids(self, started_before: datetime) -> list[str]:
        return [
            content_id
            for content_id, r in self.records.items()
            if r.processing_status == ProcessingStatus.PROCESSING.value
            and r.processing_started_at is not None
            and r.processing_started_at < started_before
        ]

    async def get_processing_stats(self) -> ProcessingStats:
        return _compute_stats(
            [
                (r.processing_status, r.total_questions, r.created_at, r.processed_at)
                for r in self.records.values()
            ]
        )


# =============================================================================
# PostgreSQL implementation
# =============================================================================


class SQLContentStore:
    """Content store backed by the content table via async SQLAlchemy."""

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_maker = session_maker or get_session_maker()

    async def add_content(
        self,
        title: str,
        transcript: str,
        duration_hours: float,
        source: ContentSource = ContentSource.OTHER,
        source_url: str = "",
    ) -> str:
        """Register content for processing and return its id."""
        content_id = str(uuid.uuid4())
        async with self._session_maker() as session:
            session.add(
                DBContent(
                    id=content_id,
                    title=title,
                    source=source.value,
                    source_url=source_url,
                    transcript=transcript,
                    duration_hours=duration_hours,
                    processing_status=ProcessingStatus.PENDING.value,
                    content_version=processing_settings.CONTENT_VERSION,
                )
            )
            await session.commit()
        logger.info(f"Registered content {content_id} for processing: {title}")
        return content_id

    async def fetch_content_for_processing(
        self, content_id: str
    ) -> Optional[ContentGenerationRequest]:
        async with self._session_maker() as session:
            row = await session.get(DBContent, content_id)

        if row is None:
            return None

        try:
            return ContentGenerationRequest(
                content_id=row.id,
                title=row.title,
                transcript=row.transcript,
                duration_hours=row.duration_hours,
                source=_parse_source(row.source),
            )
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise InvalidContentError(
                f"Invalid content: {'; '.join(problems)}",
                details={"errors": problems},
            ) from e

    async def save_generated_content(
        self, content_id: str, content: GeneratedContent
    ) -> None:
        values = {
            "quick_summary": content.quick_summary,
            "full_summary": content.full_summary,
            "questions": serialize_questions(content),
            "content_version": content.metadata.content_version,
            "processing_status": ProcessingStatus.COMPLETED.value,
            "processing_error": None,
            "processed_at": datetime.now(timezone.utc),
            **build_content_analytics(content),
        }
        await self._update(content_id, values)
        logger.info(f"Saved generated content for {content_id}")

    async def update_processing_status(
        self,
        content_id: str,
        status: ProcessingStatus,
        error: Optional[str] = None,
    ) -> None:
        await self._update(content_id, _status_fields(status, error, datetime.now(timezone.utc)))

    async def _update(self, content_id: str, values: dict[str, Any]) -> None:
        async with self._session_maker() as session:
            result = await session.execute(
                update(DBContent).where(DBContent.id == content_id).values(**values)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise ContentNotFoundError(f"Content not found: {content_id}")
            await session.commit()

    async def get_pending_content_ids(self) -> list[str]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(DBContent.id)
                .where(DBContent.processing_status == ProcessingStatus.PENDING.value)
                .order_by(DBContent.created_at)
            )
            return list(result.scalars().all())

    async def find_stuck_content_ids(self, started_before: datetime) -> list[str]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(DBContent.id).where(
                    DBContent.processing_status == ProcessingStatus.PROCESSING.value,
                    DBContent.processing_started_at < started_before,
                )
            )
            return list(result.scalars().all())

    async def get_processing_stats(self) -> ProcessingStats:
        async with self._session_maker() as session:
            result = await session.execute(
                select(
                    DBContent.processing_status,
                    func.coalesce(DBContent.total_questions, 0),
                    DBContent.created_at,
                    DBContent.processed_at,
                )
            )
            rows = [tuple(row) for row in result.all()]
        return _compute_stats(rows)


def _parse_source(value: Optional[str]) -> ContentSource:
    try:
        return ContentSource(value)
    except ValueError:
        return ContentSource.OTHER
