"""
SQLAlchemy Database Models

Defines the content table read and written by the generation pipeline.

The pipeline only touches the processing-related columns: it reads the
transcript and duration, and writes summaries, questions, derived
analytics, and the processing status.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.enums.content import ContentSource, ProcessingStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Content(Base):
    """
    Registered long-form content and its generated learning material.

    Status values are exactly the ProcessingStatus enum values
    (pending, processing, completed, failed).
    """

    __tablename__ = "content"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # Source
    title: Mapped[str] = mapped_column(String(500))
    source: Mapped[str] = mapped_column(String(50), default=ContentSource.OTHER.value)
    source_url: Mapped[Optional[str]] = mapped_column(String(2000))
    transcript: Mapped[str] = mapped_column(Text)
    duration_hours: Mapped[float] = mapped_column(Float)

    # Processing
    processing_status: Mapped[str] = mapped_column(
        String(20), default=ProcessingStatus.PENDING.value, index=True
    )
    processing_error: Mapped[Optional[str]] = mapped_column(Text)

    # Generated learning material
    quick_summary: Mapped[Optional[str]] = mapped_column(Text)
    full_summary: Mapped[Optional[str]] = mapped_column(Text)
    questions: Mapped[Optional[list]] = mapped_column(JSON)
    content_version: Mapped[int] = mapped_column(Integer, default=1)

    # Analytics derived when content is saved
    total_questions: Mapped[int] = mapped_column(Integer, default=0)
    average_difficulty: Mapped[float] = mapped_column(Float, default=0.0)
    estimated_read_time_minutes: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    processing_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
