"""
Processing Data Models (Pydantic)

Models for queue bookkeeping and for the verdicts produced while checking
generated content.

Models:
- ProcessingJob: Queue-owned record of one submission and its retries
- QualityScores: Advisory clarity/relevance scores and difficulty histogram
- ValidationResult: Pass/fail verdict with diagnostics
- InputValidationResult: Pre-flight verdict on a generation request
- QualityReport: 0-100 quality score with feedback lines
- QueueStats, ProcessingStats, BatchSubmitResult, CleanupResult,
  PendingRunResult, ProcessingOverview: reporting

Usage:
    from app.models.processing import ProcessingJob, ValidationResult

    job = queue.get_status(job_id)
    if job.status == JobStatus.FAILED:
        print(job.error)
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.enums.processing import JobStatus


class ProcessingJob(BaseModel):
    """
    One submission to the processing queue, including its retries.

    Attributes:
        id: Unique per submission
        content_id: Content item being processed
        status: Lifecycle status
        progress: 0-100, non-decreasing within an attempt
        started_at: Submission time
        completed_at: Time the job reached a terminal state
        error: Last failure message
        error_code: Machine-readable code of the last failure
        retry_count: Retryable failures so far (never exceeds max_retries)
        estimated_completion_at: Expected completion of the current attempt
    """

    id: str
    content_id: str
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    started_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    retry_count: int = 0
    estimated_completion_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


def empty_difficulty_distribution() -> dict[int, int]:
    """Histogram with a zero bucket for each difficulty level 1-5."""
    return {level: 0 for level in range(1, 6)}


class QualityScores(BaseModel):
    """Advisory quality scores; never used to gate acceptance."""

    summary_clarity: float = Field(default=0.0, ge=0.0, le=1.0)
    question_relevance: float = Field(default=0.0, ge=0.0, le=1.0)
    difficulty_distribution: dict[int, int] = Field(
        default_factory=empty_difficulty_distribution
    )


class ValidationResult(BaseModel):
    """Verdict on generated content."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    quality: QualityScores = Field(default_factory=QualityScores)


class InputValidationResult(BaseModel):
    """Verdict on a generation request before any service call is made."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)


class QualityReport(BaseModel):
    """Aggregate 0-100 quality score with human-readable feedback."""

    score: int = Field(ge=0, le=100)
    feedback: list[str] = Field(default_factory=list)


class QueueStats(BaseModel):
    """Point-in-time snapshot of queue occupancy."""

    pending: int = 0
    processing: int = 0
    retrying: int = 0
    completed: int = 0
    failed: int = 0
    halted: bool = False
    halt_reason: Optional[str] = None


class ProcessingStats(BaseModel):
    """Content-level processing statistics reported by the content store."""

    total_content: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    total_questions_generated: int = 0
    avg_processing_time_hours: float = 0.0


class BatchSubmitResult(BaseModel):
    """Outcome of submitting several content items at once."""

    queued: list[str] = Field(default_factory=list, description="Job ids")
    failed: list[str] = Field(default_factory=list, description="Content ids")


class CleanupResult(BaseModel):
    """Outcome of resetting content stuck in the processing state."""

    reset_count: int = 0
    errors: list[str] = Field(default_factory=list)


class PendingRunResult(BaseModel):
    """Outcome of submitting every pending content item."""

    started: int = 0
    failed: int = 0
    already_processing: bool = False


class ProcessingOverview(BaseModel):
    """Combined view of stored content statistics and live queue state."""

    stats: ProcessingStats
    queue: QueueStats
    recent_jobs: list[ProcessingJob] = Field(default_factory=list)
