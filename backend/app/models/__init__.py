"""Pydantic models for the application."""

from app.models.content import (
    ContentGenerationRequest,
    GeneratedContent,
    GenerationMetadata,
    Question,
)
from app.models.processing import (
    BatchSubmitResult,
    CleanupResult,
    InputValidationResult,
    PendingRunResult,
    ProcessingJob,
    ProcessingOverview,
    ProcessingStats,
    QualityReport,
    QualityScores,
    QueueStats,
    ValidationResult,
)

__all__ = [
    "ContentGenerationRequest",
    "GeneratedContent",
    "GenerationMetadata",
    "Question",
    "BatchSubmitResult",
    "CleanupResult",
    "InputValidationResult",
    "PendingRunResult",
    "ProcessingJob",
    "ProcessingOverview",
    "ProcessingStats",
    "QualityReport",
    "QualityScores",
    "QueueStats",
    "ValidationResult",
]
