"""
Centralized enum definitions for the application.

All enums are organized by domain:
- processing.py: Job statuses, processor stages, question attributes, error codes
- content.py: Content sources, storage processing status

Usage:
    from app.enums import JobStatus, QuestionType, ContentSource

    # Or import from specific module
    from app.enums.processing import ProcessingStage
"""

from app.enums.processing import (
    JobStatus,
    ProcessingStage,
    STAGE_PROGRESS,
    QuestionType,
    ConfidenceLevel,
    GenerationErrorCode,
)
from app.enums.content import (
    ContentSource,
    ProcessingStatus,
)

__all__ = [
    # Processing enums
    "JobStatus",
    "ProcessingStage",
    "STAGE_PROGRESS",
    "QuestionType",
    "ConfidenceLevel",
    "GenerationErrorCode",
    # Content enums
    "ContentSource",
    "ProcessingStatus",
]
