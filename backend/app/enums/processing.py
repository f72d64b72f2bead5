"""
Processing-related enums.

Defines enums for job lifecycle, processor stages, generated question
attributes, and generation error codes.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle status of a queue-owned processing job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRYING = "retrying"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def is_active(self) -> bool:
        return not self.is_terminal


class ProcessingStage(str, Enum):
    """Stages a single processor invocation moves through, in order."""

    FETCH_INPUT = "fetch_input"
    BUILD_PROMPT = "build_prompt"
    AWAIT_RATE_LIMIT = "await_rate_limit"
    CALL_SERVICE = "call_service"
    PARSE = "parse"
    VALIDATE = "validate"
    PERSIST = "persist"

    @property
    def progress(self) -> int:
        """Progress checkpoint reported once the stage has finished.

        100 is never emitted here; it is reserved for the queue's
        transition to COMPLETED.
        """
        return STAGE_PROGRESS[self]


STAGE_PROGRESS: dict[ProcessingStage, int] = {
    ProcessingStage.FETCH_INPUT: 10,
    ProcessingStage.BUILD_PROMPT: 20,
    ProcessingStage.AWAIT_RATE_LIMIT: 30,
    ProcessingStage.CALL_SERVICE: 70,
    ProcessingStage.PARSE: 80,
    ProcessingStage.VALIDATE: 90,
    ProcessingStage.PERSIST: 95,
}


class QuestionType(str, Enum):
    """Types of self-assessment questions."""

    CONCEPTUAL = "conceptual"  # "What is X and why does it matter?"
    FACTUAL = "factual"  # "What did the guest say about X?"
    APPLICATION = "application"  # "How would you use X in your work?"
    REFLECTION = "reflection"  # "How does X change your view of Y?"


class ConfidenceLevel(str, Enum):
    """Model-reported confidence in a generated question."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class GenerationErrorCode(str, Enum):
    """Machine-readable codes carried by generation errors."""

    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_API_KEY = "INVALID_API_KEY"
    ACCESS_FORBIDDEN = "ACCESS_FORBIDDEN"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    SERVER_ERROR = "SERVER_ERROR"
    SAFETY_BLOCKED = "SAFETY_BLOCKED"
    CONTEXT_TOO_LONG = "CONTEXT_TOO_LONG"
    INVALID_JSON = "INVALID_JSON"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    CONTENT_NOT_FOUND = "CONTENT_NOT_FOUND"
    INVALID_CONTENT = "INVALID_CONTENT"
    DAILY_LIMIT_EXCEEDED = "DAILY_LIMIT_EXCEEDED"
    JOB_CANCELLED = "JOB_CANCELLED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
