"""
Content Data Models (Pydantic)

Models for the input handed to the generation pipeline and the learning
material it produces.

Models:
- ContentGenerationRequest: Immutable input fetched from the content store
- Question: One self-assessment question
- GenerationMetadata: Provenance of a generated result
- GeneratedContent: Summaries and questions produced by a successful attempt

Usage:
    from app.models.content import ContentGenerationRequest, GeneratedContent

    request = ContentGenerationRequest(
        content_id="...",
        title="Episode 42",
        transcript="...",
        duration_hours=1.5,
        source=ContentSource.PODCAST,
    )
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.enums.content import ContentSource
from app.enums.processing import ConfidenceLevel, QuestionType


class ContentGenerationRequest(BaseModel):
    """
    Input for one generation attempt.

    Created by the content store when content is first registered and
    read-only to the pipeline.

    Attributes:
        content_id: Opaque identifier of the content item
        title: Human-readable title
        transcript: Raw transcript text
        duration_hours: Duration of the source media in hours
        source: Kind of source (podcast, video, interview, ...)
    """

    model_config = ConfigDict(frozen=True)

    content_id: str
    title: str
    transcript: str
    duration_hours: float = Field(..., gt=0)
    source: ContentSource = ContentSource.OTHER


class Question(BaseModel):
    """
    Generated self-assessment question.

    Questions are designed for binary "Got it" / "Revisit" answers rather
    than multiple choice. Range checks on difficulty_level and presence of
    type are deliberately left to the content validator so that a bad
    question is reported alongside every other structural problem.

    Attributes:
        id: Stable identifier ("q1", "q2", ... when the service omits one)
        content: Question prompt text
        type: Question category, None if missing or unrecognised
        difficulty_level: 1 (basic) to 5 (advanced)
        estimated_time_seconds: Expected time to consider the question
        confidence: Model-reported confidence
        created_by_ai: Always True for generated questions
        metadata: Free-form data such as keywords and concept_area
    """

    id: str
    content: str = ""
    type: Optional[QuestionType] = None
    difficulty_level: Optional[int] = None
    estimated_time_seconds: int = 20
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM
    created_by_ai: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)


class GenerationMetadata(BaseModel):
    """Provenance of a generated result."""

    processing_time_ms: int = 0
    content_version: int = 1
    model_identifier: str = ""
    total_tokens: Optional[int] = None


class GeneratedContent(BaseModel):
    """
    Learning material produced by a successful generation attempt.

    Attributes:
        quick_summary: Bulleted lines joined with newlines
        full_summary: Paragraphs joined with a blank line
        questions: Ordered list of self-assessment questions
        metadata: Processing time, content version, and model identifier
    """

    quick_summary: str
    full_summary: str
    questions: list[Question] = Field(default_factory=list)
    metadata: GenerationMetadata = Field(default_factory=GenerationMetadata)
