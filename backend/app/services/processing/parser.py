"""
Generation Response Parser

Turns the service's raw reply into GeneratedContent. The reply is untrusted:
it is decoded as JSON and then validated against an explicit wire schema
before any field is read. Structural quality (counts, difficulty ranges) is
NOT judged here; that is the content validator's job.

Transformation rules:
- quickSummary bullets are joined with newlines, in order received
- fullSummary paragraphs are joined with a blank line
- questions without an id get "q<1-based index>"
- missing confidence defaults to medium, missing metadata to {}
- an unrecognised question type is kept as None so the validator reports it

Usage:
    from app.services.processing.parser import parse_generation_response

    content = parse_generation_response(raw_text, model_identifier=model)
"""

import json
import logging
import re
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.enums.processing import ConfidenceLevel, QuestionType
from app.models.content import GeneratedContent, GenerationMetadata, Question
from app.services.processing.errors import EmptyResponseError, MalformedResponseError

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

DEFAULT_ESTIMATED_TIME_SECONDS = 20


# =============================================================================
# Wire schema
# =============================================================================


class _WireQuestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None
    difficulty_level: Optional[int] = None
    estimated_time_seconds: Optional[int] = None
    confidence: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class _WireResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    quick_summary: list[str] = Field(alias="quickSummary")
    full_summary: list[str] = Field(alias="fullSummary")
    questions: list[_WireQuestion]


# =============================================================================
# Parsing
# =============================================================================


def parse_generation_response(
    raw: Union[str, dict, None],
    model_identifier: str = "",
    content_version: int = 1,
) -> GeneratedContent:
    """
    Parse a structured reply into GeneratedContent.

    Args:
        raw: Reply text (JSON, optionally in a markdown code fence) or an
            already-decoded dict
        model_identifier: Model that produced the reply
        content_version: Version stamped into the metadata

    Returns:
        GeneratedContent with processing_time_ms left at 0 for the caller

    Raises:
        EmptyResponseError: If the service returned no content
        MalformedResponseError: If the reply is not JSON or not the expected shape
    """
    data = _decode(raw)

    try:
        wire = _WireResponse.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Generation response failed schema validation: {e.error_count()} errors")
        raise MalformedResponseError(
            f"Response does not match expected schema: {_summarize(e)}",
            details={"errors": e.errors(include_url=False)},
        ) from e

    questions = [_to_question(q, index) for index, q in enumerate(wire.questions, start=1)]

    return GeneratedContent(
        quick_summary="\n".join(wire.quick_summary),
        full_summary="\n\n".join(wire.full_summary),
        questions=questions,
        metadata=GenerationMetadata(
            content_version=content_version,
            model_identifier=model_identifier,
        ),
    )


def _decode(raw: Union[str, dict, None]) -> Any:
    if raw is None:
        raise EmptyResponseError("Empty response from generative service")

    if isinstance(raw, dict):
        if not raw:
            raise EmptyResponseError("Empty response from generative service")
        return raw

    text = raw.strip()
    if not text:
        raise EmptyResponseError("Empty response from generative service")

    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            f"Invalid JSON response from generative service: {e.msg}"
        ) from e

    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Expected a JSON object, got {type(data).__name__}"
        )
    return data


def _to_question(wire: _WireQuestion, index: int) -> Question:
    return Question(
        id=wire.id or f"q{index}",
        content=(wire.content or "").strip(),
        type=_parse_question_type(wire.type),
        difficulty_level=wire.difficulty_level,
        estimated_time_seconds=wire.estimated_time_seconds or DEFAULT_ESTIMATED_TIME_SECONDS,
        confidence=_parse_confidence(wire.confidence),
        metadata=wire.metadata or {},
    )


def _parse_question_type(value: Optional[str]) -> Optional[QuestionType]:
    if not value:
        return None
    try:
        return QuestionType(value.lower().strip())
    except ValueError:
        logger.debug(f"Unrecognised question type: {value!r}")
        return None


def _parse_confidence(value: Optional[str]) -> ConfidenceLevel:
    if not value:
        return ConfidenceLevel.MEDIUM
    try:
        return ConfidenceLevel(value.lower().strip())
    except ValueError:
        return ConfidenceLevel.MEDIUM


def _summarize(error: ValidationError) -> str:
    parts = []
    for item in error.errors()[:3]:
        location = ".".join(str(p) for p in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)
