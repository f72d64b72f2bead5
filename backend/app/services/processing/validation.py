"""
Content Validation

Checks generated learning material against the same duration-derived
targets the prompt asked for, plus per-question structural rules. Also
provides the pre-flight check run on a request before any service call and
an aggregate 0-100 quality score used for logging.

All output checks are independent: a failing check never prevents the
others from running, so a ValidationResult lists every problem at once.

Usage:
    from app.services.processing.validation import validate_generated_content

    result = validate_generated_content(content, duration_hours=1.5)
    if not result.is_valid:
        print(f"Validation errors: {result.errors}")
"""

import logging

from app.config.processing import processing_settings
from app.models.content import ContentGenerationRequest, GeneratedContent, Question
from app.models.processing import (
    InputValidationResult,
    QualityReport,
    QualityScores,
    ValidationResult,
    empty_difficulty_distribution,
)
from app.services.processing.prompts import compute_generation_targets

logger = logging.getLogger(__name__)

BULLET_MARKERS = ("•", "-", "*")


def validate_generated_content(
    content: GeneratedContent, duration_hours: float
) -> ValidationResult:
    """
    Validate generated content against duration-derived expectations.

    Checks:
    - Quick summary bullet count
    - Full summary paragraph count
    - Question count
    - Question structure (content, type, difficulty range)
    - Difficulty spread (warning only)

    Args:
        content: Parsed generation result
        duration_hours: Source duration the targets are derived from

    Returns:
        ValidationResult with errors, warnings, and advisory quality scores
    """
    errors: list[str] = []
    warnings: list[str] = []

    summary_errors = _validate_summaries(content, duration_hours)
    errors.extend(summary_errors)

    errors.extend(_validate_question_count(content.questions, duration_hours))

    invalid_questions = find_invalid_questions(content.questions)
    if invalid_questions:
        ids = ", ".join(q.id for q in invalid_questions[:5])
        errors.append(
            f"{len(invalid_questions)} questions have invalid structure ({ids})"
        )

    distribution = difficulty_distribution(content.questions)
    distinct_levels = sum(1 for count in distribution.values() if count > 0)
    if content.questions and distinct_levels < processing_settings.MIN_DISTINCT_DIFFICULTIES:
        warnings.append(
            f"Poor difficulty distribution: {distinct_levels} distinct levels, "
            f"expected at least {processing_settings.MIN_DISTINCT_DIFFICULTIES}"
        )

    baseline = processing_settings.QUALITY_BASELINE_SCORE
    degraded = processing_settings.QUALITY_DEGRADED_SCORE
    quality = QualityScores(
        summary_clarity=baseline if not summary_errors else degraded,
        question_relevance=baseline if not invalid_questions else degraded,
        difficulty_distribution=distribution,
    )

    if errors:
        logger.debug(f"Generated content failed validation: {errors}")

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        quality=quality,
    )


def _meets_target(actual: int, expected: int) -> bool:
    return actual >= expected * processing_settings.VALIDATION_TARGET_TOLERANCE


def _validate_summaries(content: GeneratedContent, duration_hours: float) -> list[str]:
    """Validate bullet and paragraph counts."""
    issues = []
    targets = compute_generation_targets(duration_hours)

    bullets = count_bullets(content.quick_summary)
    if not _meets_target(bullets, targets.quick_bullets):
        issues.append(
            f"Quick summary has {bullets} bullets, expected ~{targets.quick_bullets}"
        )

    paragraphs = count_paragraphs(content.full_summary)
    if not _meets_target(paragraphs, targets.full_paragraphs):
        issues.append(
            f"Full summary has {paragraphs} paragraphs, expected ~{targets.full_paragraphs}"
        )

    return issues


def _validate_question_count(questions: list[Question], duration_hours: float) -> list[str]:
    expected = compute_generation_targets(duration_hours).question_count
    if not _meets_target(len(questions), expected):
        return [f"Generated {len(questions)} questions, expected ~{expected}"]
    return []


def count_bullets(quick_summary: str) -> int:
    """Count lines that start with a bullet marker."""
    return sum(
        1
        for line in quick_summary.split("\n")
        if line.strip().startswith(BULLET_MARKERS)
    )


def count_paragraphs(full_summary: str) -> int:
    """Count blank-line separated paragraphs longer than the minimum length."""
    return sum(
        1
        for paragraph in full_summary.split("\n\n")
        if len(paragraph.strip()) > processing_settings.MIN_PARAGRAPH_LENGTH
    )


def is_valid_question(question: Question) -> bool:
    """Check a single question's structural rules."""
    if len(question.content.strip()) < processing_settings.MIN_QUESTION_LENGTH:
        return False
    if question.type is None:
        return False
    if question.difficulty_level is None or not 1 <= question.difficulty_level <= 5:
        return False
    return True


def find_invalid_questions(questions: list[Question]) -> list[Question]:
    return [q for q in questions if not is_valid_question(q)]


def difficulty_distribution(questions: list[Question]) -> dict[int, int]:
    """Histogram of in-range difficulty levels."""
    distribution = empty_difficulty_distribution()
    for question in questions:
        if question.difficulty_level in distribution:
            distribution[question.difficulty_level] += 1
    return distribution


def validate_generation_request(request: ContentGenerationRequest) -> InputValidationResult:
    """
    Check a request before spending a service call on it.

    Args:
        request: Content fetched from the store

    Returns:
        InputValidationResult listing every problem found
    """
    errors = []

    if not request.title or not request.title.strip():
        errors.append("Title is required")

    if len(request.transcript.strip()) < processing_settings.MIN_TRANSCRIPT_LENGTH:
        errors.append(
            f"Transcript must be at least {processing_settings.MIN_TRANSCRIPT_LENGTH} characters"
        )

    if not 0 < request.duration_hours <= processing_settings.MAX_DURATION_HOURS:
        errors.append(
            f"Duration must be between 0 and {processing_settings.MAX_DURATION_HOURS:g} hours"
        )

    approximate_tokens = len(request.transcript) / processing_settings.CHARS_PER_TOKEN
    if approximate_tokens > processing_settings.MAX_INPUT_TOKENS:
        errors.append("Content too long for processing (exceeds token limit)")

    return InputValidationResult(is_valid=not errors, errors=errors)


def score_content_quality(content: GeneratedContent, duration_hours: float) -> QualityReport:
    """
    Compute an aggregate 0-100 quality score.

    Deductions: bullets -20, paragraphs -20, question count -30,
    question structure -20, difficulty spread -10.

    Args:
        content: Parsed generation result
        duration_hours: Source duration

    Returns:
        QualityReport with score and feedback lines
    """
    feedback = []
    score = 100
    targets = compute_generation_targets(duration_hours)

    bullets = count_bullets(content.quick_summary)
    if not _meets_target(bullets, targets.quick_bullets):
        score -= 20
        feedback.append(
            f"Quick summary has {bullets} bullets, expected ~{targets.quick_bullets}"
        )

    paragraphs = count_paragraphs(content.full_summary)
    if not _meets_target(paragraphs, targets.full_paragraphs):
        score -= 20
        feedback.append(
            f"Full summary has {paragraphs} paragraphs, expected ~{targets.full_paragraphs}"
        )

    if not _meets_target(len(content.questions), targets.question_count):
        score -= 30
        feedback.append(
            f"Generated {len(content.questions)} questions, expected ~{targets.question_count}"
        )

    invalid = find_invalid_questions(content.questions)
    if invalid:
        score -= 20
        feedback.append(f"{len(invalid)} questions have quality issues")

    distribution = difficulty_distribution(content.questions)
    if sum(1 for count in distribution.values() if count > 0) < processing_settings.MIN_DISTINCT_DIFFICULTIES:
        score -= 10
        feedback.append("Poor difficulty distribution across questions")

    return QualityReport(score=max(0, score), feedback=feedback)
