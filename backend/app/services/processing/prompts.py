"""
Content Generation Prompt

Builds the single structured-output request that asks the generative
service for a quick summary, a full summary, and self-assessment questions.

Quantitative targets scale with source duration:
- quick summary: one bullet per ~15 minutes, at least 4
- full summary: one paragraph per ~30 minutes, at least 2
- questions: ~12 per hour, at least 10

The same targets drive the content validator, so the numbers the model is
asked for are exactly the numbers it is later checked against.

Usage:
    from app.services.processing.prompts import build_generation_prompt

    prompt = build_generation_prompt(request)
    messages = [{"role": "user", "content": prompt}]
"""

import math
from dataclasses import dataclass

from app.models.content import ContentGenerationRequest


@dataclass(frozen=True)
class GenerationTargets:
    """Duration-derived counts requested from the service."""

    quick_bullets: int
    full_paragraphs: int
    question_count: int


def compute_generation_targets(duration_hours: float) -> GenerationTargets:
    """
    Compute bullet, paragraph, and question targets for a source duration.

    Args:
        duration_hours: Source duration in hours

    Returns:
        GenerationTargets with the three counts
    """
    return GenerationTargets(
        quick_bullets=max(4, math.ceil(duration_hours * 4)),
        full_paragraphs=max(2, math.ceil(duration_hours * 2)),
        question_count=max(10, math.ceil(duration_hours * 12)),
    )


CONTENT_GENERATION_PROMPT = """You are an expert educational content processor for Stoke, a learning platform that helps users retain knowledge through spaced repetition. Generate high-quality summaries and self-assessment questions from the provided {source} content.

CONTENT TO PROCESS:
Title: {title}
Duration: {duration_hours} hours
Source: {source}
Transcript: {transcript}

REQUIRED OUTPUT FORMAT (JSON):
{{
  "quickSummary": [
    "• Key insight 1",
    "• Key insight 2"
  ],
  "fullSummary": [
    "Comprehensive paragraph 1 with detailed explanation...",
    "Comprehensive paragraph 2 with detailed explanation..."
  ],
  "questions": [
    {{
      "id": "q1",
      "content": "Self-assessment question text?",
      "type": "conceptual|factual|application|reflection",
      "difficulty_level": 1-5,
      "estimated_time_seconds": 15-30,
      "confidence": "high|medium|low",
      "metadata": {{
        "keywords": ["keyword1", "keyword2"],
        "concept_area": "main topic area"
      }}
    }}
  ]
}}

SPECIFIC REQUIREMENTS:

1. QUICK SUMMARY ({quick_bullets} bullet points):
   - Exactly {quick_bullets} concise bullet points (one per ~15 minutes of content)
   - Focus on the most actionable insights and key takeaways
   - Each bullet should be 10-20 words maximum
   - Start each with "•" followed by a space

2. FULL SUMMARY ({full_paragraphs} paragraphs):
   - Exactly {full_paragraphs} comprehensive paragraphs (one per ~30 minutes)
   - Each paragraph should be 80-120 words
   - Provide deeper context, examples, and explanations
   - Connect ideas and show relationships between concepts

3. QUESTIONS ({question_count} total):
   - Generate exactly {question_count} self-assessment questions
   - Design for binary "Got it"/"Revisit" responses (not multiple choice)
   - Mix of question types: 40% conceptual, 30% factual, 20% application, 10% reflection
   - Difficulty distribution: 20% level 1-2 (basic), 60% level 3-4 (intermediate), 20% level 5 (advanced)
   - Estimated time: 15-30 seconds per question for thoughtful consideration
   - Include relevant keywords and concept areas in metadata

QUALITY STANDARDS:
- Use clear, accessible language appropriate for the target audience
- Ensure questions test genuine understanding, not just recall
- Maintain consistency with the source material's tone and depth
- Focus on practical application and retention-worthy concepts
- Avoid overly complex or ambiguous phrasing

Return only the JSON object, with no surrounding prose."""


def build_generation_prompt(request: ContentGenerationRequest) -> str:
    """
    Build the generation prompt for a content item.

    Deterministic: the same request always yields the same prompt.

    Args:
        request: Content to generate learning material for

    Returns:
        Prompt text for a single user message
    """
    targets = compute_generation_targets(request.duration_hours)
    return CONTENT_GENERATION_PROMPT.format(
        title=request.title,
        duration_hours=request.duration_hours,
        source=request.source.value,
        transcript=request.transcript,
        quick_bullets=targets.quick_bullets,
        full_paragraphs=targets.full_paragraphs,
        question_count=targets.question_count,
    )
