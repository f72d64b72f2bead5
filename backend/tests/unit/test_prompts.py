"""
Unit tests for the content generation prompt.
"""

import pytest

from app.enums.content import ContentSource
from app.models.content import ContentGenerationRequest
from app.services.processing.prompts import (
    build_generation_prompt,
    compute_generation_targets,
)


@pytest.fixture
def request_2h() -> ContentGenerationRequest:
    return ContentGenerationRequest(
        content_id="c-1",
        title="The Science of Sleep",
        transcript="Host: Sleep is when memories consolidate. " * 5,
        duration_hours=2.0,
        source=ContentSource.PODCAST,
    )


class TestGenerationTargets:
    """Tests for duration-derived targets."""

    @pytest.mark.parametrize(
        "duration_hours,expected",
        [
            (0.25, (4, 2, 10)),
            (1.0, (4, 2, 12)),
            (2.0, (8, 4, 24)),
            (2.1, (9, 5, 26)),
        ],
    )
    def test_targets_scale_with_duration(self, duration_hours, expected):
        targets = compute_generation_targets(duration_hours)

        assert (
            targets.quick_bullets,
            targets.full_paragraphs,
            targets.question_count,
        ) == expected

    def test_minimums_apply_to_short_content(self):
        targets = compute_generation_targets(0.05)

        assert targets.quick_bullets == 4
        assert targets.full_paragraphs == 2
        assert targets.question_count == 10


class TestBuildGenerationPrompt:
    """Tests for prompt rendering."""

    def test_prompt_embeds_request_fields(self, request_2h):
        prompt = build_generation_prompt(request_2h)

        assert "Title: The Science of Sleep" in prompt
        assert "Duration: 2.0 hours" in prompt
        assert "Source: podcast" in prompt
        assert request_2h.transcript in prompt

    def test_prompt_states_targets(self, request_2h):
        prompt = build_generation_prompt(request_2h)

        assert "QUICK SUMMARY (8 bullet points)" in prompt
        assert "FULL SUMMARY (4 paragraphs)" in prompt
        assert "Generate exactly 24 self-assessment questions" in prompt

    def test_prompt_describes_json_shape(self, request_2h):
        prompt = build_generation_prompt(request_2h)

        assert '"quickSummary"' in prompt
        assert '"fullSummary"' in prompt
        assert '"difficulty_level"' in prompt

    def test_prompt_is_deterministic(self, request_2h):
        assert build_generation_prompt(request_2h) == build_generation_prompt(request_2h)
