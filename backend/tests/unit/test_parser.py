"""
Unit tests for the generation response parser.

The reply is untrusted, so these tests focus on how malformed, empty, and
partial replies are reported.
"""

import json

import pytest

from app.enums.processing import ConfidenceLevel, QuestionType
from app.services.processing.errors import EmptyResponseError, MalformedResponseError
from app.services.processing.parser import parse_generation_response


# =============================================================================
# Well-formed replies
# =============================================================================


class TestParseValidReply:
    """Tests for replies in the expected shape."""

    def test_joins_bullets_and_paragraphs(self, generation_payload):
        payload = generation_payload(1.0)

        content = parse_generation_response(json.dumps(payload))

        assert content.quick_summary == "\n".join(payload["quickSummary"])
        assert content.full_summary == "\n\n".join(payload["fullSummary"])
        assert len(content.questions) == 12

    def test_maps_question_fields(self, generation_payload):
        content = parse_generation_response(json.dumps(generation_payload(1.0)))
        first = content.questions[0]

        assert first.id == "q1"
        assert first.type == QuestionType.CONCEPTUAL
        assert first.difficulty_level == 1
        assert first.estimated_time_seconds == 30
        assert first.confidence == ConfidenceLevel.HIGH
        assert first.created_by_ai is True
        assert first.metadata["keywords"] == ["spacing", "retrieval"]

    def test_stamps_metadata(self, generation_payload):
        content = parse_generation_response(
            json.dumps(generation_payload(1.0)),
            model_identifier="gemini/gemini-2.5-pro",
            content_version=3,
        )

        assert content.metadata.model_identifier == "gemini/gemini-2.5-pro"
        assert content.metadata.content_version == 3
        assert content.metadata.processing_time_ms == 0

    def test_accepts_code_fenced_json(self, generation_payload):
        raw = "```json\n" + json.dumps(generation_payload(1.0)) + "\n```"

        content = parse_generation_response(raw)

        assert len(content.questions) == 12

    def test_accepts_decoded_dict(self, generation_payload):
        content = parse_generation_response(generation_payload(1.0))

        assert content.quick_summary.startswith("• Key point 1")

    def test_fills_question_defaults(self):
        raw = json.dumps(
            {
                "quickSummary": ["• One"],
                "fullSummary": ["Para"],
                "questions": [
                    {"content": "What is spacing?", "type": "Factual", "difficulty_level": 2},
                    {"id": 7, "content": "Why?", "type": "riddle", "confidence": "certain"},
                ],
            }
        )

        content = parse_generation_response(raw)
        first, second = content.questions

        assert first.id == "q1"
        assert first.type == QuestionType.FACTUAL
        assert first.confidence == ConfidenceLevel.MEDIUM
        assert first.estimated_time_seconds == 20
        assert first.metadata == {}
        assert second.id == "7"
        assert second.type is None
        assert second.confidence == ConfidenceLevel.MEDIUM


# =============================================================================
# Unusable replies
# =============================================================================


class TestParseUnusableReply:
    """Tests for replies that cannot be turned into content."""

    @pytest.mark.parametrize("raw", [None, "", "   \n", {}])
    def test_empty_reply(self, raw):
        with pytest.raises(EmptyResponseError):
            parse_generation_response(raw)

    def test_invalid_json(self):
        with pytest.raises(MalformedResponseError, match="Invalid JSON"):
            parse_generation_response('{"quickSummary": [')

    def test_non_object_json(self):
        with pytest.raises(MalformedResponseError, match="Expected a JSON object"):
            parse_generation_response("[1, 2, 3]")

    def test_missing_required_field(self):
        raw = json.dumps({"quickSummary": ["• One"], "questions": []})

        with pytest.raises(MalformedResponseError, match="fullSummary"):
            parse_generation_response(raw)

    def test_wrong_field_type(self):
        raw = json.dumps(
            {"quickSummary": "• One", "fullSummary": ["Para"], "questions": []}
        )

        with pytest.raises(MalformedResponseError):
            parse_generation_response(raw)

    def test_parse_errors_are_not_retryable(self):
        with pytest.raises(MalformedResponseError) as exc_info:
            parse_generation_response("not json")

        assert exc_info.value.retryable is False
