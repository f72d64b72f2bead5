"""
Content Generation Module

Turns a transcript into learning material with a single structured call to
a generative service:

1. Prompt - Duration-scaled targets for bullets, paragraphs, and questions
2. Rate limiting - Sliding per-minute window plus a daily cap
3. Parsing - Untrusted JSON reply validated against a wire schema
4. Validation - Structural checks against the same targets
5. Persistence - Summaries, questions, and analytics saved to the store

Usage:
    from app.services.processing import ContentProcessor, RateLimiter

    processor = ContentProcessor(store, llm_client, RateLimiter())
    content = await processor.process(content_id)
"""

from app.services.processing.errors import GenerationError, classify_error
from app.services.processing.processor import ContentProcessor
from app.services.processing.rate_limiter import RateLimiter

__all__ = ["ContentProcessor", "GenerationError", "RateLimiter", "classify_error"]
