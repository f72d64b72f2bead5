"""
Processing Pipeline Configuration

Configuration settings for the content-generation pipeline. These settings
control model selection, provider quotas, queue concurrency, retry backoff,
and the thresholds used when validating generated learning material.

All settings can be overridden via environment variables with PROCESSING_ prefix.

Usage:
    from app.config.processing import processing_settings

    per_minute = processing_settings.RATE_LIMIT_REQUESTS_PER_MINUTE
    tolerance = processing_settings.VALIDATION_TARGET_TOLERANCE
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class ProcessingSettings(BaseSettings):
    """
    Processing pipeline configuration.

    Attributes are grouped by category:
    - LLM model configuration
    - Provider rate limits
    - Queue concurrency and retry policy
    - Input validation limits
    - Output validation thresholds
    - Persistence analytics
    """

    # =========================================================================
    # LLM MODEL CONFIGURATION
    # =========================================================================
    # Model identifiers use LiteLLM format: provider/model-name

    # Long-form transcript understanding with structured JSON output
    MODEL_CONTENT_GENERATION: str = "gemini/gemini-2.5-pro"

    # Lower temperature for consistent, factual content
    GENERATION_TEMPERATURE: float = 0.3
    GENERATION_MAX_TOKENS: int = 8192

    # Maximum time for a single generation call (seconds)
    LLM_TIMEOUT_SECONDS: int = 180

    # =========================================================================
    # PROVIDER RATE LIMITS
    # =========================================================================
    # Outbound calls allowed within any trailing window
    RATE_LIMIT_REQUESTS_PER_MINUTE: int = 15
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0

    # Outbound calls allowed per UTC calendar day
    RATE_LIMIT_REQUESTS_PER_DAY: int = 1500

    # =========================================================================
    # QUEUE CONCURRENCY AND RETRY POLICY
    # =========================================================================
    # Jobs allowed in the processing state at once
    MAX_CONCURRENT_JOBS: int = 3

    # Failures allowed before a job is permanently failed
    MAX_RETRIES: int = 3

    # Backoff before the k-th retry is BASE * 2^(k-1) -> 2s, 4s, 8s
    RETRY_BASE_DELAY_SECONDS: float = 2.0

    # Initial guess for job duration before any job has completed
    ESTIMATED_JOB_SECONDS: float = 45.0

    # Finished jobs kept for status lookups; the oldest are dropped first
    JOB_HISTORY_LIMIT: int = 1000

    # Content stuck in "processing" longer than this is reset to pending
    STUCK_PROCESSING_MINUTES: int = 60

    # =========================================================================
    # INPUT VALIDATION LIMITS
    # =========================================================================
    MIN_TRANSCRIPT_LENGTH: int = 100
    MAX_DURATION_HOURS: float = 10.0

    # Rough token estimate uses 4 characters per token
    CHARS_PER_TOKEN: int = 4
    MAX_INPUT_TOKENS: int = 1_000_000

    # =========================================================================
    # OUTPUT VALIDATION THRESHOLDS
    # =========================================================================
    # Fraction of each duration-derived target that must be present
    VALIDATION_TARGET_TOLERANCE: float = 0.8

    # Paragraphs at or below this length are not counted
    MIN_PARAGRAPH_LENGTH: int = 50

    # Question prompts shorter than this are structurally invalid
    MIN_QUESTION_LENGTH: int = 10

    # Fewer distinct difficulty levels than this triggers a warning
    MIN_DISTINCT_DIFFICULTIES: int = 3

    # Advisory quality scores
    QUALITY_BASELINE_SCORE: float = 0.9
    QUALITY_DEGRADED_SCORE: float = 0.6

    # =========================================================================
    # PERSISTENCE
    # =========================================================================
    CONTENT_VERSION: int = 1

    # Reading speed used to estimate full-summary read time
    READ_WORDS_PER_MINUTE: int = 80

    class Config:
        env_prefix = "PROCESSING_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_processing_settings() -> ProcessingSettings:
    """Get cached processing settings instance."""
    return ProcessingSettings()


# Convenience instance
processing_settings = get_processing_settings()
