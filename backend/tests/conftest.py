"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across the unit tests: a manual
clock and scheduler so rate limiting and retry backoff run without real
waiting, and builders for generation payloads and sample content.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
from dotenv import load_dotenv

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env file from project root BEFORE any fixtures run
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

from app.enums.content import ContentSource  # noqa: E402
from tests.fakes import (  # noqa: E402
    TRANSCRIPT,
    FakeClock,
    FakeScheduler,
    build_generation_payload,
)


# ============================================================================
# Environment Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """
    Set up test environment variables before any tests run.

    Overrides values from .env files so tests run with predictable
    configuration.
    """
    original_env = os.environ.copy()

    test_env = {
        "POSTGRES_HOST": os.environ.get("POSTGRES_HOST", "localhost"),
        "POSTGRES_PORT": os.environ.get("POSTGRES_PORT", "5432"),
        "POSTGRES_USER": os.environ.get("POSTGRES_TEST_USER", "testuser"),
        "POSTGRES_PASSWORD": os.environ.get("POSTGRES_TEST_PASSWORD", "testpass"),
        "POSTGRES_DB": os.environ.get("POSTGRES_TEST_DB", "testdb"),
        "GEMINI_API_KEY": os.environ.get("GEMINI_API_KEY", "test-api-key"),
    }
    os.environ.update(test_env)

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Time Control
# ============================================================================


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_scheduler(fake_clock: FakeClock) -> FakeScheduler:
    """Scheduler that advances fake_clock by each delay and runs the callback."""
    return FakeScheduler(fake_clock)


# ============================================================================
# Sample Data
# ============================================================================


@pytest.fixture
def generation_payload() -> Callable[..., dict[str, Any]]:
    """Factory for wire-format replies (see build_generation_payload)."""
    return build_generation_payload


@pytest.fixture
def generation_reply() -> Callable[..., str]:
    """Factory for JSON reply text."""

    def _reply(duration_hours: float = 1.0, **kwargs: Any) -> str:
        return json.dumps(build_generation_payload(duration_hours, **kwargs))

    return _reply


@pytest.fixture
def sample_content_fields() -> dict[str, Any]:
    """Fields for registering a valid one-hour podcast episode."""
    return {
        "title": "Spaced Repetition Deep Dive",
        "transcript": TRANSCRIPT,
        "duration_hours": 1.0,
        "source": ContentSource.PODCAST,
    }
