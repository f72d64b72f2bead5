"""
Content Pipeline Test Suite

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures and configuration
    ├── fakes.py             # Fake clock, scheduler, and LLM client
    └── unit/                # Unit tests (isolated, no external dependencies)
        ├── test_rate_limiter.py  # Sliding window and daily cap
        ├── test_prompts.py       # Duration-scaled targets and prompt text
        ├── test_parser.py        # Reply parsing
        ├── test_processing_validation.py  # Structural checks and quality score
        ├── test_processor.py     # Single generation attempt
        ├── test_queue.py         # Concurrency, retries, cancel, halt
        ├── test_orchestrator.py  # Bulk submission and recovery
        ├── test_storage.py       # Content stores
        ├── test_errors.py        # Error classification
        ├── test_llm_client.py    # LiteLLM wrapper
        ├── test_factory.py       # Service wiring
        └── test_config.py        # Settings

Running Tests:
    # Run all tests
    pytest backend/tests/ -v

"""
