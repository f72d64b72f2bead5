"""
Unit Tests

Unit tests run in isolation without external dependencies.
The generative service and database are replaced by fakes or mocks, and
time is driven by a fake clock.

These tests are fast and can run without Docker or any services running.
"""
