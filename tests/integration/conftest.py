"""
Integration test fixtures.

These tests wire every component together against an in-memory hub and a
mocked backend; nothing leaves the process.
"""

import pytest

# Mark all tests in this directory as integration tests
pytestmark = pytest.mark.integration
