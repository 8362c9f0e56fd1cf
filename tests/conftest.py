"""
Pytest configuration for AckBot tests.
"""
import pytest

from tests.fakes import build_harness


@pytest.fixture
def harness():
    """Escalation systems wired to an in-memory gateway, threshold 3."""
    return build_harness(threshold=3)
