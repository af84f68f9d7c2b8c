"""
Shared fixtures.
"""

import pytest

from tests.fakes import FakeClock


@pytest.fixture
def clock():
    """Clock pinned to 2024-03-15 12:00 UTC."""
    return FakeClock()
