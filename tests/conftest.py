"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
For shared builders, see tests/factories.py
"""

from unittest.mock import AsyncMock

import pytest

from intent_engine.stages.stage2_embedding import EmbeddingGenerator, RateLimiter
from tests.factories import NOW


@pytest.fixture
def now():
    """Fixed reference time used by every clock-dependent test."""
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def no_sleep():
    """Replacement for asyncio.sleep that returns immediately."""
    return AsyncMock(return_value=None)


@pytest.fixture
def offline_generator():
    """Embedding generator with the primary API disabled."""
    return EmbeddingGenerator(api_key="", rate_limiter=RateLimiter(1000))
