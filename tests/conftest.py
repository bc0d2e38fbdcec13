"""Root-level pytest configuration for all tests."""

from __future__ import annotations

import random
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from experimentcore.config import get_settings
from experimentcore.tracking import MemorySink, Tracker


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    """Drop cached settings so environment overrides apply per test"""
    get_settings.cache_clear()


@pytest.fixture
def memory_sink() -> MemorySink:
    """In-memory tracking sink"""
    return MemorySink()


@pytest_asyncio.fixture
async def tracker(memory_sink: MemorySink) -> AsyncIterator[Tracker]:
    """Tracker delivering to the memory sink, closed after the test"""
    async with Tracker(memory_sink) as t:
        yield t


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source"""
    return random.Random(1234)
