"""
Shared fixtures: a controllable cache clock, an in-memory Redis double and
a cache manager over mocked HTTP.
"""
from unittest.mock import MagicMock

import pytest

from sanity_fetcher.cache import CacheManager, MemoryLayer, RedisLayer
from sanity_fetcher.client import SanityClient
from sanity_fetcher.draft import DraftAwareFetcher

from tests.helpers import FakeClock, FakeRedis


@pytest.fixture
def clock(monkeypatch):
    """Freeze cache time; advance it explicitly."""
    fake = FakeClock()
    monkeypatch.setattr("sanity_fetcher.cache.core.time", fake)
    return fake


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def mock_client():
    """Client double whose fetch returns a canned result."""
    client = MagicMock(spec=SanityClient)
    client.fetch.return_value = [{"_id": "post-1", "title": "Hello"}]
    return client


@pytest.fixture
def manager(mock_client, fake_redis):
    """Cache manager with memory + fake Redis tiers and no draft-mode host."""
    fetcher = DraftAwareFetcher(mock_client, draft_mode_lookup=None)
    return CacheManager(
        fetcher,
        memory=MemoryLayer(max_size=100),
        remote=RedisLayer(fake_redis, url="redis://cache.internal:6379/0"),
    )
