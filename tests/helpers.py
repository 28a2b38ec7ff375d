"""
Test doubles shared across test modules.
"""
import fnmatch
from unittest.mock import MagicMock

from sanity_fetcher.client import SanityClient
from sanity_fetcher.rate_gate import RateGate


class FakeClock:
    """Replacement for time() in the cache module."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Just enough of redis.Redis (decode_responses=True) for the cache tier."""

    def __init__(self):
        self.store = {}
        self.expiry = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    def scan_iter(self, match=None):
        return iter([k for k in list(self.store) if match is None or fnmatch.fnmatchcase(k, match)])

    def ping(self):
        return True


def make_response(status_code=200, payload=None, reason="OK"):
    """Mocked requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    response.json.return_value = payload if payload is not None else {"result": None}
    return response


def make_client(response=None, token="test-token", project_id="test-project"):
    """SanityClient with a mocked session and no throttling delay."""
    session = MagicMock()
    if response is not None:
        session.get.return_value = response
    return SanityClient(
        project_id=project_id,
        api_version="2024-01-12",
        token=token,
        rate_gate=RateGate(0.0),
        session=session,
    )

