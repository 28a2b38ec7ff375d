"""
Core cache data structures.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from time import time
from typing import Any, Optional

from ..client import QueryParams, encode_param
from ..draft import FetchMode


@dataclass
class CacheEntry:
    """
    A cached query result with its validity window.

    Invariant: valid_until = created_at + ttl. Timestamps are epoch seconds.
    """
    value: Any
    created_at: float
    valid_until: float

    @classmethod
    def create(cls, value: Any, ttl_seconds: float, now: Optional[float] = None) -> "CacheEntry":
        created_at = time() if now is None else now
        return cls(value=value, created_at=created_at, valid_until=created_at + ttl_seconds)

    def is_live(self, now: Optional[float] = None) -> bool:
        """Check if the entry may still be served."""
        now = time() if now is None else now
        return now <= self.valid_until

    @property
    def remaining_seconds(self) -> float:
        """Seconds until the entry expires (never negative)."""
        return max(0.0, self.valid_until - time())

    def to_dict(self) -> dict:
        """Serialize using the shared wire shape (epoch milliseconds)."""
        return {
            "value": self.value,
            "timestamp": int(self.created_at * 1000),
            "validUntil": int(self.valid_until * 1000),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        """
        Rebuild an entry from its serialized form.

        Raises:
            KeyError, TypeError, ValueError: If the payload has the wrong shape
        """
        return cls(
            value=data["value"],
            created_at=float(data["timestamp"]) / 1000.0,
            valid_until=float(data["validUntil"]) / 1000.0,
        )


@dataclass
class CacheOptions:
    """Per-call cache behavior."""
    ttl: int = 60                       # seconds
    prefix: str = ""                    # key namespace
    force: bool = False                 # skip lookups, always refetch
    use_remote: bool = True             # consult/populate the remote tier
    mode: Optional[FetchMode] = None    # None = use the request's own flags


def build_cache_key(
    dataset: str,
    query: str,
    params: Optional[QueryParams] = None,
    prefix: str = "",
) -> str:
    """
    Generate a deterministic cache key.

    Parameters are sorted by name so that mappings equal as sets produce
    byte-identical keys regardless of insertion order.
    """
    base_key = f"{prefix}sanity:{dataset}:{query}"
    if not params:
        return base_key

    sorted_params = "&".join(
        f"{name}={encode_param(params[name])}" for name in sorted(params)
    )
    return f"{base_key}:{sorted_params}"


class CacheTier(ABC):
    """
    One layer in the cache hierarchy.

    Tiers are consulted in order; the first live hit wins and back-fills
    the tiers ahead of it.
    """

    name: str = "tier"

    @abstractmethod
    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for key, or None."""
        pass

    @abstractmethod
    def put_entry(self, key: str, entry: CacheEntry) -> bool:
        """Store an entry until its own valid_until; return False on failure."""
        pass

    @abstractmethod
    def clear_matching(self, pattern: Optional[str] = None) -> int:
        """Remove entries matching a glob pattern (None = everything)."""
        pass
