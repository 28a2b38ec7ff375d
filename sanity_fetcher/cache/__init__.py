"""
Multi-layer caching: in-process LRU, optional Redis tier, write-through population.
"""
from .core import CacheEntry, CacheOptions, CacheTier, build_cache_key
from .memory import MemoryLayer
from .remote import RedisLayer, get_remote_layer
from .manager import CacheManager, WarmEntry, get_cache_manager

__all__ = [
    # Core types
    "CacheEntry",
    "CacheOptions",
    "CacheTier",
    "build_cache_key",
    # Tiers
    "MemoryLayer",
    "RedisLayer",
    "get_remote_layer",
    # Manager
    "CacheManager",
    "WarmEntry",
    "get_cache_manager",
]
