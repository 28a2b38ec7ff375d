"""
Main cache orchestration across the memory and Redis tiers.
"""
import contextvars
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Optional

from config.settings import settings
from ..client import QueryParams, QueryRequest, get_client
from ..draft import DraftAwareFetcher, FetchMode
from ..retry import RetryConfig
from .core import CacheEntry, CacheOptions, CacheTier, build_cache_key
from .memory import MemoryLayer
from .remote import RedisLayer, get_remote_layer

logger = logging.getLogger("sanity_fetcher.cache.manager")

# Key namespaces for results that may contain draft content
DRAFT_KEY_PREFIX = "drafts:"
FALLBACK_KEY_PREFIX = "fallback:"


@dataclass
class WarmEntry:
    """A query to pre-populate before real callers ask for it."""
    dataset: str
    query: str
    params: Optional[QueryParams] = None
    ttl: Optional[int] = None
    prefix: str = ""


class CacheManager:
    """
    Cached Sanity fetches with:
    - Deterministic keys from dataset, query and sorted params
    - Memory tier first, then Redis, first live hit wins
    - Write-through to every enabled tier after a successful fetch
    - Concurrent cache warming with per-query failure isolation
    """

    def __init__(
        self,
        fetcher: DraftAwareFetcher,
        memory: Optional[MemoryLayer] = None,
        remote: Optional[RedisLayer] = None,
        default_ttl: int = 60,
        warm_concurrency: int = 5,
        enabled: bool = True,
    ):
        """
        Initialize the cache manager.

        Args:
            fetcher: Draft-aware fetcher used on cache misses
            memory: In-process tier (a default-sized one is created if omitted)
            remote: Redis tier, or None when Redis is not available
            default_ttl: TTL for calls that do not pass CacheOptions
            warm_concurrency: Thread pool size for warm_cache
            enabled: When False every call goes straight to the fetcher
        """
        self.fetcher = fetcher
        self.memory = memory or MemoryLayer()
        self.remote = remote
        self.default_ttl = default_ttl
        self.warm_concurrency = max(1, warm_concurrency)
        self.enabled = enabled

        # Stats tracking
        self._stats = {
            "hits_memory": 0,
            "hits_redis": 0,
            "misses": 0,
            "forced": 0,
        }
        self._stats_lock = threading.Lock()

    def _tiers(self, options: CacheOptions) -> List[CacheTier]:
        """Cache tiers in precedence order for this call."""
        tiers: List[CacheTier] = [self.memory]
        if options.use_remote and self.remote is not None:
            tiers.append(self.remote)
        return tiers

    def _record(self, stat: str) -> None:
        with self._stats_lock:
            self._stats[stat] = self._stats.get(stat, 0) + 1

    def cached_fetch(self, request: QueryRequest, options: Optional[CacheOptions] = None) -> Any:
        """
        Get a query result from cache or fetch it from Sanity.

        Args:
            request: The query to run
            options: TTL, prefix, force refresh, remote tier toggle, fetch mode

        Returns:
            The query result

        Raises:
            ConfigurationError, RemoteRequestError, TransportError: From the
            fetch path, unchanged. Cache tier failures are never raised.
        """
        options = options or CacheOptions(ttl=self.default_ttl)
        if not self.enabled:
            return self.fetcher.fetch_request(request, options.mode)

        mode = self.resolve_mode(options.mode)
        cache_key = build_cache_key(
            request.dataset,
            request.query,
            request.params,
            self._draft_namespace(request, mode) + options.prefix,
        )
        tiers = self._tiers(options)

        if options.force:
            logger.info(f"FORCE REFRESH: {cache_key[:50]}")
            self._record("forced")
        else:
            for index, tier in enumerate(tiers):
                entry = tier.get_entry(cache_key)
                if entry is None:
                    continue

                logger.debug(f"CACHE HIT ({tier.name}): {cache_key[:50]}")
                self._record(f"hits_{tier.name}")
                # Back-fill faster tiers for the entry's remaining lifetime
                for faster in tiers[:index]:
                    faster.put_entry(cache_key, entry)
                return entry.value

            logger.info(f"CACHE MISS: {cache_key[:50]}")
            self._record("misses")

        value = self.fetcher.fetch_request(request, mode)

        for tier in tiers:
            if not tier.put_entry(cache_key, CacheEntry.create(value, options.ttl)):
                logger.warning(f"Failed to populate {tier.name} cache for {cache_key[:50]}")

        return value

    def resolve_mode(self, mode: Optional[FetchMode]) -> Optional[FetchMode]:
        """
        Pin a draft-mode dependent fetch mode to the concrete one for this call.

        AUTO becomes AUTHENTICATED or STATIC, and FALLBACK becomes
        AUTHENTICATED in draft mode, so the cache key and the fetch agree.
        """
        if mode in (FetchMode.AUTO, FetchMode.FALLBACK) and self.fetcher.is_draft_mode():
            return FetchMode.AUTHENTICATED
        if mode is FetchMode.AUTO:
            return FetchMode.STATIC
        return mode

    @staticmethod
    def _draft_namespace(request: QueryRequest, mode: Optional[FetchMode]) -> str:
        if mode is FetchMode.AUTHENTICATED or (mode is None and request.use_auth):
            return DRAFT_KEY_PREFIX
        if mode is FetchMode.FALLBACK:
            # May hold draft content when nothing is published
            return FALLBACK_KEY_PREFIX
        return ""

    def create_cached_fetcher(
        self,
        dataset: str,
        default_options: Optional[CacheOptions] = None,
    ) -> Callable[..., Any]:
        """
        Create a cached fetcher bound to one dataset.

        Usage:
            fetch_pages = manager.create_cached_fetcher("production", CacheOptions(ttl=3600, prefix="page:"))
            page = fetch_pages(query, {"slug": "home"}, overrides={"force": True})
        """
        base_options = default_options or CacheOptions(ttl=self.default_ttl)

        def fetcher(
            query: str,
            params: Optional[QueryParams] = None,
            overrides: Optional[Dict[str, Any]] = None,
        ) -> Any:
            options = replace(base_options, **overrides) if overrides else base_options
            return self.cached_fetch(
                QueryRequest(dataset=dataset, query=query, params=params or {}),
                options,
            )

        return fetcher

    def clear_cache(
        self,
        dataset: Optional[str] = None,
        pattern: Optional[str] = None,
        clear_memory: bool = True,
        clear_remote: bool = True,
    ) -> Dict[str, int]:
        """
        Clear cached entries for a dataset or key pattern.

        The memory tier is only cleared when no scope is given; the Redis
        tier supports glob patterns.

        Returns:
            Number of entries cleared per tier
        """
        cleared = {"memory": 0, "redis": 0}

        if clear_memory:
            if dataset is None and pattern is None:
                cleared["memory"] = self.memory.clear()
                logger.info(f"Cleared {cleared['memory']} memory cache entries")
            else:
                self.memory.clear_matching(pattern or f"*sanity:{dataset}:*")

        if clear_remote and self.remote is not None:
            key_pattern = pattern or (f"*sanity:{dataset}:*" if dataset else "*sanity:*")
            cleared["redis"] = self.remote.clear_matching(key_pattern)

        return cleared

    def warm_cache(self, entries: Iterable[WarmEntry]) -> Dict[str, Any]:
        """
        Pre-fetch queries concurrently.

        One failing query never stops the others; failures are logged and
        listed in the summary.

        Returns:
            Summary with planned, warmed and errors
        """
        entries = list(entries)
        summary: Dict[str, Any] = {"planned": len(entries), "warmed": 0, "errors": []}
        if not entries:
            return summary

        def warm_one(entry: WarmEntry) -> Any:
            return self.cached_fetch(
                QueryRequest(dataset=entry.dataset, query=entry.query, params=entry.params or {}),
                CacheOptions(
                    ttl=entry.ttl if entry.ttl is not None else self.default_ttl,
                    prefix=entry.prefix,
                ),
            )

        workers = min(len(entries), self.warm_concurrency)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cache-warm") as executor:
            future_to_entry = {
                executor.submit(contextvars.copy_context().run, warm_one, entry): entry
                for entry in entries
            }

            for future in as_completed(future_to_entry):
                entry = future_to_entry[future]
                try:
                    future.result()
                    summary["warmed"] += 1
                except Exception as e:
                    logger.error(f"Failed to warm cache for query {entry.query[:50]}: {e}")
                    summary["errors"].append({"query": entry.query, "error": str(e)})

        logger.info(f"Cache warm complete: {summary['warmed']}/{summary['planned']} queries")
        return summary

    def get_status(self, check_remote: bool = False) -> Dict[str, Any]:
        """
        Get cache tier availability and statistics.

        Args:
            check_remote: Ping Redis to report reachability
        """
        with self._stats_lock:
            stats = dict(self._stats)

        total_hits = stats["hits_memory"] + stats["hits_redis"]
        total_requests = total_hits + stats["misses"]
        hit_rate = (total_hits / total_requests * 100) if total_requests > 0 else 0

        redis_status: Dict[str, Any] = {
            "configured": self.remote is not None,
            "available": self.remote is not None,
            "host": self.remote.host if self.remote is not None else None,
        }
        if check_remote and self.remote is not None:
            redis_status["reachable"] = self.remote.ping()

        return {
            "enabled": self.enabled,
            "memory": {
                "available": True,
                "size": self.memory.size(),
                "max_size": self.memory.max_size,
                "evictions": self.memory.evictions,
            },
            "redis": redis_status,
            "stats": {**stats, "hit_rate_percent": round(hit_rate, 1)},
        }


# Global cache manager instance
_cache_manager: Optional[CacheManager] = None


def get_cache_manager() -> CacheManager:
    """Get or create the global cache manager."""
    global _cache_manager
    if _cache_manager is None:
        client = get_client()
        fetcher = DraftAwareFetcher(
            client,
            default_dataset=settings.sanity_dataset,
            retry_config=RetryConfig.from_settings(settings) if settings.retry_enabled else None,
        )
        _cache_manager = CacheManager(
            fetcher,
            memory=MemoryLayer(settings.cache_max_entries),
            remote=get_remote_layer(settings),
            default_ttl=settings.cache_default_ttl_seconds,
            warm_concurrency=settings.warm_concurrency,
            enabled=settings.cache_enabled,
        )
    return _cache_manager
