"""
Preset TTLs, key prefixes and fetchers for common content types.
"""
from typing import Any, Callable, Dict, List, Optional

from config.settings import settings
from .cache import CacheOptions, WarmEntry, get_cache_manager
from .client import QueryParams, QueryRequest, create_fetcher, get_client
from .draft import FetchMode
from .retry import RetryConfig, with_retry


# TTL presets (in seconds)
TTL_PRESETS: Dict[str, int] = {
    "default": 60,      # 1 minute
    "static": 3600,     # 1 hour for static content
    "dynamic": 30,      # 30 seconds for frequently changing content
    "long": 86400,      # 24 hours for rarely changing content
}

# Cache key prefixes
CACHE_PREFIXES: Dict[str, str] = {
    "page": "page:",
    "post": "post:",
    "author": "author:",
    "category": "cat:",
    "section": "section:",
    "global": "global:",
}

# Cache options for the cached preset fetchers
PRESET_OPTIONS: Dict[str, CacheOptions] = {
    "cached": CacheOptions(ttl=TTL_PRESETS["default"]),
    "static": CacheOptions(ttl=TTL_PRESETS["long"], prefix=CACHE_PREFIXES["global"]),
    "dynamic": CacheOptions(ttl=TTL_PRESETS["dynamic"]),
    "page": CacheOptions(ttl=TTL_PRESETS["static"], prefix=CACHE_PREFIXES["page"]),
    "section": CacheOptions(ttl=TTL_PRESETS["default"], prefix=CACHE_PREFIXES["section"]),
}

PRESET_NAMES = ("basic", "authenticated") + tuple(PRESET_OPTIONS)


def get_preset_fetcher(name: str, dataset: Optional[str] = None) -> Callable[..., Any]:
    """
    Get a preconfigured fetcher.

    - basic: no caching, no retry
    - authenticated: viewer token + draft perspective
    - cached / static / dynamic / page / section: cached with preset TTL and prefix

    Raises:
        ValueError: For an unknown preset name
    """
    dataset = dataset or settings.sanity_dataset

    if name == "basic":
        return create_fetcher(dataset, use_auth=False)
    if name == "authenticated":
        return create_fetcher(dataset, use_auth=True)
    if name in PRESET_OPTIONS:
        return get_cache_manager().create_cached_fetcher(dataset, PRESET_OPTIONS[name])

    raise ValueError(f"Unknown preset fetcher '{name}' (expected one of {', '.join(PRESET_NAMES)})")


def create_custom_fetcher(
    dataset: Optional[str] = None,
    ttl: int = TTL_PRESETS["default"],
    prefix: str = "",
    use_auth: bool = False,
    use_cache: bool = True,
    use_retry: bool = False,
    retry_config: Optional[RetryConfig] = None,
) -> Callable[..., Any]:
    """
    Build a fetcher from individual switches.

    Retries wrap whichever fetcher is selected; with caching enabled only
    cache misses reach the network, so retries only repeat real requests.
    """
    dataset = dataset or settings.sanity_dataset

    if use_cache:
        fetcher = get_cache_manager().create_cached_fetcher(
            dataset,
            CacheOptions(
                ttl=ttl,
                prefix=prefix,
                mode=FetchMode.AUTHENTICATED if use_auth else None,
            ),
        )
    elif use_retry:
        def fetcher(query: str, params: Optional[QueryParams] = None) -> Any:
            return get_client().fetch_with_retry(
                QueryRequest(dataset=dataset, query=query, params=params or {}, use_auth=use_auth),
                retry_config,
            )
        return fetcher
    else:
        return create_fetcher(dataset, use_auth=use_auth)

    if use_retry:
        return with_retry(fetcher, retry_config or RetryConfig.from_settings(settings))
    return fetcher


def get_warmup_queries(dataset: Optional[str] = None) -> List[WarmEntry]:
    """Queries that should be warmed on startup."""
    dataset = dataset or settings.sanity_dataset
    return [
        # Global settings
        WarmEntry(
            dataset=dataset,
            query='*[_type == "siteSettings"][0]',
            ttl=TTL_PRESETS["long"],
            prefix=CACHE_PREFIXES["global"],
        ),
        # Navigation
        WarmEntry(
            dataset=dataset,
            query='*[_type == "navigation"][0]',
            ttl=TTL_PRESETS["long"],
            prefix=CACHE_PREFIXES["global"],
        ),
        # Recent posts
        WarmEntry(
            dataset=dataset,
            query='*[_type == "post"] | order(_createdAt desc)[0..10]',
            ttl=TTL_PRESETS["default"],
        ),
        # Homepage
        WarmEntry(
            dataset=dataset,
            query='*[_type == "page" && slug.current == "home"][0]',
            ttl=TTL_PRESETS["static"],
            prefix=CACHE_PREFIXES["page"],
        ),
    ]
