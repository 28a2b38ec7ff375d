"""
Sanity Fetcher - cached, draft-aware GROQ query client for the Sanity HTTP API.
"""
from .errors import (
    ConfigurationError,
    RemoteRequestError,
    SanityFetchError,
    TransportError,
)
from .rate_gate import RateGate
from .retry import RetryConfig, with_retry
from .client import (
    Endpoint,
    QueryRequest,
    SanityClient,
    create_fetcher,
    encode_param,
    get_client,
    select_endpoint,
)
from .draft import (
    DraftAwareFetcher,
    FetchMode,
    is_draft_mode_enabled,
    reset_draft_mode,
    set_draft_mode,
)
from .cache import (
    CacheEntry,
    CacheManager,
    CacheOptions,
    MemoryLayer,
    RedisLayer,
    WarmEntry,
    build_cache_key,
    get_cache_manager,
    get_remote_layer,
)

__version__ = "0.3.0"

__all__ = [
    # Errors
    "SanityFetchError",
    "TransportError",
    "RemoteRequestError",
    "ConfigurationError",
    # Fetch path
    "RateGate",
    "RetryConfig",
    "with_retry",
    "Endpoint",
    "QueryRequest",
    "SanityClient",
    "create_fetcher",
    "encode_param",
    "get_client",
    "select_endpoint",
    # Draft mode
    "DraftAwareFetcher",
    "FetchMode",
    "is_draft_mode_enabled",
    "set_draft_mode",
    "reset_draft_mode",
    # Caching
    "CacheEntry",
    "CacheManager",
    "CacheOptions",
    "MemoryLayer",
    "RedisLayer",
    "WarmEntry",
    "build_cache_key",
    "get_cache_manager",
    "get_remote_layer",
]
