"""
Sanity Fetcher - FastAPI service
Cached GROQ queries with draft-mode routing and cache invalidation hooks
"""
import json
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from pydantic import BaseModel

from sanity_fetcher import __version__
from sanity_fetcher.cache import CacheOptions, get_cache_manager
from sanity_fetcher.client import QueryRequest
from sanity_fetcher.draft import (
    FetchMode,
    reset_draft_mode,
    set_draft_mode,
)
from sanity_fetcher.errors import ConfigurationError, RemoteRequestError, TransportError
from sanity_fetcher.presets import get_warmup_queries
from config.settings import settings

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("sanity_fetcher.main")

APP_NAME = "Sanity Fetcher"

DRAFT_MODE_COOKIE = "sanity-draft-mode"
DRAFT_MODE_HEADER = "x-sanity-draft-mode"

app = FastAPI(
    title=APP_NAME,
    description="Cached, draft-aware GROQ queries against the Sanity HTTP API",
    version=__version__,
)


class InvalidateRequest(BaseModel):
    """Webhook payload from the content change notification channel."""
    dataset: Optional[str] = None
    pattern: Optional[str] = None
    clear_memory: bool = True
    clear_remote: bool = True


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def parse_query_params(request: Request) -> Dict[str, Any]:
    """
    Collect GROQ params passed as `$name=<json literal>` query parameters.

    Values that are not valid JSON are passed through as plain strings.
    """
    params: Dict[str, Any] = {}
    for name, raw in request.query_params.items():
        if not name.startswith("$") or len(name) < 2:
            continue
        try:
            params[name[1:]] = json.loads(raw)
        except ValueError:
            params[name[1:]] = raw
    return params


@app.middleware("http")
async def draft_mode_middleware(request: Request, call_next):
    """Expose the host's draft-mode signal to the fetch layer for this request."""
    enabled = _flag(request.cookies.get(DRAFT_MODE_COOKIE)) or _flag(
        request.headers.get(DRAFT_MODE_HEADER)
    )
    token = set_draft_mode(enabled)
    try:
        return await call_next(request)
    finally:
        reset_draft_mode(token)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "source": "sanity", "version": __version__}


@app.get("/cache/stats")
def cache_stats(check_remote: bool = Query(default=False, description="Ping Redis")):
    """Get cache statistics."""
    return get_cache_manager().get_status(check_remote=check_remote)


@app.get("/query")
def run_query(
    request: Request,
    query: str = Query(..., min_length=1, description="GROQ query"),
    dataset: str = Query(default=settings.sanity_dataset, description="Sanity dataset"),
    mode: FetchMode = Query(default=FetchMode.AUTO, description="Published/draft routing"),
    ttl: int = Query(default=settings.cache_default_ttl_seconds, ge=1, description="Cache TTL in seconds"),
    prefix: str = Query(default="", description="Cache key prefix"),
    forceRefresh: bool = Query(default=False, description="Bypass cache and fetch fresh data"),
):
    """
    Run a cached GROQ query.

    GROQ params are passed as `$name=<json literal>`, e.g. `$slug="home"`.
    Results that may contain drafts are cached under their own namespace
    so they never reach published readers.
    """
    manager = get_cache_manager()
    draft = manager.resolve_mode(mode) is FetchMode.AUTHENTICATED
    options = CacheOptions(
        ttl=ttl,
        prefix=prefix,
        force=forceRefresh,
        mode=mode,
    )

    try:
        result = manager.cached_fetch(
            QueryRequest(dataset=dataset, query=query, params=parse_query_params(request)),
            options,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=e.to_dict())
    except RemoteRequestError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())
    except TransportError as e:
        raise HTTPException(status_code=504, detail=e.to_dict())

    return {"result": result, "dataset": dataset, "mode": mode.value, "draft": draft}


@app.post("/cache/invalidate")
def invalidate_cache(payload: InvalidateRequest):
    """
    Invalidate cached entries after a content change.

    Called by the content change notification channel. The memory tier is
    only cleared for unscoped requests; Redis supports dataset and pattern.
    """
    cleared = get_cache_manager().clear_cache(
        dataset=payload.dataset,
        pattern=payload.pattern,
        clear_memory=payload.clear_memory,
        clear_remote=payload.clear_remote,
    )
    logger.info(f"Cache invalidated (dataset={payload.dataset}, pattern={payload.pattern}): {cleared}")
    return {"status": "ok", "cleared": cleared}


@app.post("/cache/warm")
def warm_cache(dataset: str = Query(default=settings.sanity_dataset, description="Sanity dataset")):
    """Warm the cache with the startup query list."""
    return get_cache_manager().warm_cache(get_warmup_queries(dataset))
