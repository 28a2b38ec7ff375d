"""
Draft-aware fetch orchestration.

Decides per call whether to read published content from the CDN, draft
content from the authenticated primary host, or published-then-draft.

The draft-mode signal belongs to the hosting runtime. It is carried in a
context variable that the host sets per request; when no host has set it,
or the lookup fails, draft mode is treated as inactive so draft content is
never exposed by accident.
"""
import logging
from contextvars import ContextVar, Token
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Optional

from .client import QueryParams, QueryRequest, SanityClient
from .retry import RetryConfig, with_retry

logger = logging.getLogger("sanity_fetcher.draft")

_draft_mode_var: ContextVar[Optional[bool]] = ContextVar("sanity_draft_mode", default=None)

DraftModeLookup = Callable[[], bool]


class FetchMode(Enum):
    """How a fetch chooses between published and draft content."""
    AUTO = "auto"                    # draft mode decides: auth or CDN
    FALLBACK = "fallback"            # CDN first, drafts if empty
    STATIC = "static"                # always CDN, never auth
    AUTHENTICATED = "authenticated"  # always auth, never CDN


def set_draft_mode(enabled: bool) -> Token:
    """Set the draft-mode signal for the current context (called by the host)."""
    return _draft_mode_var.set(enabled)


def reset_draft_mode(token: Token) -> None:
    _draft_mode_var.reset(token)


def is_draft_mode_enabled() -> bool:
    """Draft-mode signal for the current context; False outside a host request."""
    return bool(_draft_mode_var.get())


class DraftAwareFetcher:
    """
    Published/draft routing on top of SanityClient.

    Usage:
        fetcher = DraftAwareFetcher(client)
        page = fetcher.fetch(query, {"slug": "home"}, mode=FetchMode.FALLBACK)
    """

    def __init__(
        self,
        client: SanityClient,
        draft_mode_lookup: Optional[DraftModeLookup] = is_draft_mode_enabled,
        default_dataset: str = "production",
        retry_config: Optional[RetryConfig] = None,
    ):
        """
        Args:
            client: Client performing the actual requests
            draft_mode_lookup: Host lookup for draft mode; None means no host
            default_dataset: Dataset used when a call does not name one
            retry_config: When given, every request is wrapped with retries
        """
        self.client = client
        self.draft_mode_lookup = draft_mode_lookup
        self.default_dataset = default_dataset
        self._fetch = with_retry(client.fetch, retry_config) if retry_config else client.fetch

    def is_draft_mode(self) -> bool:
        """Resolve draft mode, failing open to published content."""
        if self.draft_mode_lookup is None:
            return False
        try:
            return bool(self.draft_mode_lookup())
        except Exception as e:
            logger.debug(f"Draft mode lookup unavailable, using published content: {e}")
            return False

    def fetch(
        self,
        query: str,
        params: Optional[QueryParams] = None,
        dataset: Optional[str] = None,
        mode: FetchMode = FetchMode.AUTO,
        force_auth: Optional[bool] = None,
        log_fallback: bool = True,
    ) -> Any:
        """
        Fetch a query using the given mode.

        Args:
            query: GROQ query
            params: GROQ placeholder values
            dataset: Dataset (defaults to default_dataset)
            mode: Published/draft routing mode
            force_auth: AUTO only; overrides draft mode detection
            log_fallback: FALLBACK only; log when drafts are consulted
        """
        request = QueryRequest(
            dataset=dataset or self.default_dataset,
            query=query,
            params=params or {},
        )
        return self.fetch_request(request, mode, force_auth=force_auth, log_fallback=log_fallback)

    def fetch_request(
        self,
        request: QueryRequest,
        mode: Optional[FetchMode] = None,
        force_auth: Optional[bool] = None,
        log_fallback: bool = True,
    ) -> Any:
        """
        Fetch a prepared request.

        With mode None the request's own use_cdn/use_auth flags are used as-is.
        """
        if mode is None:
            return self._fetch(request)

        if mode is FetchMode.STATIC:
            return self._fetch(_published(request))

        if mode is FetchMode.AUTHENTICATED:
            return self._fetch(_draft(request))

        if mode is FetchMode.AUTO:
            use_auth = force_auth if force_auth is not None else self.is_draft_mode()
            return self._fetch(_draft(request) if use_auth else _published(request))

        if mode is FetchMode.FALLBACK:
            return self._fetch_with_fallback(request, log_fallback)

        raise ValueError(f"Unknown fetch mode: {mode}")

    def _fetch_with_fallback(self, request: QueryRequest, log_fallback: bool) -> Any:
        if self.is_draft_mode():
            return self._fetch(_draft(request))

        published = self._fetch(_published(request))
        if published:
            return published

        # Any falsy result counts as "not published"; aggregate queries that
        # legitimately return 0 or [] also take the second round-trip.
        if log_fallback:
            logger.info(f"No published content for {request.dataset} query, checking drafts")

        draft_result = self._fetch(_draft(request))
        if draft_result and log_fallback:
            logger.info("Draft content found and returned")
        return draft_result


def _published(request: QueryRequest) -> QueryRequest:
    return replace(request, use_cdn=True, use_auth=False)


def _draft(request: QueryRequest) -> QueryRequest:
    return replace(request, use_cdn=False, use_auth=True)
